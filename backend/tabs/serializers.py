from rest_framework import serializers

from .models import OrderSession, Table


class TableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Table
        fields = ["id", "number", "capacity", "section", "status", "current_session", "is_active"]
        read_only_fields = fields


class OrderSessionSerializer(serializers.ModelSerializer):
    table_number = serializers.CharField(source="table.number", read_only=True, default=None)
    customer_name = serializers.CharField(source="customer.full_name", read_only=True, default=None)
    order_count = serializers.SerializerMethodField()
    duration_minutes = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderSession
        fields = [
            "id",
            "session_number",
            "status",
            "table",
            "table_number",
            "customer",
            "customer_name",
            "subtotal",
            "discount_amount",
            "tax_amount",
            "total",
            "payment_method",
            "amount_tendered",
            "change_due",
            "opened_at",
            "closed_at",
            "opened_by",
            "closed_by",
            "notes",
            "order_count",
            "duration_minutes",
        ]
        read_only_fields = fields

    def get_order_count(self, obj):
        return obj.orders.count()


class OpenTabSerializer(serializers.Serializer):
    table_id = serializers.IntegerField(required=False, allow_null=True)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TransferTableSerializer(serializers.Serializer):
    table_id = serializers.IntegerField()


class CloseTabSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=OrderSession.PaymentMethod.choices, default=OrderSession.PaymentMethod.CASH
    )
    amount_tendered = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0
    )


class AbandonTabSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
