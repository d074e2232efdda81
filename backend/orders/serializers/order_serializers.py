from rest_framework import serializers

from orders.models import Order
from .order_item_serializers import OrderItemSerializer


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    session_number = serializers.CharField(source="session.session_number", read_only=True, default=None)
    table_number = serializers.CharField(source="table.number", read_only=True, default=None)
    cashier_name = serializers.CharField(source="cashier.username", read_only=True, default=None)
    ticket_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "session",
            "session_number",
            "table",
            "table_number",
            "customer",
            "cashier",
            "cashier_name",
            "subtotal",
            "discount_type",
            "discount_value",
            "discount_amount",
            "tax_amount",
            "total",
            "notes",
            "items",
            "ticket_count",
            "created_at",
            "confirmed_at",
            "served_at",
            "voided_at",
            "void_reason",
        ]
        read_only_fields = fields

    def get_ticket_count(self, obj):
        return obj.tickets.count()


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)


class VoidOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
    manager_pin = serializers.CharField(required=False, allow_blank=True, default="")
