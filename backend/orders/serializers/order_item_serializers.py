from rest_framework import serializers

from orders.models import OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "line_type",
            "product",
            "package",
            "item_name",
            "display_name",
            "unit_price",
            "quantity",
            "subtotal",
            "price_context",
            "notes",
            "is_voided",
            "voided_at",
        ]
        read_only_fields = fields

    def get_display_name(self, obj):
        """Snapshot name, marked when the line was voided"""
        if obj.is_voided:
            return f"{obj.item_name} (voided)"
        return obj.item_name


class ReduceItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    manager_pin = serializers.CharField(required=False, allow_blank=True, default="")


class RemoveItemSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    manager_pin = serializers.CharField(required=False, allow_blank=True, default="")
