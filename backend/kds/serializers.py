from rest_framework import serializers

from .models import KitchenTicket, TicketStatus


class KitchenTicketSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    table_number = serializers.CharField(source="order.table.number", read_only=True, default=None)
    prep_time_minutes = serializers.FloatField(read_only=True)

    class Meta:
        model = KitchenTicket
        fields = [
            "id",
            "order",
            "order_number",
            "table_number",
            "order_item",
            "destination",
            "label",
            "quantity",
            "annotation",
            "status",
            "is_urgent",
            "sent_at",
            "started_at",
            "ready_at",
            "served_at",
            "voided_at",
            "prep_time_minutes",
        ]
        read_only_fields = fields


class AdvanceTicketSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TicketStatus.choices)
