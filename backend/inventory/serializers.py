from rest_framework import serializers

from .models import StockMovement


class AvailabilityQuerySerializer(serializers.Serializer):
    product_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class StockAdjustmentSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity_change = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_name",
            "movement_type",
            "quantity_change",
            "previous_stock",
            "new_stock",
            "order",
            "notes",
            "created_at",
        ]
