"""
Workspace serializers for the POS terminal API.

Lines carry the price resolved when they were added; totals are calculated on
demand with the same calculator used for committed orders.
"""

from rest_framework import serializers

from orders.calculators import DiscountType
from .models import DraftOrder, DraftOrderLine
from .services import WorkspaceService


class DraftOrderLineSerializer(serializers.ModelSerializer):
    stock_warnings = serializers.SerializerMethodField()

    class Meta:
        model = DraftOrderLine
        fields = [
            "id",
            "product",
            "package",
            "item_name",
            "quantity",
            "unit_price",
            "price_context",
            "subtotal",
            "notes",
            "stock_warnings",
            "added_at",
        ]
        read_only_fields = fields

    def get_stock_warnings(self, obj):
        # Only set on lines returned by add/update calls
        return getattr(obj, "stock_warnings", [])


class DraftOrderSerializer(serializers.ModelSerializer):
    """Workspace with lines and a totals preview."""

    lines = DraftOrderLineSerializer(many=True, read_only=True)
    table_number = serializers.CharField(source="table.number", read_only=True, default=None)
    customer_name = serializers.CharField(source="customer.full_name", read_only=True, default=None)
    totals = serializers.SerializerMethodField()
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = DraftOrder
        fields = [
            "id",
            "cashier",
            "customer",
            "customer_name",
            "table",
            "table_number",
            "is_on_hold",
            "held_at",
            "notes",
            "discount_type",
            "discount_value",
            "lines",
            "item_count",
            "totals",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_totals(self, obj):
        return {key: str(value) for key, value in WorkspaceService.get_totals(obj).as_dict().items()}


class AddLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    package_id = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)

    def validate(self, attrs):
        if bool(attrs.get("product_id")) == bool(attrs.get("package_id")):
            raise serializers.ValidationError("Provide either product_id or package_id.")
        return attrs


class UpdateLineSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class SetCustomerSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(allow_null=True)


class SetTableSerializer(serializers.Serializer):
    table_id = serializers.IntegerField(allow_null=True)


class SetDiscountSerializer(serializers.Serializer):
    discount_type = serializers.ChoiceField(
        choices=[("", "None")] + DiscountType.CHOICES, allow_blank=True, required=False, default=""
    )
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2, default=0)


class ConfirmWorkspaceSerializer(serializers.Serializer):
    send_to_kitchen = serializers.BooleanField(default=True)


class ReleaseStaleSerializer(serializers.Serializer):
    older_than_hours = serializers.IntegerField(min_value=1, default=12)
    dry_run = serializers.BooleanField(default=False)
    manager_pin = serializers.CharField(required=False, allow_blank=True, default="")
