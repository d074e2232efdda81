import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _

from products.models import Product


class StockMovement(models.Model):
    """
    Audit trail for every change to durable stock.
    """

    class MovementType(models.TextChoices):
        SALE = "SALE", _("Sale")
        VOID_RETURN = "VOID_RETURN", _("Returned by Void")
        MODIFICATION_RETURN = "MODIFICATION_RETURN", _("Returned by Order Modification")
        ADJUSTMENT = "ADJUSTMENT", _("Manual Adjustment")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_movements",
        help_text=_("Product whose durable stock changed"),
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity_change = models.IntegerField(
        help_text=_("Signed change. Negative for sales, positive for returns."),
    )
    previous_stock = models.IntegerField()
    new_stock = models.IntegerField()
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    performed_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    notes = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["product", "-created_at"]),
            models.Index(fields=["movement_type"]),
        ]

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.quantity_change:+d} {self.product.name}"
