import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from customers.models import Customer
from orders.calculators import DiscountType
from products.models import Package, Product
from products.pricing import PriceContext


class DraftOrder(models.Model):
    """
    An operator's uncommitted order (the POS "workspace").

    Lifecycle:
    1. Created on the operator's first workspace access
    2. Lines added/updated/removed; every change reserves or releases stock
    3. Optionally put on hold while the operator serves another party
    4. Converted to an Order on confirmation, then deleted
    5. Or cleared/discarded explicitly, releasing its reservations

    Key Design:
    - Owned by exactly one operator and never visible to anyone else
    - At most one active (not held) draft per operator, enforced by a partial
      unique constraint; held drafts keep their reservations
    - No totals stored; they are calculated from the lines on demand
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="draft_orders",
        help_text=_("Operator who owns this draft."),
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="draft_orders",
    )
    table = models.ForeignKey(
        "tabs.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="draft_orders",
    )
    is_on_hold = models.BooleanField(default=False)
    held_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    discount_type = models.CharField(
        max_length=20, choices=DiscountType.CHOICES, blank=True, default=""
    )
    discount_value = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["cashier", "is_on_hold"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["cashier"],
                condition=models.Q(is_on_hold=False),
                name="one_active_draft_per_cashier",
            ),
        ]

    def __str__(self):
        state = "held" if self.is_on_hold else "active"
        return f"Draft {str(self.id)[:8]} ({self.cashier}, {state})"

    @property
    def item_count(self):
        return sum(line.quantity for line in self.lines.all())


class DraftOrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    draft = models.ForeignKey(DraftOrder, on_delete=models.CASCADE, related_name="lines")
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, null=True, blank=True, related_name="draft_lines"
    )
    package = models.ForeignKey(
        Package, on_delete=models.PROTECT, null=True, blank=True, related_name="draft_lines"
    )
    item_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    price_context = models.CharField(
        max_length=20, choices=PriceContext.CHOICES, default=PriceContext.REGULAR
    )
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    notes = models.CharField(max_length=255, blank=True)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["added_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(product__isnull=False, package__isnull=True)
                    | models.Q(product__isnull=True, package__isnull=False)
                ),
                name="draft_line_product_xor_package",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.item_name}"

    @property
    def is_package(self):
        return self.package_id is not None

    def save(self, *args, **kwargs):
        self.subtotal = self.unit_price * self.quantity
        super().save(*args, **kwargs)
