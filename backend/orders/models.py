import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.utils.sequences import save_with_sequence
from customers.models import Customer
from orders.calculators import DiscountType
from products.models import Package, Product
from products.pricing import PriceContext


class Order(models.Model):
    # --- Status Fields ---
    class OrderStatus(models.TextChoices):
        DRAFT = "DRAFT", _("Draft")  # Saved, not yet sent to the stations
        CONFIRMED = "CONFIRMED", _("Confirmed")  # Sent to the stations, stock deducted
        PREPARING = "PREPARING", _("Preparing")
        READY = "READY", _("Ready")
        SERVED = "SERVED", _("Served")
        VOIDED = "VOIDED", _("Voided")

    TERMINAL_STATUSES = (OrderStatus.SERVED, OrderStatus.VOIDED)
    # Statuses whose stock has been deducted from the catalog
    COMMITTED_STATUSES = (
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.SERVED,
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=30, unique=True, blank=True)
    status = models.CharField(
        max_length=10, choices=OrderStatus.choices, default=OrderStatus.DRAFT
    )

    # --- Relationships ---
    session = models.ForeignKey(
        "tabs.OrderSession",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    table = models.ForeignKey(
        "tabs.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_as_cashier",
    )

    # --- Financial Fields ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_type = models.CharField(
        max_length=20, choices=DiscountType.CHOICES, blank=True, default=""
    )
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="voided_orders",
    )

    class Meta:
        ordering = ["-created_at", "order_number"]
        indexes = [
            models.Index(fields=["status", "-created_at"]),
            models.Index(fields=["session", "status"]),
            models.Index(fields=["cashier", "-created_at"]),
        ]

    def __str__(self):
        return f"Order {self.order_number or self.pk} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def stock_committed(self):
        return self.status in self.COMMITTED_STATUSES

    def save(self, *args, **kwargs):
        # Generate order_number only if it's not already set
        if self.order_number:
            super().save(*args, **kwargs)
            return

        from settings.config import app_settings

        save_with_sequence(
            self,
            "order_number",
            app_settings.order_number_prefix,
            4,
            lambda: super(Order, self).save(*args, **kwargs),
        )


class OrderItem(models.Model):
    """
    A committed line. Name and price are snapshots taken at confirmation and
    never follow later catalog edits.
    """

    class LineType(models.TextChoices):
        PRODUCT = "PRODUCT", _("Product")
        PACKAGE = "PACKAGE", _("Package")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    line_type = models.CharField(max_length=10, choices=LineType.choices, default=LineType.PRODUCT)
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="order_items", null=True, blank=True
    )
    package = models.ForeignKey(
        Package,
        on_delete=models.SET_NULL,
        related_name="order_items",
        null=True,
        blank=True,
        help_text=_("Cleared if the package is deleted; the line keeps its snapshot."),
    )
    item_name = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    price_context = models.CharField(
        max_length=20, choices=PriceContext.CHOICES, default=PriceContext.REGULAR
    )
    notes = models.CharField(max_length=255, blank=True)
    is_voided = models.BooleanField(default=False)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "is_voided"]),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.item_name} ({self.order.order_number})"

    @property
    def is_package(self):
        return self.line_type == self.LineType.PACKAGE

    def save(self, *args, **kwargs):
        self.subtotal = self.unit_price * self.quantity
        super().save(*args, **kwargs)
