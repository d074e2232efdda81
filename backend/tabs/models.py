import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.utils.sequences import save_with_sequence


class Table(models.Model):
    class TableStatus(models.TextChoices):
        AVAILABLE = "AVAILABLE", _("Available")
        OCCUPIED = "OCCUPIED", _("Occupied")
        RESERVED = "RESERVED", _("Reserved")

    number = models.CharField(max_length=20, unique=True, help_text=_("Label shown to staff, e.g. '12' or 'B3'."))
    capacity = models.PositiveIntegerField(default=4)
    section = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=10, choices=TableStatus.choices, default=TableStatus.AVAILABLE
    )
    current_session = models.ForeignKey(
        "OrderSession",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text=_("Open tab currently seated at this table."),
    )
    is_active = models.BooleanField(default=True, help_text=_("Inactive tables cannot be seated."))

    class Meta:
        ordering = ["number"]
        indexes = [
            models.Index(fields=["status", "is_active"]),
        ]

    def __str__(self):
        return f"Table {self.number}"

    @property
    def is_available(self):
        return self.is_active and self.status == self.TableStatus.AVAILABLE


class OrderSession(models.Model):
    """
    A running tab: every order placed for one table (or patron) until the bill
    is settled or the party walks out.

    Totals are never patched incrementally; they are recomputed from the
    session's non-voided orders after each confirm, modification and void.
    """

    class SessionStatus(models.TextChoices):
        OPEN = "OPEN", _("Open")
        CLOSED = "CLOSED", _("Closed")
        ABANDONED = "ABANDONED", _("Abandoned")

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        GCASH = "GCASH", _("GCash")
        OTHER = "OTHER", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session_number = models.CharField(max_length=30, unique=True, blank=True)
    status = models.CharField(
        max_length=10, choices=SessionStatus.choices, default=SessionStatus.OPEN
    )
    table = models.ForeignKey(
        Table, on_delete=models.SET_NULL, null=True, blank=True, related_name="sessions"
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sessions",
    )

    # --- Aggregates (recomputed from orders) ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    # --- Settlement ---
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, blank=True)
    amount_tendered = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    change_due = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    opened_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)
    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opened_sessions",
    )
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="closed_sessions",
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-opened_at"]
        indexes = [
            models.Index(fields=["status", "-opened_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["table"],
                condition=models.Q(status="OPEN"),
                name="one_open_session_per_table",
            ),
        ]

    def __str__(self):
        return f"{self.session_number} ({self.status})"

    @property
    def is_open(self):
        return self.status == self.SessionStatus.OPEN

    @property
    def duration_minutes(self):
        end = self.closed_at or timezone.now()
        return int((end - self.opened_at).total_seconds() / 60)

    def save(self, *args, **kwargs):
        if self.session_number:
            super().save(*args, **kwargs)
            return

        from settings.config import app_settings

        save_with_sequence(
            self,
            "session_number",
            app_settings.session_number_prefix,
            3,
            lambda: super(OrderSession, self).save(*args, **kwargs),
        )
