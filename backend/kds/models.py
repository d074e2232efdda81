import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from orders.models import Order, OrderItem
from settings.models import Destination


class TicketStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PREPARING = "preparing", _("Preparing")
    READY = "ready", _("Ready")
    SERVED = "served", _("Served")
    VOIDED = "voided", _("Voided")


class KitchenTicketManager(models.Manager):
    """Custom manager for station queues"""

    def get_optimized_queryset(self):
        return self.select_related("order", "order_item", "order__table")

    def active(self):
        return self.get_optimized_queryset().filter(
            status__in=[TicketStatus.PENDING, TicketStatus.PREPARING, TicketStatus.READY]
        )

    def for_station(self, destination):
        """Open tickets a station must work on; `both` tickets show everywhere."""
        return (
            self.active()
            .filter(destination__in=[destination, Destination.BOTH])
            .order_by("-is_urgent", "sent_at")
        )


class KitchenTicket(models.Model):
    """
    One unit of preparation work. A simple line yields one ticket; a package
    line yields one ticket per component, labeled with the component's name.
    """

    TERMINAL_STATUSES = (TicketStatus.SERVED, TicketStatus.VOIDED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tickets")
    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="tickets",
        help_text=_("Order line this ticket was routed from."),
    )
    destination = models.CharField(max_length=10, choices=Destination.choices, db_index=True)
    label = models.CharField(max_length=200, help_text=_("What to prepare, e.g. the component name."))
    quantity = models.PositiveIntegerField(default=1)
    annotation = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Context for the station, e.g. 'Package: Bucket Deal (x2)'."),
    )
    status = models.CharField(
        max_length=10, choices=TicketStatus.choices, default=TicketStatus.PENDING, db_index=True
    )
    is_urgent = models.BooleanField(default=False)

    sent_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    objects = KitchenTicketManager()

    class Meta:
        ordering = ["sent_at"]
        indexes = [
            models.Index(fields=["destination", "status"]),
            models.Index(fields=["order", "status"]),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.label} -> {self.destination} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def prep_time_minutes(self):
        if self.started_at and self.ready_at:
            return round((self.ready_at - self.started_at).total_seconds() / 60, 1)
        return None
