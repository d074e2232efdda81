"""
Patrons a tab or draft can be attached to. The tier drives VIP pricing.
"""
import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    class Tier(models.TextChoices):
        REGULAR = "regular", _("Regular")
        VIP_SILVER = "vip_silver", _("VIP Silver")
        VIP_GOLD = "vip_gold", _("VIP Gold")
        VIP_PLATINUM = "vip_platinum", _("VIP Platinum")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    tier = models.CharField(
        max_length=20,
        choices=Tier.choices,
        default=Tier.REGULAR,
        help_text=_("Pricing tier. Any VIP tier unlocks product VIP prices."),
    )
    vip_expiry_date = models.DateField(
        null=True,
        blank=True,
        help_text=_("VIP pricing stops applying after this date. Blank means no expiry."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["first_name", "last_name"]
        indexes = [
            models.Index(fields=["tier"]),
            models.Index(fields=["phone_number"]),
        ]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_vip(self):
        if self.tier == self.Tier.REGULAR:
            return False
        if self.vip_expiry_date and self.vip_expiry_date < timezone.localdate():
            return False
        return True
