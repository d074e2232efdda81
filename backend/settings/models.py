from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _


class StockPolicy(models.TextChoices):
    STRICT = "strict", _("Strict (block overselling)")
    ADVISORY = "advisory", _("Advisory (warn only)")


class Destination(models.TextChoices):
    KITCHEN = "kitchen", _("Kitchen")
    BARTENDER = "bartender", _("Bartender")
    BOTH = "both", _("Kitchen and Bartender")


class GlobalSettings(models.Model):
    """
    Store-wide business rules for the order engine.

    Only one row is ever stored; `GlobalSettings.load()` returns it (or an
    unsaved instance carrying the defaults). Business logic should read these
    values through `settings.config.app_settings` instead of querying the model.
    """

    business_name = models.CharField(
        max_length=100,
        default="Bar POS",
        help_text=_("Name printed on bills and shown on station displays."),
    )
    currency = models.CharField(
        max_length=3,
        default="PHP",
        help_text=_("Three-letter currency code (ISO 4217)."),
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text=_("Tax rate applied to the discounted subtotal (e.g. 0.12 for 12%)."),
    )

    # === STOCK RULES ===
    default_stock_policy = models.CharField(
        max_length=10,
        choices=StockPolicy.choices,
        default=StockPolicy.ADVISORY,
        help_text=_("Policy for products whose category chain sets none and is not a drink category."),
    )
    low_stock_threshold = models.PositiveIntegerField(
        default=10,
        help_text=_("Default quantity at or below which an item is reported as low stock."),
    )

    # === ROUTING ===
    default_destination = models.CharField(
        max_length=10,
        choices=Destination.choices,
        default=Destination.KITCHEN,
        help_text=_("Station that receives tickets no category or keyword rule can place."),
    )

    # === NUMBERING ===
    order_number_prefix = models.CharField(max_length=10, default="ORD")
    session_number_prefix = models.CharField(max_length=10, default="TAB")

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Global Settings")
        verbose_name_plural = _("Global Settings")

    def __str__(self):
        return f"Global settings ({self.business_name})"

    def clean(self):
        if self.tax_rate < 0 or self.tax_rate >= 1:
            raise ValidationError({"tax_rate": _("Tax rate must be between 0 and 1.")})

    def save(self, *args, **kwargs):
        if not self.pk and GlobalSettings.objects.exists():
            raise ValidationError(_("Only one GlobalSettings row may exist."))
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        return cls.objects.first() or cls()
