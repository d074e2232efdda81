import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from mptt.models import MPTTModel, TreeForeignKey

from settings.models import Destination, StockPolicy


class Category(MPTTModel):
    name = models.CharField(
        max_length=100, unique=True, help_text=_("Name of the product category.")
    )
    description = models.TextField(
        blank=True, help_text=_("Description of the category.")
    )
    parent = TreeForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="children",
        help_text=_("Parent category for creating a hierarchy."),
    )
    order = models.IntegerField(
        default=0,
        help_text=_("Display order for this category. Lower numbers appear first."),
    )
    default_destination = models.CharField(
        max_length=10,
        choices=Destination.choices,
        null=True,
        blank=True,
        help_text=_(
            "Station that prepares items in this category. Blank inherits from the "
            "parent category, then falls back to name keywords."
        ),
    )
    stock_policy = models.CharField(
        max_length=10,
        choices=StockPolicy.choices,
        null=True,
        blank=True,
        help_text=_(
            "Strict categories block overselling; advisory ones only warn. "
            "Blank inherits from the parent category."
        ),
    )
    is_active = models.BooleanField(default=True, db_index=True)

    class MPTTMeta:
        order_insertion_by = ["order", "name"]

    class Meta:
        verbose_name = _("Category")
        verbose_name_plural = _("Categories")
        ordering = ["order", "name"]

    def __str__(self):
        return self.name

    def lineage(self):
        """This category followed by its ancestors, nearest first."""
        return self.get_ancestors(ascending=True, include_self=True)


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, help_text=_("Name of the product."))
    description = models.TextField(blank=True)
    category = models.ForeignKey(
        Category,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text=_("Product category. Leave blank for uncategorized products."),
    )
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Regular selling price."),
    )
    vip_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Price for VIP customers. Blank means VIPs pay the base price."),
    )
    current_stock = models.IntegerField(
        default=0,
        help_text=_("Durable stock on hand. Only confirmed orders move this value."),
    )
    low_stock_threshold = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Quantity at or below which stock is reported as low. Blank uses the store default."),
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Product")
        verbose_name_plural = _("Products")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category", "is_active"], name="product_category_active_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return self.name

    @property
    def category_display_name(self):
        return self.category.name if self.category else "Uncategorized"

    @property
    def stock_policy(self):
        from .policies import resolve_stock_policy
        return resolve_stock_policy(self)


class Package(models.Model):
    """A bundle sold at one price whose components are prepared separately."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    vip_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def components(self):
        """PackageItem rows in display order."""
        return list(self.items.select_related("product__category"))


class PackageItem(models.Model):
    package = models.ForeignKey(Package, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        related_name="package_memberships",
        help_text=_("Cleared if the product is deleted; the component then prints by name only."),
    )
    component_name = models.CharField(
        max_length=200,
        blank=True,
        help_text=_("Product name captured when the component was added."),
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("How many of this product one package contains."),
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["package", "product"], name="unique_package_component"),
        ]

    def __str__(self):
        return f"{self.package.name}: {self.quantity} x {self.name}"

    @property
    def name(self):
        return self.product.name if self.product else self.component_name or "Package component"

    def save(self, *args, **kwargs):
        if self.product and not self.component_name:
            self.component_name = self.product.name
        super().save(*args, **kwargs)


class HappyHour(models.Model):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED_AMOUNT = "fixed_amount", _("Fixed Amount")
        COMPLIMENTARY = "complimentary", _("Complimentary")

    name = models.CharField(max_length=100)
    start_time = models.TimeField()
    end_time = models.TimeField(
        help_text=_("An end time earlier than the start time runs past midnight."),
    )
    days_of_week = models.JSONField(
        default=list,
        blank=True,
        help_text=_("ISO weekdays (1=Monday .. 7=Sunday). Empty means every day."),
    )
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    discount_type = models.CharField(
        max_length=20, choices=DiscountType.choices, default=DiscountType.PERCENTAGE
    )
    discount_value = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    applies_to_all_products = models.BooleanField(default=False)
    min_order_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    products = models.ManyToManyField(
        Product, through="HappyHourProduct", related_name="happy_hours", blank=True
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["start_time"]

    def __str__(self):
        return f"{self.name} ({self.start_time:%H:%M}-{self.end_time:%H:%M})"

    def is_running(self, moment=None):
        """Whether the promotion applies at `moment` (local time, defaults to now)."""
        if not self.is_active:
            return False

        moment = timezone.localtime(moment or timezone.now())
        today = moment.date()
        if self.valid_from and today < self.valid_from:
            return False
        if self.valid_until and today > self.valid_until:
            return False
        if self.days_of_week and moment.isoweekday() not in self.days_of_week:
            return False

        now = moment.time()
        if self.start_time <= self.end_time:
            return self.start_time <= now <= self.end_time
        return now >= self.start_time or now <= self.end_time

    def discounted_price(self, base_price):
        if self.discount_type == self.DiscountType.COMPLIMENTARY:
            return Decimal("0.00")
        if self.discount_type == self.DiscountType.FIXED_AMOUNT:
            return max(Decimal("0.00"), base_price - self.discount_value)
        return base_price * (Decimal("100") - self.discount_value) / Decimal("100")


class HappyHourProduct(models.Model):
    happy_hour = models.ForeignKey(HappyHour, on_delete=models.CASCADE, related_name="product_rules")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="happy_hour_rules")
    custom_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Fixed happy hour price. Blank applies the happy hour discount."),
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["happy_hour", "product"], name="unique_happy_hour_product"),
        ]
