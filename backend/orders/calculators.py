"""
Order and draft financial calculators.

Drafts (preview) and committed orders (final) share one calculator so the
total an operator sees while building an order is the total that gets saved.

Usage:
    from orders.calculators import OrderCalculator
    totals = OrderCalculator(draft).calculate_totals()
    totals = OrderCalculator(order).calculate_totals()
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from core_backend.exceptions import ValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(amount) -> Decimal:
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class DiscountType:
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"

    CHOICES = [
        (PERCENTAGE, "Percentage"),
        (FIXED_AMOUNT, "Fixed Amount"),
    ]


def validate_discount(discount_type: Optional[str], value) -> Decimal:
    """Normalise an order-level discount, rejecting out-of-range values."""
    value = Decimal(str(value or 0))
    if not discount_type:
        if value:
            raise ValidationError("Discount type is required when a discount value is given")
        return ZERO
    if discount_type not in (DiscountType.PERCENTAGE, DiscountType.FIXED_AMOUNT):
        raise ValidationError(f"Unknown discount type '{discount_type}'")
    if value < 0:
        raise ValidationError("Discount cannot be negative")
    if discount_type == DiscountType.PERCENTAGE and value > 100:
        raise ValidationError("Percentage discount cannot exceed 100")
    return value


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    def as_dict(self):
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "total": self.total,
        }


class OrderCalculator:
    """
    Unified calculator for DraftOrder and Order.

    Supports both models via duck typing: drafts expose `.lines`, orders expose
    `.items` (voided items are skipped), and both carry `discount_type` and
    `discount_value`.
    """

    def __init__(self, source, tax_rate: Optional[Decimal] = None):
        self.source = source
        if tax_rate is None:
            from settings.config import app_settings
            tax_rate = app_settings.tax_rate
        self.tax_rate = Decimal(str(tax_rate))

    def _line_totals(self):
        if self.source.__class__.__name__ == "DraftOrder":
            return (line.subtotal for line in self.source.lines.all())
        return (item.subtotal for item in self.source.items.filter(is_voided=False))

    def calculate_subtotal(self) -> Decimal:
        return quantize(sum(self._line_totals(), ZERO))

    def calculate_discount(self, subtotal: Decimal) -> Decimal:
        discount_type = self.source.discount_type
        value = Decimal(str(self.source.discount_value or 0))
        if not discount_type or value <= 0:
            return ZERO
        if discount_type == DiscountType.PERCENTAGE:
            return quantize(subtotal * value / Decimal("100"))
        return quantize(min(value, subtotal))

    def calculate_tax(self, post_discount_subtotal: Decimal) -> Decimal:
        return quantize(post_discount_subtotal * self.tax_rate)

    def calculate_totals(self) -> Totals:
        subtotal = self.calculate_subtotal()
        discount = self.calculate_discount(subtotal)
        tax = self.calculate_tax(subtotal - discount)
        total = quantize(max(ZERO, subtotal - discount + tax))
        return Totals(subtotal=subtotal, discount=discount, tax=tax, total=total)
