from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from django.db.models import Q
from django.utils import timezone

from .models import HappyHour, HappyHourProduct

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


class PriceContext:
    REGULAR = "regular"
    VIP = "vip"
    HAPPY_HOUR = "happy_hour"

    CHOICES = [
        (REGULAR, "Regular"),
        (VIP, "VIP"),
        (HAPPY_HOUR, "Happy Hour"),
    ]


@dataclass(frozen=True)
class PriceQuote:
    unit_price: Decimal
    context: str
    base_price: Decimal
    happy_hour_id: Optional[int] = None


class PricingService:
    """
    Resolves the unit price a line is sold at.

    Order of precedence: a VIP customer pays the VIP price when one is set; a
    running happy hour replaces that price whenever it is lower.
    """

    @staticmethod
    def _quantize(amount) -> Decimal:
        return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    @staticmethod
    def running_happy_hours(product, moment=None, order_subtotal=None):
        moment = moment or timezone.now()
        candidates = HappyHour.objects.filter(is_active=True).filter(
            Q(applies_to_all_products=True) | Q(product_rules__product=product)
        ).distinct()

        running = []
        for happy_hour in candidates:
            if not happy_hour.is_running(moment):
                continue
            if happy_hour.min_order_amount and (
                order_subtotal is None or order_subtotal < happy_hour.min_order_amount
            ):
                continue
            running.append(happy_hour)
        return running

    @staticmethod
    def happy_hour_price(happy_hour, product) -> Decimal:
        rule = HappyHourProduct.objects.filter(happy_hour=happy_hour, product=product).first()
        if rule and rule.custom_price is not None:
            return rule.custom_price
        return happy_hour.discounted_price(product.base_price)

    @staticmethod
    def quote_product(product, customer=None, moment=None, order_subtotal=None) -> PriceQuote:
        price = product.base_price
        context = PriceContext.REGULAR

        if customer is not None and customer.is_vip and product.vip_price is not None:
            price = product.vip_price
            context = PriceContext.VIP

        happy_hour_id = None
        for happy_hour in PricingService.running_happy_hours(product, moment, order_subtotal):
            candidate = PricingService.happy_hour_price(happy_hour, product)
            if candidate < price:
                price = candidate
                context = PriceContext.HAPPY_HOUR
                happy_hour_id = happy_hour.pk

        if happy_hour_id:
            logger.debug(f"[PricingService.quote_product] {product.name} at happy hour price {price}")

        return PriceQuote(
            unit_price=PricingService._quantize(price),
            context=context,
            base_price=product.base_price,
            happy_hour_id=happy_hour_id,
        )

    @staticmethod
    def quote_package(package, customer=None) -> PriceQuote:
        if customer is not None and customer.is_vip and package.vip_price is not None:
            return PriceQuote(
                unit_price=PricingService._quantize(package.vip_price),
                context=PriceContext.VIP,
                base_price=package.price,
            )
        return PriceQuote(
            unit_price=PricingService._quantize(package.price),
            context=PriceContext.REGULAR,
            base_price=package.price,
        )
