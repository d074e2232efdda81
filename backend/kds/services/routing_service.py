from typing import List, Optional
import logging

from django.db import transaction

from orders.models import Order, OrderItem
from settings.config import app_settings
from settings.models import Destination
from ..models import KitchenTicket

logger = logging.getLogger(__name__)

BEVERAGE_KEYWORDS = (
    "beer", "wine", "whiskey", "vodka", "rum", "gin", "tequila",
    "cocktail", "mojito", "margarita", "juice", "soda", "water",
    "shake", "smoothie", "coffee", "tea", "latte", "cappuccino",
    "pale", "pilsen", "red horse", "san miguel", "bottle", "draft",
)

FOOD_KEYWORDS = (
    "sisig", "wings", "fries", "burger", "pizza", "pasta",
    "rice", "chicken", "pork", "beef", "fish", "seafood",
    "salad", "soup", "sandwich", "pulutan", "calamares",
    "lumpia", "adobo", "sinigang", "lechon", "barbecue", "grilled",
)


def destination_from_name(name: str) -> Optional[str]:
    """Guess a station from an item name. Drinks are checked before food."""
    lowered = (name or "").lower()
    if any(keyword in lowered for keyword in BEVERAGE_KEYWORDS):
        return Destination.BARTENDER
    if any(keyword in lowered for keyword in FOOD_KEYWORDS):
        return Destination.KITCHEN
    return None


def resolve_destination(product) -> str:
    """
    Station for a product: the nearest category in its chain with a default
    destination, else a keyword match on the product name, else the configured
    default station (the kitchen unless GlobalSettings says otherwise).
    """
    if product is None:
        return Destination.KITCHEN

    category = product.category
    if category is not None:
        for node in category.lineage():
            if node.default_destination:
                return node.default_destination

    return destination_from_name(product.name) or app_settings.default_destination


class KitchenRoutingService:
    """Turns confirmed order lines into station tickets."""

    @staticmethod
    def route_order(order: Order) -> List[KitchenTicket]:
        """
        Create tickets for every non-voided line of the order.

        Each line is routed in its own savepoint; a line that fails is logged
        and skipped while the rest of the order still reaches the stations.
        """
        tickets = []
        items = order.items.filter(is_voided=False).select_related(
            "product__category", "package"
        )
        for item in items:
            try:
                with transaction.atomic():
                    tickets.extend(KitchenRoutingService.route_item(order, item))
            except Exception as e:
                logger.error(
                    f"[KitchenRoutingService.route_order] Failed to route {item.item_name} "
                    f"on {order.order_number}: {e}"
                )

        logger.info(
            f"[KitchenRoutingService.route_order] {order.order_number}: {len(tickets)} tickets "
            f"({', '.join(sorted({t.destination for t in tickets})) or 'none'})"
        )
        from .ticket_service import TicketService

        TicketService.broadcast_created(tickets)
        return tickets

    @staticmethod
    def route_item(order: Order, item: OrderItem, *, quantity: Optional[int] = None, is_urgent=False, annotation="") -> List[KitchenTicket]:
        quantity = item.quantity if quantity is None else quantity
        if item.is_package:
            return KitchenRoutingService._route_package(order, item, quantity, is_urgent, annotation)

        ticket = KitchenTicket.objects.create(
            order=order,
            order_item=item,
            destination=resolve_destination(item.product),
            label=item.item_name,
            quantity=quantity,
            annotation=annotation or item.notes,
            is_urgent=is_urgent,
        )
        return [ticket]

    @staticmethod
    def _route_package(order, item, quantity, is_urgent, annotation) -> List[KitchenTicket]:
        package = item.package
        if package is None:
            logger.warning(
                f"[KitchenRoutingService._route_package] Package for line '{item.item_name}' "
                f"on {order.order_number} no longer exists; line not routed"
            )
            return []

        tickets = []
        for component in package.components():
            if component.product_id is None:
                logger.warning(
                    f"[KitchenRoutingService._route_package] Component '{component.name}' of "
                    f"{package.name} has no product; sending to the kitchen"
                )
                destination = Destination.KITCHEN
            else:
                destination = resolve_destination(component.product)

            note = f"Package: {package.name} (x{component.quantity})"
            if annotation:
                note = f"{annotation} - {note}"
            tickets.append(
                KitchenTicket.objects.create(
                    order=order,
                    order_item=item,
                    destination=destination,
                    label=component.name,
                    quantity=quantity * component.quantity,
                    annotation=note,
                    is_urgent=is_urgent,
                )
            )
        return tickets
