from typing import Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFound, PersistenceError, ValidationError
from inventory.models import StockMovement
from inventory.services import InventoryService
from kds.models import KitchenTicket, TicketStatus
from kds.services import KitchenRoutingService, TicketService
from orders.models import Order, OrderItem
from users.services import AuthorizationService

logger = logging.getLogger(__name__)


class OrderItemService:
    """Service for changing lines of orders that were already sent to the stations."""

    # Orders follow their tickets, so an order whose preparation has started
    # is PREPARING rather than CONFIRMED; both may still be modified.
    MODIFIABLE_STATUSES = (Order.OrderStatus.CONFIRMED, Order.OrderStatus.PREPARING)

    @staticmethod
    def get_item(order: Order, item_id) -> OrderItem:
        try:
            return order.items.select_related("product", "package").get(pk=item_id, is_voided=False)
        except (OrderItem.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Order item", item_id)

    @staticmethod
    def _check_modifiable(order: Order) -> None:
        if order.status not in OrderItemService.MODIFIABLE_STATUSES:
            raise InvalidStateTransition(
                "Order",
                order.get_status_display(),
                message=f"Cannot modify an order that is {order.get_status_display().lower()}",
            )

    @staticmethod
    def _kitchen_started(item: OrderItem) -> bool:
        return item.tickets.filter(status__in=[TicketStatus.PREPARING, TicketStatus.READY]).exists()

    @staticmethod
    def reduce_item_quantity(
        item: OrderItem, new_quantity: int, *, modified_by, reason: str = ""
    ) -> OrderItem:
        """
        Lower the quantity of a sent line and return the difference to stock.

        Pending tickets for the line are voided and re-sent with the new
        quantity. When a station already started the line, an urgent ticket
        flagged MODIFIED goes out instead so the change is noticed.
        """
        from .order_service import OrderService

        AuthorizationService.ensure_privileged(modified_by, "modify sent orders")
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise ValidationError("Quantity must be a whole number")
        if new_quantity <= 0:
            raise ValidationError("Quantity must be greater than 0. Remove the item instead.")
        if new_quantity >= item.quantity:
            raise ValidationError(
                f"New quantity ({new_quantity}) must be less than the current quantity ({item.quantity})"
            )

        order = item.order
        OrderItemService._check_modifiable(order)
        old_quantity = item.quantity
        returned = InventoryService.requirements_for_line(item, old_quantity - new_quantity)

        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(pk=order.pk)
                OrderItemService._check_modifiable(order)

                InventoryService.restore(
                    returned,
                    movement_type=StockMovement.MovementType.MODIFICATION_RETURN,
                    order=order,
                    performed_by=modified_by,
                    notes=reason or f"{item.item_name}: {old_quantity} -> {new_quantity}",
                )

                item.quantity = new_quantity
                item.save()

                OrderItemService._resend_tickets(order, item, old_quantity, new_quantity)
                OrderService.recalculate_totals(order)
                OrderService._recalculate_session(order)
        except DatabaseError as e:
            InventoryService.resync(returned)
            logger.error(f"[OrderItemService.reduce_item_quantity] Failed to modify {item.item_name}: {e}")
            raise PersistenceError() from e

        logger.info(
            f"[OrderItemService.reduce_item_quantity] {order.order_number}: {item.item_name} "
            f"{old_quantity} -> {new_quantity} by {modified_by.username}"
        )
        OrderService._broadcast(order, "item_modified", item_id=str(item.id), quantity=new_quantity)
        return item

    @staticmethod
    def _resend_tickets(order: Order, item: OrderItem, old_quantity: int, new_quantity: int) -> None:
        tickets = item.tickets.exclude(status__in=KitchenTicket.TERMINAL_STATUSES)
        if not tickets.exists():
            return

        started = OrderItemService._kitchen_started(item)
        TicketService.close_tickets(tickets.filter(status=TicketStatus.PENDING), TicketStatus.VOIDED)

        if started:
            new_tickets = KitchenRoutingService.route_item(
                order,
                item,
                quantity=new_quantity,
                is_urgent=True,
                annotation=f"MODIFIED: Changed from {old_quantity} to {new_quantity} units",
            )
        else:
            new_tickets = KitchenRoutingService.route_item(order, item, quantity=new_quantity)
        TicketService.broadcast_created(new_tickets)

    @staticmethod
    def remove_item(item: OrderItem, *, modified_by, reason: str = "") -> Optional[Order]:
        """
        Void a sent line, returning all of its stock. Removing the last
        remaining line voids the whole order.
        """
        from .order_service import OrderService

        AuthorizationService.ensure_privileged(modified_by, "modify sent orders")
        order = item.order
        OrderItemService._check_modifiable(order)

        if not order.items.filter(is_voided=False).exclude(pk=item.pk).exists():
            logger.info(
                f"[OrderItemService.remove_item] Last item of {order.order_number} removed; voiding order"
            )
            return OrderService.void_order(
                order, reason=reason or f"Removed last item: {item.item_name}", authorized_by=modified_by
            )

        returned = InventoryService.requirements_for_line(item)
        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(pk=order.pk)
                OrderItemService._check_modifiable(order)

                InventoryService.restore(
                    returned,
                    movement_type=StockMovement.MovementType.MODIFICATION_RETURN,
                    order=order,
                    performed_by=modified_by,
                    notes=reason or f"Removed {item.item_name}",
                )
                TicketService.void_for_item(item)

                item.is_voided = True
                item.voided_at = timezone.now()
                item.save(update_fields=["is_voided", "voided_at"])

                OrderService.recalculate_totals(order)
                OrderService._recalculate_session(order)
        except DatabaseError as e:
            InventoryService.resync(returned)
            logger.error(f"[OrderItemService.remove_item] Failed to remove {item.item_name}: {e}")
            raise PersistenceError() from e

        logger.info(
            f"[OrderItemService.remove_item] Removed {item.item_name} from {order.order_number} "
            f"by {modified_by.username}"
        )
        OrderService._broadcast(order, "item_removed", item_id=str(item.id))
        return order
