from typing import List
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFound, PersistenceError, ValidationError
from inventory.models import StockMovement
from inventory.services import InventoryService, StockRequirement
from kds.models import TicketStatus
from kds.services import KitchenRoutingService, TicketService
from notifications.services import change_broadcaster
from orders.calculators import OrderCalculator
from orders.models import Order
from users.services import AuthorizationService

logger = logging.getLogger(__name__)


class OrderService:
    """Core order lifecycle: confirm, status changes, void."""

    VALID_STATUS_TRANSITIONS = {
        Order.OrderStatus.DRAFT: [Order.OrderStatus.CONFIRMED, Order.OrderStatus.VOIDED],
        Order.OrderStatus.CONFIRMED: [Order.OrderStatus.PREPARING, Order.OrderStatus.VOIDED],
        Order.OrderStatus.PREPARING: [Order.OrderStatus.READY, Order.OrderStatus.VOIDED],
        Order.OrderStatus.READY: [Order.OrderStatus.SERVED, Order.OrderStatus.VOIDED],
        Order.OrderStatus.SERVED: [],
        Order.OrderStatus.VOIDED: [],
    }

    # Position in the forward flow, used when tickets drive the order status
    STATUS_RANK = {
        Order.OrderStatus.DRAFT: 0,
        Order.OrderStatus.CONFIRMED: 1,
        Order.OrderStatus.PREPARING: 2,
        Order.OrderStatus.READY: 3,
        Order.OrderStatus.SERVED: 4,
    }

    @staticmethod
    def get_order(order_id) -> Order:
        try:
            return Order.objects.select_related("session", "table", "customer").get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Order", order_id)

    @staticmethod
    def _check_transition(order: Order, new_status) -> None:
        allowed = OrderService.VALID_STATUS_TRANSITIONS.get(order.status, [])
        if new_status not in allowed:
            if order.is_terminal:
                raise InvalidStateTransition("Order", order.get_status_display())
            raise InvalidStateTransition("Order", order.get_status_display(), new_status)

    @staticmethod
    def requirements_for_order(order: Order) -> List[StockRequirement]:
        return [
            requirement
            for item in order.items.filter(is_voided=False).select_related("product", "package")
            for requirement in InventoryService.requirements_for_line(item)
        ]

    # === TOTALS ===

    @staticmethod
    def recalculate_totals(order: Order) -> Order:
        totals = OrderCalculator(order).calculate_totals()
        order.subtotal = totals.subtotal
        order.discount_amount = totals.discount
        order.tax_amount = totals.tax
        order.total = totals.total
        order.save(update_fields=["subtotal", "discount_amount", "tax_amount", "total", "updated_at"])
        return order

    @staticmethod
    def _recalculate_session(order: Order) -> None:
        from tabs.services import TabService

        if order.session_id:
            TabService.recalculate_totals(order.session)

    # === CONFIRMATION ===

    @staticmethod
    def commit_and_route(order: Order, committed: list, performed_by=None) -> Order:
        """
        Deduct stock for every line, mark the order confirmed and send it to the
        stations. Must run inside the caller's transaction; `committed` collects
        what was deducted so the caller can reinstate it on rollback.
        """
        InventoryService.commit(
            OrderService.requirements_for_order(order),
            order=order,
            performed_by=performed_by,
            committed=committed,
        )
        order.status = Order.OrderStatus.CONFIRMED
        order.confirmed_at = timezone.now()
        order.save(update_fields=["status", "confirmed_at", "updated_at"])
        KitchenRoutingService.route_order(order)
        return order

    @staticmethod
    def confirm_order(order: Order, *, confirmed_by=None) -> Order:
        """Send a saved (draft) order to the stations."""
        OrderService._check_transition(order, Order.OrderStatus.CONFIRMED)
        requirements = OrderService.requirements_for_order(order)
        if not requirements and not order.items.filter(is_voided=False).exists():
            raise ValidationError("Cannot confirm an order with no items")
        InventoryService.verify_available(requirements)

        committed = []
        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(pk=order.pk)
                OrderService._check_transition(order, Order.OrderStatus.CONFIRMED)
                OrderService.commit_and_route(order, committed, performed_by=confirmed_by)
                OrderService._recalculate_session(order)
        except DatabaseError as e:
            InventoryService.reinstate(committed)
            logger.error(f"[OrderService.confirm_order] Failed to confirm {order.order_number}: {e}")
            raise PersistenceError() from e
        except Exception:
            InventoryService.reinstate(committed)
            raise

        logger.info(f"[OrderService.confirm_order] Confirmed {order.order_number} ({order.total})")
        OrderService._broadcast(order, "confirmed")
        return order

    # === STATUS ===

    @staticmethod
    def update_order_status(order: Order, new_status, *, performed_by=None) -> Order:
        """
        Move an order along draft -> confirmed -> preparing -> ready -> served.
        Voiding needs an approver and goes through `void_order`.
        """
        if new_status == Order.OrderStatus.VOIDED:
            raise ValidationError("Voiding an order requires authorization")
        if new_status == Order.OrderStatus.CONFIRMED:
            return OrderService.confirm_order(order, confirmed_by=performed_by)

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            OrderService._check_transition(order, new_status)
            if new_status == Order.OrderStatus.SERVED:
                return OrderService.mark_served(order)

            order.status = new_status
            order.save(update_fields=["status", "updated_at"])

        logger.info(f"[OrderService.update_order_status] {order.order_number} -> {new_status}")
        OrderService._broadcast(order, "status_changed")
        return order

    @staticmethod
    @transaction.atomic
    def mark_served(order: Order) -> Order:
        TicketService.serve_for_order(order)
        order.status = Order.OrderStatus.SERVED
        order.served_at = timezone.now()
        order.save(update_fields=["status", "served_at", "updated_at"])
        logger.info(f"[OrderService.mark_served] {order.order_number} served")
        OrderService._broadcast(order, "served")
        return order

    @staticmethod
    def sync_status_from_tickets(order: Order) -> Order:
        """
        Let the order follow its tickets: all served -> served, all ready or
        served -> ready, any started -> preparing. The order never moves back.
        """
        order.refresh_from_db(fields=["status"])
        if order.status not in (
            Order.OrderStatus.CONFIRMED,
            Order.OrderStatus.PREPARING,
            Order.OrderStatus.READY,
        ):
            return order

        statuses = set(order.tickets.exclude(status=TicketStatus.VOIDED).values_list("status", flat=True))
        if not statuses:
            return order

        if statuses == {TicketStatus.SERVED}:
            target = Order.OrderStatus.SERVED
        elif statuses <= {TicketStatus.READY, TicketStatus.SERVED}:
            target = Order.OrderStatus.READY
        elif statuses & {TicketStatus.PREPARING, TicketStatus.READY, TicketStatus.SERVED}:
            target = Order.OrderStatus.PREPARING
        else:
            return order

        if OrderService.STATUS_RANK[target] <= OrderService.STATUS_RANK[order.status]:
            return order

        order.status = target
        update_fields = ["status", "updated_at"]
        if target == Order.OrderStatus.SERVED:
            order.served_at = timezone.now()
            update_fields.append("served_at")
        order.save(update_fields=update_fields)

        logger.info(f"[OrderService.sync_status_from_tickets] {order.order_number} -> {target}")
        OrderService._broadcast(order, "status_changed")
        return order

    # === VOID ===

    @staticmethod
    def void_order(order: Order, *, reason: str, authorized_by) -> Order:
        """
        Void an order that has not been served. Committed stock goes back to the
        catalog; a saved draft only gives back its reservations.
        """
        AuthorizationService.ensure_privileged(authorized_by, "void orders")
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to void an order")
        OrderService._check_transition(order, Order.OrderStatus.VOIDED)

        requirements = OrderService.requirements_for_order(order)
        was_committed = order.stock_committed
        try:
            with transaction.atomic():
                order = Order.objects.select_for_update().get(pk=order.pk)
                OrderService._check_transition(order, Order.OrderStatus.VOIDED)
                was_committed = order.stock_committed

                if was_committed:
                    InventoryService.restore(
                        requirements,
                        movement_type=StockMovement.MovementType.VOID_RETURN,
                        order=order,
                        performed_by=authorized_by,
                        notes=reason,
                    )
                TicketService.void_for_order(order)

                order.status = Order.OrderStatus.VOIDED
                order.voided_at = timezone.now()
                order.voided_by = authorized_by
                order.void_reason = reason.strip()
                order.save(update_fields=["status", "voided_at", "voided_by", "void_reason", "updated_at"])
                OrderService._recalculate_session(order)
        except DatabaseError as e:
            if was_committed:
                InventoryService.resync(requirements)
            logger.error(f"[OrderService.void_order] Failed to void {order.order_number}: {e}")
            raise PersistenceError() from e

        if not was_committed:
            InventoryService.release(requirements)

        logger.warning(
            f"[OrderService.void_order] {order.order_number} voided by {authorized_by.username}: {reason}"
        )
        OrderService._broadcast(order, "voided", reason=order.void_reason)
        return order

    @staticmethod
    def _broadcast(order: Order, change_kind: str, **data) -> None:
        change_broadcaster.publish(
            "order",
            order.id,
            change_kind,
            operator_id=order.cashier_id,
            session_id=order.session_id,
            data={"order_number": order.order_number, "status": order.status, **data},
        )
