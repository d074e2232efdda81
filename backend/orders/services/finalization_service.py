"""
Workspace -> committed order.

Flow:
1. Re-check every line against the catalog (active, strict stock covered)
2. Find or open the tab for the workspace's table
3. Create the order and its item snapshots
4. On confirm: deduct stock and route tickets to the stations
5. Recompute the tab totals
6. Delete the workspace

Steps 2-6 share one transaction. If it rolls back, stock deducted from the
in-memory tracker is reinstated and the workspace is left as it was.
"""
import logging

from django.db import DatabaseError, transaction

from core_backend.exceptions import PersistenceError, ValidationError
from inventory.services import InventoryService
from notifications.services import change_broadcaster
from orders.calculators import OrderCalculator
from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)


class FinalizationService:

    @staticmethod
    def finalize(workspace, operator, *, send_to_kitchen: bool = True) -> Order:
        """
        Convert the operator's workspace into an order.

        With `send_to_kitchen=False` the order is saved as a draft: its
        reservations stay held and nothing is deducted or routed until
        `OrderService.confirm_order`.
        """
        from cart.services import WorkspaceService
        from tabs.services import TabService
        from .order_service import OrderService

        WorkspaceService._check_owner(workspace, operator)
        workspace_id = workspace.pk
        lines = list(workspace.lines.select_related("product", "package"))
        if not lines:
            raise ValidationError("Cannot confirm an empty order")

        requirements = [
            requirement
            for line in lines
            for requirement in InventoryService.requirements_for_line(line)
        ]
        InventoryService.verify_available(requirements)
        totals = OrderCalculator(workspace).calculate_totals()

        committed = []
        try:
            with transaction.atomic():
                session = TabService.resolve_for_table(
                    workspace.table, customer=workspace.customer, opened_by=operator
                )

                order = Order.objects.create(
                    status=Order.OrderStatus.DRAFT,
                    session=session,
                    table=workspace.table,
                    customer=workspace.customer,
                    cashier=operator,
                    notes=workspace.notes,
                    discount_type=workspace.discount_type,
                    discount_value=workspace.discount_value,
                    subtotal=totals.subtotal,
                    discount_amount=totals.discount,
                    tax_amount=totals.tax,
                    total=totals.total,
                )
                OrderItem.objects.bulk_create(
                    [FinalizationService._snapshot(order, line) for line in lines]
                )

                if send_to_kitchen:
                    OrderService.commit_and_route(order, committed, performed_by=operator)

                TabService.recalculate_totals(session)
                workspace.delete()
        except DatabaseError as e:
            InventoryService.reinstate(committed)
            logger.error(
                f"[FinalizationService.finalize] Failed to persist workspace {workspace_id} "
                f"for {operator}: {e}"
            )
            raise PersistenceError() from e
        except Exception:
            InventoryService.reinstate(committed)
            raise

        logger.info(
            f"[FinalizationService.finalize] {order.order_number} ({order.status}) on "
            f"{session.session_number}: {len(lines)} lines, total {order.total}"
        )
        change_broadcaster.publish(
            "workspace", workspace_id, "finalized", operator_id=operator.pk,
            data={"order_id": str(order.id)},
        )
        OrderService._broadcast(order, "created")
        return order

    @staticmethod
    def _snapshot(order: Order, line) -> OrderItem:
        item = OrderItem(
            order=order,
            line_type=OrderItem.LineType.PACKAGE if line.is_package else OrderItem.LineType.PRODUCT,
            product=line.product,
            package=line.package,
            item_name=line.item_name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            price_context=line.price_context,
            notes=line.notes,
        )
        item.subtotal = item.unit_price * item.quantity
        return item
