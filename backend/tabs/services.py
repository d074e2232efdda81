"""
Tab session lifecycle: open -> closed | abandoned, with table transfer while open.
"""
from decimal import Decimal
from typing import Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from core_backend.exceptions import (
    ConflictError,
    InvalidStateTransition,
    NotFound,
    PersistenceError,
    ValidationError,
)
from notifications.services import change_broadcaster
from orders.calculators import quantize
from .models import OrderSession, Table

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class TabService:
    """Service for tab sessions and the tables they occupy."""

    @staticmethod
    def get_session(session_id) -> OrderSession:
        try:
            return OrderSession.objects.select_related("table", "customer").get(pk=session_id)
        except (OrderSession.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Session", session_id)

    @staticmethod
    def get_table(table_id) -> Table:
        try:
            return Table.objects.get(pk=table_id)
        except (Table.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Table", table_id)

    @staticmethod
    def open_session_for_table(table) -> Optional[OrderSession]:
        if table is None:
            return None
        return OrderSession.objects.filter(table=table, status=OrderSession.SessionStatus.OPEN).first()

    @staticmethod
    def _require_open(session: OrderSession) -> None:
        if session.status != OrderSession.SessionStatus.OPEN:
            raise InvalidStateTransition("Session", session.get_status_display())

    # === OPENING ===

    @staticmethod
    @transaction.atomic
    def open_tab(*, table=None, customer=None, opened_by=None, notes="") -> OrderSession:
        if table is not None:
            table = Table.objects.select_for_update().get(pk=table.pk)
            if not table.is_active:
                raise ValidationError(f"Table {table.number} is not in service")
            if TabService.open_session_for_table(table):
                raise ConflictError("Table already has an active session")

        session = OrderSession.objects.create(
            table=table,
            customer=customer,
            opened_by=opened_by,
            notes=notes,
        )

        if table is not None:
            table.status = Table.TableStatus.OCCUPIED
            table.current_session = session
            table.save(update_fields=["status", "current_session"])

        logger.info(
            f"[TabService.open_tab] Opened {session.session_number}"
            f"{f' at table {table.number}' if table else ''}"
        )
        TabService._broadcast(session, "opened")
        return session

    @staticmethod
    @transaction.atomic
    def resolve_for_table(table=None, *, customer=None, opened_by=None) -> OrderSession:
        """The table's open tab, or a new one. Orders without a table get their own tab."""
        if table is not None:
            Table.objects.select_for_update().filter(pk=table.pk).first()
            session = TabService.open_session_for_table(table)
            if session is not None:
                if customer is not None and session.customer_id is None:
                    session.customer = customer
                    session.save(update_fields=["customer"])
                return session
        return TabService.open_tab(table=table, customer=customer, opened_by=opened_by)

    # === TOTALS ===

    @staticmethod
    @transaction.atomic
    def recalculate_totals(session: OrderSession) -> OrderSession:
        """Recompute the aggregates from the session's non-voided orders."""
        from orders.models import Order

        session = OrderSession.objects.select_for_update().get(pk=session.pk)
        aggregates = session.orders.exclude(status=Order.OrderStatus.VOIDED).aggregate(
            subtotal=Sum("subtotal"),
            discount=Sum("discount_amount"),
            tax=Sum("tax_amount"),
            total=Sum("total"),
        )
        session.subtotal = quantize(aggregates["subtotal"] or ZERO)
        session.discount_amount = quantize(aggregates["discount"] or ZERO)
        session.tax_amount = quantize(aggregates["tax"] or ZERO)
        session.total = quantize(aggregates["total"] or ZERO)
        session.save(update_fields=["subtotal", "discount_amount", "tax_amount", "total"])

        logger.debug(f"[TabService.recalculate_totals] {session.session_number}: total {session.total}")
        TabService._broadcast(session, "totals_updated", total=str(session.total))
        return session

    # === TRANSFER ===

    @staticmethod
    def transfer_table(session: OrderSession, new_table: Table, *, performed_by=None) -> OrderSession:
        """
        Move an open tab to another table. Validation happens before any write
        and all writes share one transaction, so a failure leaves both tables
        and every order exactly as they were.
        """
        try:
            return TabService._transfer_table(session, new_table, performed_by)
        except DatabaseError as e:
            logger.error(f"[TabService.transfer_table] Failed to move {session.session_number}: {e}")
            raise PersistenceError() from e

    @staticmethod
    @transaction.atomic
    def _transfer_table(session: OrderSession, new_table: Table, performed_by) -> OrderSession:
        session = OrderSession.objects.select_for_update().get(pk=session.pk)
        TabService._require_open(session)

        table_ids = sorted(pk for pk in (session.table_id, new_table.pk) if pk is not None)
        tables = {table.pk: table for table in Table.objects.select_for_update().filter(pk__in=table_ids)}
        new_table = tables[new_table.pk]
        old_table = tables.get(session.table_id)

        if old_table is not None and old_table.pk == new_table.pk:
            raise ValidationError(f"Session is already at table {new_table.number}")
        if not new_table.is_active:
            raise ValidationError(f"Table {new_table.number} is not in service")
        occupant = TabService.open_session_for_table(new_table)
        if occupant is not None:
            raise ConflictError(f"Table {new_table.number} already has an active session")
        if new_table.status == Table.TableStatus.RESERVED:
            raise ConflictError(f"Table {new_table.number} is reserved")

        session.table = new_table
        session.save(update_fields=["table"])

        if old_table is not None:
            TabService._free_table(old_table, session)

        new_table.status = Table.TableStatus.OCCUPIED
        new_table.current_session = session
        new_table.save(update_fields=["status", "current_session"])

        moved = session.orders.update(table=new_table)

        logger.info(
            f"[TabService.transfer_table] {session.session_number} moved from "
            f"{old_table.number if old_table else 'no table'} to {new_table.number} "
            f"({moved} orders) by {performed_by or 'system'}"
        )
        TabService._broadcast(
            session,
            "table_transferred",
            from_table=old_table.number if old_table else "",
            to_table=new_table.number,
        )
        return session

    # === SETTLEMENT ===

    @staticmethod
    @transaction.atomic
    def close_tab(
        session: OrderSession,
        *,
        closed_by=None,
        payment_method=OrderSession.PaymentMethod.CASH,
        amount_tendered=None,
    ) -> OrderSession:
        from orders.models import Order
        from orders.services import OrderService

        session = OrderSession.objects.select_for_update().get(pk=session.pk)
        TabService._require_open(session)

        if session.orders.filter(status=Order.OrderStatus.DRAFT).exists():
            raise ValidationError("Send or void saved orders before closing the tab")

        session = TabService.recalculate_totals(session)
        tendered = quantize(amount_tendered if amount_tendered is not None else session.total)
        if tendered < session.total:
            raise ValidationError(
                f"Amount tendered ({tendered}) is less than the tab total ({session.total})"
            )

        open_orders = session.orders.exclude(status__in=Order.TERMINAL_STATUSES)
        for order in open_orders:
            OrderService.mark_served(order)

        session.status = OrderSession.SessionStatus.CLOSED
        session.closed_at = timezone.now()
        session.closed_by = closed_by
        session.payment_method = payment_method
        session.amount_tendered = tendered
        session.change_due = quantize(tendered - session.total)
        session.save(
            update_fields=[
                "status",
                "closed_at",
                "closed_by",
                "payment_method",
                "amount_tendered",
                "change_due",
            ]
        )

        if session.table_id:
            TabService._free_table(Table.objects.select_for_update().get(pk=session.table_id), session)

        logger.info(
            f"[TabService.close_tab] Closed {session.session_number}: total {session.total}, "
            f"tendered {tendered}, change {session.change_due}"
        )
        TabService._broadcast(session, "closed")
        return session

    @staticmethod
    @transaction.atomic
    def abandon_tab(session: OrderSession, *, closed_by=None, reason: str = "") -> OrderSession:
        """End a tab without payment (walk-out, duplicate tab). The table is freed."""
        session = OrderSession.objects.select_for_update().get(pk=session.pk)
        TabService._require_open(session)

        session.status = OrderSession.SessionStatus.ABANDONED
        session.closed_at = timezone.now()
        session.closed_by = closed_by
        if reason:
            session.notes = f"{session.notes}\nAbandoned: {reason}".strip()
        session.save(update_fields=["status", "closed_at", "closed_by", "notes"])

        if session.table_id:
            TabService._free_table(Table.objects.select_for_update().get(pk=session.table_id), session)

        logger.warning(f"[TabService.abandon_tab] {session.session_number} abandoned by {closed_by or 'system'}")
        TabService._broadcast(session, "abandoned")
        return session

    @staticmethod
    def get_bill_preview(session: OrderSession) -> dict:
        from orders.models import Order

        orders = session.orders.exclude(status=Order.OrderStatus.VOIDED).prefetch_related("items")
        status_counts = dict(
            session.orders.values_list("status").annotate(count=Count("id")).values_list("status", "count")
        )
        return {
            "session_id": str(session.id),
            "session_number": session.session_number,
            "status": session.status,
            "table": session.table.number if session.table else None,
            "orders": [
                {
                    "order_number": order.order_number,
                    "status": order.status,
                    "total": order.total,
                    "items": [
                        {
                            "name": item.item_name,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                            "subtotal": item.subtotal,
                        }
                        for item in order.items.all()
                        if not item.is_voided
                    ],
                }
                for order in orders
            ],
            "orders_by_status": status_counts,
            "subtotal": session.subtotal,
            "discount": session.discount_amount,
            "tax": session.tax_amount,
            "total": session.total,
            "duration_minutes": session.duration_minutes,
        }

    @staticmethod
    def _free_table(table: Table, session: OrderSession) -> None:
        if table.current_session_id not in (None, session.pk):
            logger.warning(
                f"[TabService._free_table] Table {table.number} belongs to another session; left as is"
            )
            return
        table.status = Table.TableStatus.AVAILABLE
        table.current_session = None
        table.save(update_fields=["status", "current_session"])

    @staticmethod
    def _broadcast(session: OrderSession, change_kind: str, **data) -> None:
        change_broadcaster.publish(
            "session",
            session.id,
            change_kind,
            session_id=session.id,
            data=data,
        )
