"""
Tab Session Tests

Tests for tabs on tables: opening, table transfer, settlement, abandonment
and the running bill.
"""
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from cart.services import WorkspaceService
from core_backend.exceptions import ConflictError, InvalidStateTransition, PersistenceError, ValidationError
from kds.models import TicketStatus
from orders.models import Order
from orders.services import FinalizationService
from tabs.models import OrderSession, Table
from tabs.services import TabService


@pytest.fixture
def order_at(cashier):
    def _order(table, *lines, send_to_kitchen=True):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.set_table(workspace, cashier, table)
        for product, quantity in lines:
            WorkspaceService.add_line(workspace, cashier, product=product, quantity=quantity)
        return FinalizationService.finalize(workspace, cashier, send_to_kitchen=send_to_kitchen)

    return _order


@pytest.mark.django_db
class TestOpenTab:
    """One open tab per table"""

    def test_open_tab_occupies_table(self, table_one, cashier):
        session = TabService.open_tab(table=table_one, opened_by=cashier)

        table_one.refresh_from_db()
        assert session.status == OrderSession.SessionStatus.OPEN
        assert session.session_number.startswith("TAB-")
        assert table_one.status == Table.TableStatus.OCCUPIED
        assert table_one.current_session_id == session.pk

    def test_second_tab_on_same_table_conflicts(self, table_one):
        TabService.open_tab(table=table_one)

        with pytest.raises(ConflictError) as exc_info:
            TabService.open_tab(table=table_one)

        assert exc_info.value.message == "Table already has an active session"

    def test_session_numbers_increase(self, table_one, table_two):
        first = TabService.open_tab(table=table_one)
        second = TabService.open_tab(table=table_two)

        assert first.session_number[:-3] == second.session_number[:-3]
        assert int(second.session_number[-3:]) == int(first.session_number[-3:]) + 1

    def test_inactive_table_rejected(self, table_one):
        table_one.is_active = False
        table_one.save()

        with pytest.raises(ValidationError):
            TabService.open_tab(table=table_one)


@pytest.mark.django_db
class TestTransferTable:
    """Moving an open tab to another table"""

    def test_transfer_moves_session_and_orders(self, order_at, table_one, table_two, beer, sisig, cashier):
        """
        CRITICAL: Verify every part of the transfer lands together.

        Scenario:
        - Tab on table 1 with two orders
        - Transfer to table 2
        - Expected: table 1 available, table 2 occupied, both orders on table 2
        """
        first = order_at(table_one, (beer, 1))
        order_at(table_one, (sisig, 1))
        session = OrderSession.objects.get(pk=first.session_id)

        session = TabService.transfer_table(session, table_two, performed_by=cashier)

        table_one.refresh_from_db()
        table_two.refresh_from_db()
        assert session.table_id == table_two.pk
        assert table_one.status == Table.TableStatus.AVAILABLE
        assert table_one.current_session is None
        assert table_two.status == Table.TableStatus.OCCUPIED
        assert table_two.current_session_id == session.pk
        assert set(session.orders.values_list("table_id", flat=True)) == {table_two.pk}

    def test_transfer_to_occupied_table_conflicts(self, table_one, table_two):
        session = TabService.open_tab(table=table_one)
        TabService.open_tab(table=table_two)

        with pytest.raises(ConflictError):
            TabService.transfer_table(session, table_two)

    def test_transfer_to_reserved_table_conflicts(self, table_one, table_two):
        session = TabService.open_tab(table=table_one)
        table_two.status = Table.TableStatus.RESERVED
        table_two.save()

        with pytest.raises(ConflictError):
            TabService.transfer_table(session, table_two)

    def test_transfer_to_same_table_rejected(self, table_one):
        session = TabService.open_tab(table=table_one)

        with pytest.raises(ValidationError):
            TabService.transfer_table(session, table_one)

    def test_failed_transfer_changes_nothing(self, order_at, table_one, table_two, beer):
        """A failure part way through rolls every step back"""
        order = order_at(table_one, (beer, 1))
        session = OrderSession.objects.get(pk=order.session_id)

        with patch("tabs.services.TabService._free_table", side_effect=DatabaseError("lost")):
            with pytest.raises(PersistenceError):
                TabService.transfer_table(session, table_two)

        session.refresh_from_db()
        table_one.refresh_from_db()
        table_two.refresh_from_db()
        order.refresh_from_db()
        assert session.table_id == table_one.pk
        assert table_one.status == Table.TableStatus.OCCUPIED
        assert table_two.status == Table.TableStatus.AVAILABLE
        assert order.table_id == table_one.pk

    def test_closed_tab_cannot_transfer(self, table_one, table_two):
        session = TabService.open_tab(table=table_one)
        TabService.abandon_tab(session)

        with pytest.raises(InvalidStateTransition):
            TabService.transfer_table(session, table_two)


@pytest.mark.django_db
class TestSettlement:
    """Closing and abandoning tabs"""

    def test_close_tab_serves_orders_and_frees_table(self, order_at, table_one, beer, sisig, manager):
        order = order_at(table_one, (beer, 2), (sisig, 1))
        session = OrderSession.objects.get(pk=order.session_id)

        session = TabService.close_tab(session, closed_by=manager, amount_tendered=Decimal("300.00"))

        order.refresh_from_db()
        table_one.refresh_from_db()
        assert session.status == OrderSession.SessionStatus.CLOSED
        assert session.total == Decimal("280.00")
        assert session.change_due == Decimal("20.00")
        assert order.status == Order.OrderStatus.SERVED
        assert not order.tickets.exclude(status=TicketStatus.SERVED).exists()
        assert table_one.status == Table.TableStatus.AVAILABLE

    def test_underpayment_rejected(self, order_at, table_one, beer):
        order = order_at(table_one, (beer, 2))
        session = OrderSession.objects.get(pk=order.session_id)

        with pytest.raises(ValidationError):
            TabService.close_tab(session, amount_tendered=Decimal("99.99"))

        session.refresh_from_db()
        assert session.status == OrderSession.SessionStatus.OPEN

    def test_saved_orders_block_closing(self, order_at, table_one, beer):
        order = order_at(table_one, (beer, 1), send_to_kitchen=False)
        session = OrderSession.objects.get(pk=order.session_id)

        with pytest.raises(ValidationError):
            TabService.close_tab(session)

    def test_closed_tab_cannot_reopen_or_close_again(self, table_one):
        session = TabService.open_tab(table=table_one)
        TabService.close_tab(session)

        with pytest.raises(InvalidStateTransition):
            TabService.close_tab(session)
        with pytest.raises(InvalidStateTransition):
            TabService.abandon_tab(session)

    def test_abandon_frees_table(self, order_at, table_one, beer):
        order = order_at(table_one, (beer, 1))
        session = OrderSession.objects.get(pk=order.session_id)

        session = TabService.abandon_tab(session, reason="Walk-out")

        table_one.refresh_from_db()
        order.refresh_from_db()
        assert session.status == OrderSession.SessionStatus.ABANDONED
        assert "Walk-out" in session.notes
        assert table_one.status == Table.TableStatus.AVAILABLE
        assert order.status == Order.OrderStatus.CONFIRMED

    def test_table_can_be_reused_after_close(self, table_one):
        TabService.close_tab(TabService.open_tab(table=table_one))

        session = TabService.open_tab(table=table_one)

        assert session.status == OrderSession.SessionStatus.OPEN


@pytest.mark.django_db
class TestBillPreview:

    def test_bill_preview(self, order_at, table_one, beer, sisig, manager):
        from orders.services import OrderService

        first = order_at(table_one, (beer, 2))
        second = order_at(table_one, (sisig, 1))
        OrderService.void_order(second, reason="Wrong item", authorized_by=manager)
        session = OrderSession.objects.get(pk=first.session_id)

        preview = TabService.get_bill_preview(session)

        assert preview["table"] == "1"
        assert preview["total"] == Decimal("100.00")
        assert [o["order_number"] for o in preview["orders"]] == [first.order_number]
        assert preview["orders"][0]["items"][0]["quantity"] == 2
        assert preview["orders_by_status"] == {"CONFIRMED": 1, "VOIDED": 1}
        assert preview["duration_minutes"] >= 0
