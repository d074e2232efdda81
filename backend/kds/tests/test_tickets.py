"""
Station Ticket Tests

Tests for the ticket state machine, station queues and bulk voiding.
"""
import pytest

from cart.services import WorkspaceService
from core_backend.exceptions import InvalidStateTransition, NotFound, ValidationError
from kds.models import KitchenTicket, TicketStatus
from kds.services import TicketService
from orders.services import FinalizationService
from products.models import Category, Product
from settings.models import Destination


@pytest.fixture
def order_with_tickets(cashier, beer, sisig):
    workspace = WorkspaceService.ensure_workspace(cashier)
    WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
    WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1)
    return FinalizationService.finalize(workspace, cashier)


@pytest.mark.django_db
class TestTicketStateMachine:
    """pending -> preparing -> ready -> served, voided from any open state"""

    def test_advance_stamps_timestamps(self, order_with_tickets):
        ticket = order_with_tickets.tickets.get(destination=Destination.KITCHEN)

        ticket = TicketService.advance(ticket, TicketStatus.PREPARING)
        assert ticket.started_at is not None

        ticket = TicketService.advance(ticket, TicketStatus.READY)
        assert ticket.ready_at is not None
        assert ticket.prep_time_minutes is not None

        ticket = TicketService.advance(ticket, TicketStatus.SERVED)
        assert ticket.served_at is not None
        assert ticket.is_terminal

    def test_skipping_steps_rejected(self, order_with_tickets):
        ticket = order_with_tickets.tickets.get(destination=Destination.KITCHEN)

        with pytest.raises(InvalidStateTransition):
            TicketService.advance(ticket, TicketStatus.SERVED)

        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.PENDING

    def test_terminal_ticket_cannot_move(self, order_with_tickets):
        ticket = order_with_tickets.tickets.get(destination=Destination.KITCHEN)
        TicketService.advance(ticket, TicketStatus.VOIDED)

        with pytest.raises(InvalidStateTransition):
            TicketService.advance(ticket, TicketStatus.PREPARING)

    def test_unknown_ticket(self):
        with pytest.raises(NotFound):
            TicketService.get_ticket("missing")

    def test_void_for_order_skips_finished_tickets(self, order_with_tickets):
        bar = order_with_tickets.tickets.get(destination=Destination.BARTENDER)
        for status in (TicketStatus.PREPARING, TicketStatus.READY, TicketStatus.SERVED):
            TicketService.advance(bar, status)

        count = TicketService.void_for_order(order_with_tickets)

        assert count == 1
        bar.refresh_from_db()
        assert bar.status == TicketStatus.SERVED


@pytest.mark.django_db
class TestStationQueues:
    """Each station sees its own open tickets, urgent first"""

    def test_station_queue(self, order_with_tickets):
        kitchen = TicketService.active_for_station(Destination.KITCHEN)
        bar = TicketService.active_for_station(Destination.BARTENDER)

        assert [t.label for t in kitchen] == ["Sizzling Sisig"]
        assert [t.label for t in bar] == ["Red Horse"]

    def test_both_tickets_show_on_every_station(self, cashier):
        shared = Category.objects.create(name="Sharing", default_destination=Destination.BOTH)
        platter = Product.objects.create(name="Platter", category=shared, base_price=500, current_stock=5)
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=platter, quantity=1)
        FinalizationService.finalize(workspace, cashier)

        assert KitchenTicket.objects.filter(destination=Destination.BOTH).count() == 1
        assert [t.label for t in TicketService.active_for_station(Destination.KITCHEN)] == ["Platter"]
        assert [t.label for t in TicketService.active_for_station(Destination.BARTENDER)] == ["Platter"]

    def test_urgent_tickets_first(self, order_with_tickets, cashier, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1)
        later = FinalizationService.finalize(workspace, cashier)
        later.tickets.update(is_urgent=True)

        queue = TicketService.active_for_station(Destination.KITCHEN)

        assert queue[0].order_id == later.pk
        assert len(queue) == 2

    def test_finished_tickets_leave_the_queue(self, order_with_tickets):
        ticket = order_with_tickets.tickets.get(destination=Destination.KITCHEN)
        TicketService.advance(ticket, TicketStatus.VOIDED)

        assert TicketService.active_for_station(Destination.KITCHEN) == []

    def test_unknown_station(self):
        with pytest.raises(ValidationError):
            TicketService.active_for_station("dishwasher")
