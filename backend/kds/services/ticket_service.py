from typing import Iterable, List
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFound, ValidationError
from notifications.services import change_broadcaster
from settings.models import Destination
from ..models import KitchenTicket, TicketStatus

logger = logging.getLogger(__name__)


class TicketService:
    """Station ticket lifecycle: pending -> preparing -> ready -> served, or voided."""

    VALID_TRANSITIONS = {
        TicketStatus.PENDING: [TicketStatus.PREPARING, TicketStatus.VOIDED],
        TicketStatus.PREPARING: [TicketStatus.READY, TicketStatus.VOIDED],
        TicketStatus.READY: [TicketStatus.SERVED, TicketStatus.VOIDED],
        TicketStatus.SERVED: [],
        TicketStatus.VOIDED: [],
    }

    TIMESTAMP_FIELDS = {
        TicketStatus.PREPARING: "started_at",
        TicketStatus.READY: "ready_at",
        TicketStatus.SERVED: "served_at",
        TicketStatus.VOIDED: "voided_at",
    }

    @staticmethod
    def get_ticket(ticket_id) -> KitchenTicket:
        try:
            return KitchenTicket.objects.get_optimized_queryset().get(pk=ticket_id)
        except (KitchenTicket.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Ticket", ticket_id)

    @staticmethod
    def active_for_station(destination) -> List[KitchenTicket]:
        if destination not in (Destination.KITCHEN, Destination.BARTENDER):
            raise ValidationError(f"Unknown station '{destination}'")
        return list(KitchenTicket.objects.for_station(destination))

    @staticmethod
    def _apply(ticket: KitchenTicket, new_status) -> KitchenTicket:
        allowed = TicketService.VALID_TRANSITIONS.get(ticket.status, [])
        if new_status not in allowed:
            raise InvalidStateTransition("Ticket", ticket.get_status_display(), new_status)

        ticket.status = new_status
        timestamp_field = TicketService.TIMESTAMP_FIELDS[new_status]
        setattr(ticket, timestamp_field, timezone.now())
        ticket.save(update_fields=["status", timestamp_field])
        return ticket

    @staticmethod
    @transaction.atomic
    def advance(ticket: KitchenTicket, new_status) -> KitchenTicket:
        """Move a ticket forward and let its order follow."""
        from orders.services import OrderService

        ticket = KitchenTicket.objects.select_for_update().get(pk=ticket.pk)
        old_status = ticket.status
        TicketService._apply(ticket, new_status)

        logger.info(
            f"[TicketService.advance] {ticket.label} ({ticket.destination}) "
            f"{old_status} -> {new_status} on {ticket.order.order_number}"
        )
        TicketService._broadcast(ticket, "status_changed", old_status=old_status)

        OrderService.sync_status_from_tickets(ticket.order)
        return ticket

    @staticmethod
    def close_tickets(tickets: Iterable[KitchenTicket], new_status) -> int:
        count = 0
        for ticket in tickets:
            if new_status in TicketService.VALID_TRANSITIONS.get(ticket.status, []):
                TicketService._apply(ticket, new_status)
                TicketService._broadcast(ticket, new_status)
                count += 1
        return count

    @staticmethod
    def void_for_order(order) -> int:
        open_tickets = order.tickets.exclude(status__in=KitchenTicket.TERMINAL_STATUSES)
        count = TicketService.close_tickets(open_tickets, TicketStatus.VOIDED)
        logger.info(f"[TicketService.void_for_order] Voided {count} tickets for {order.order_number}")
        return count

    @staticmethod
    def void_for_item(item) -> int:
        open_tickets = item.tickets.exclude(status__in=KitchenTicket.TERMINAL_STATUSES)
        count = TicketService.close_tickets(open_tickets, TicketStatus.VOIDED)
        logger.info(f"[TicketService.void_for_item] Voided {count} tickets for {item.item_name}")
        return count

    @staticmethod
    def serve_for_order(order) -> int:
        """Mark every open ticket served, walking each through the remaining steps."""
        count = 0
        for ticket in order.tickets.exclude(status__in=KitchenTicket.TERMINAL_STATUSES):
            for step in (TicketStatus.PREPARING, TicketStatus.READY, TicketStatus.SERVED):
                if step in TicketService.VALID_TRANSITIONS[ticket.status]:
                    TicketService._apply(ticket, step)
            TicketService._broadcast(ticket, TicketStatus.SERVED)
            count += 1
        return count

    @staticmethod
    def broadcast_created(tickets: Iterable[KitchenTicket]) -> None:
        for ticket in tickets:
            TicketService._broadcast(ticket, "created")

    @staticmethod
    def _broadcast(ticket: KitchenTicket, change_kind: str, **data) -> None:
        change_broadcaster.publish(
            "ticket",
            ticket.id,
            change_kind,
            destination=ticket.destination,
            data={
                "order_id": str(ticket.order_id),
                "label": ticket.label,
                "quantity": ticket.quantity,
                "status": ticket.status,
                "is_urgent": ticket.is_urgent,
                **data,
            },
        )
