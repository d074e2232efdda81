from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from .serializers import AdvanceTicketSerializer, KitchenTicketSerializer
from .services import TicketService

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def station_tickets(request, destination):
    """
    Open tickets for a station, urgent first then oldest first.

    Tickets routed to both stations appear in each queue.
    """
    tickets = TicketService.active_for_station(destination)
    return Response({
        'destination': destination,
        'count': len(tickets),
        'tickets': KitchenTicketSerializer(tickets, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def advance_ticket(request, ticket_id):
    """
    Move a ticket to its next status.

    Request body: {"status": "preparing" | "ready" | "served" | "voided"}
    """
    serializer = AdvanceTicketSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ticket = TicketService.get_ticket(ticket_id)
    ticket = TicketService.advance(ticket, serializer.validated_data['status'])
    return Response(KitchenTicketSerializer(ticket).data)
