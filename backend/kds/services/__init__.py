"""
KDS services package.

- resolve_destination: station for a product (category chain, name keywords, configured default)
- KitchenRoutingService: confirmed order lines -> station tickets
- TicketService: ticket lifecycle and station queues
"""

from .routing_service import KitchenRoutingService, resolve_destination
from .ticket_service import TicketService

__all__ = [
    'KitchenRoutingService',
    'TicketService',
    'resolve_destination',
]
