"""
Orders services package - service layer for committed orders.

- FinalizationService: Workspace -> order (verify, tab, snapshot, commit, route)
- OrderService: Order lifecycle (confirm, status changes, void)
- OrderItemService: Changes to lines already sent to the stations

Totals are computed by orders.calculators.OrderCalculator, shared with drafts.
"""

# Core order operations
from .order_service import OrderService

# Workspace conversion
from .finalization_service import FinalizationService

# Item modification
from .item_service import OrderItemService

__all__ = [
    'FinalizationService',
    'OrderService',
    'OrderItemService',
]
