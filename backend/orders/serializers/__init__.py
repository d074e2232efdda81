"""
Orders serializers package - modular serializer layer.
"""

# Order item serializers
from .order_item_serializers import (
    OrderItemSerializer,
    ReduceItemSerializer,
    RemoveItemSerializer,
)

# Order serializers
from .order_serializers import (
    OrderSerializer,
    UpdateOrderStatusSerializer,
    VoidOrderSerializer,
)

__all__ = [
    # Order items
    'OrderItemSerializer',
    'ReduceItemSerializer',
    'RemoveItemSerializer',
    # Orders
    'OrderSerializer',
    'UpdateOrderStatusSerializer',
    'VoidOrderSerializer',
]
