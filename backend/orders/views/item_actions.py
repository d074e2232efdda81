from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import ReduceItemSerializer, RemoveItemSerializer
from orders.services import OrderItemService
from users.services import AuthorizationService


class ItemActionsMixin:
    """Mixin for changing lines of orders already sent to the stations."""

    @action(detail=True, methods=["post"], url_path=r"items/(?P<item_id>[^/.]+)/reduce")
    def reduce_item(self, request: Request, pk=None, item_id=None) -> Response:
        serializer = ReduceItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self.get_object()
        item = OrderItemService.get_item(order, item_id)
        approver = AuthorizationService.resolve_approver(
            request.user, data["manager_pin"], action="modify sent orders"
        )
        OrderItemService.reduce_item_quantity(
            item, data["quantity"], modified_by=approver, reason=data["reason"]
        )
        order.refresh_from_db()
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["delete"], url_path=r"items/(?P<item_id>[^/.]+)")
    def remove_item(self, request: Request, pk=None, item_id=None) -> Response:
        serializer = RemoveItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self.get_object()
        item = OrderItemService.get_item(order, item_id)
        approver = AuthorizationService.resolve_approver(
            request.user, data["manager_pin"], action="modify sent orders"
        )
        OrderItemService.remove_item(item, modified_by=approver, reason=data["reason"])
        order.refresh_from_db()
        return Response(self.get_serializer(order).data)
