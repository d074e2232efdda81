from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from orders.serializers import UpdateOrderStatusSerializer, VoidOrderSerializer
from orders.services import OrderService
from users.services import AuthorizationService

logger = logging.getLogger(__name__)


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="confirm")
    def confirm(self, request: Request, pk=None) -> Response:
        """Send a saved (draft) order to the stations."""
        order = OrderService.confirm_order(self.get_object(), confirmed_by=request.user)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_order_status(
            self.get_object(), serializer.validated_data["status"], performed_by=request.user
        )
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request: Request, pk=None) -> Response:
        """
        Void the order. The signed-in operator approves it when privileged,
        otherwise `manager_pin` must belong to any active manager.
        """
        serializer = VoidOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        approver = AuthorizationService.resolve_approver(
            request.user, serializer.validated_data["manager_pin"], action="void orders"
        )
        order = OrderService.void_order(
            self.get_object(),
            reason=serializer.validated_data["reason"],
            authorized_by=approver,
        )
        return Response(self.get_serializer(order).data)
