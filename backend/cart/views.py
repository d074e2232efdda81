"""
Workspace API views for POS terminals.

Every call acts on the signed-in operator's own drafts; another operator's
draft id is answered with 404.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
import logging

from core_backend.exceptions import NotFound
from customers.models import Customer
from orders.serializers import OrderSerializer
from orders.services import FinalizationService
from products.services import CatalogService
from tabs.services import TabService
from users.services import AuthorizationService
from .serializers import (
    AddLineSerializer,
    ConfirmWorkspaceSerializer,
    DraftOrderLineSerializer,
    DraftOrderSerializer,
    ReleaseStaleSerializer,
    SetCustomerSerializer,
    SetDiscountSerializer,
    SetTableSerializer,
    UpdateLineSerializer,
)
from .services import WorkspaceService

logger = logging.getLogger(__name__)


class WorkspaceViewSet(viewsets.ViewSet):
    """
    ViewSet for the operator's draft orders.

    Endpoints:
    - GET/POST /api/workspace/ - Active workspace (created on demand)
    - POST /api/workspace/lines/ - Add a product or package line
    - PATCH /api/workspace/lines/{line_id}/ - Change a line's quantity
    - DELETE /api/workspace/lines/{line_id}/ - Remove a line
    - POST /api/workspace/clear/ - Remove every line
    - POST /api/workspace/customer/ | table/ | discount/ - Attachments
    - POST /api/workspace/confirm/ - Convert to an order
    - GET /api/workspace/held/ - Held workspaces
    - GET /api/workspace/{id}/ - One of the operator's workspaces
    - POST /api/workspace/{id}/hold/ | resume/ | discard/
    - POST /api/workspace/release-stale/ - Discard old holds (manager)
    """

    def _active(self, request):
        return WorkspaceService.ensure_workspace(request.user)

    def _respond(self, workspace, status_code=status.HTTP_200_OK):
        workspace.refresh_from_db()
        return Response(DraftOrderSerializer(workspace).data, status=status_code)

    def retrieve(self, request):
        """GET /api/workspace/"""
        return self._respond(self._active(request))

    def create(self, request):
        """POST /api/workspace/ - idempotent"""
        return self._respond(self._active(request), status.HTTP_201_CREATED)

    def retrieve_workspace(self, request, workspace_id=None):
        workspace = WorkspaceService.get_workspace(workspace_id, request.user)
        return Response(DraftOrderSerializer(workspace).data)

    # === LINES ===

    @action(detail=False, methods=["post"], url_path="lines")
    def add_line(self, request):
        """
        POST /api/workspace/lines/

        Request body:
        {
            "product_id": "uuid",   (or "package_id")
            "quantity": 2,
            "notes": "No ice"
        }
        """
        serializer = AddLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        product = package = None
        if data.get("product_id"):
            product = CatalogService.get_item(data["product_id"])
        else:
            package = CatalogService.get_package(data["package_id"])

        workspace = self._active(request)
        line = WorkspaceService.add_line(
            workspace,
            request.user,
            product=product,
            package=package,
            quantity=data["quantity"],
            notes=data["notes"],
        )
        return Response(
            {
                "line": DraftOrderLineSerializer(line).data,
                "workspace": DraftOrderSerializer(workspace).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def update_line(self, request, line_id=None):
        """PATCH /api/workspace/lines/{line_id}/"""
        serializer = UpdateLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workspace = self._active(request)
        line = WorkspaceService.update_line_quantity(
            workspace, request.user, line_id, serializer.validated_data["quantity"]
        )
        return Response(
            {
                "line": DraftOrderLineSerializer(line).data,
                "workspace": DraftOrderSerializer(workspace).data,
            }
        )

    def remove_line(self, request, line_id=None):
        """DELETE /api/workspace/lines/{line_id}/"""
        workspace = self._active(request)
        WorkspaceService.remove_line(workspace, request.user, line_id)
        return self._respond(workspace)

    @action(detail=False, methods=["post"])
    def clear(self, request):
        workspace = WorkspaceService.clear(self._active(request), request.user)
        return self._respond(workspace)

    # === ATTACHMENTS ===

    @action(detail=False, methods=["post"])
    def customer(self, request):
        serializer = SetCustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customer = None
        customer_id = serializer.validated_data["customer_id"]
        if customer_id:
            customer = Customer.objects.filter(pk=customer_id, is_active=True).first()
            if customer is None:
                raise NotFound("Customer", customer_id)

        workspace = WorkspaceService.set_customer(self._active(request), request.user, customer)
        return self._respond(workspace)

    @action(detail=False, methods=["post"])
    def table(self, request):
        serializer = SetTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        table_id = serializer.validated_data["table_id"]
        table = TabService.get_table(table_id) if table_id else None
        workspace = WorkspaceService.set_table(self._active(request), request.user, table)
        return self._respond(workspace)

    @action(detail=False, methods=["post"])
    def discount(self, request):
        serializer = SetDiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workspace = WorkspaceService.set_discount(
            self._active(request),
            request.user,
            serializer.validated_data["discount_type"],
            serializer.validated_data["discount_value"],
        )
        return self._respond(workspace)

    # === LIFECYCLE ===

    @action(detail=False, methods=["post"])
    def confirm(self, request):
        """
        POST /api/workspace/confirm/

        Convert the active workspace into an order. `send_to_kitchen=false`
        saves it as a draft order on the tab without deducting stock.
        """
        serializer = ConfirmWorkspaceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workspace = WorkspaceService.active_workspace(request.user)
        if workspace is None:
            raise NotFound("Workspace")

        order = FinalizationService.finalize(
            workspace, request.user, send_to_kitchen=serializer.validated_data["send_to_kitchen"]
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def held(self, request):
        held = WorkspaceService.held_workspaces(request.user)
        return Response(DraftOrderSerializer(held, many=True).data)

    def hold(self, request, workspace_id=None):
        workspace = WorkspaceService.get_workspace(workspace_id, request.user)
        return self._respond(WorkspaceService.hold(workspace, request.user))

    def resume(self, request, workspace_id=None):
        workspace = WorkspaceService.get_workspace(workspace_id, request.user)
        return self._respond(WorkspaceService.resume(workspace, request.user))

    def discard(self, request, workspace_id=None):
        workspace = WorkspaceService.get_workspace(workspace_id, request.user)
        WorkspaceService.discard(workspace, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"], url_path="release-stale")
    def release_stale(self, request):
        """Explicit cleanup of held workspaces nobody came back to."""
        serializer = ReleaseStaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        approver = AuthorizationService.resolve_approver(
            request.user, data["manager_pin"], action="release held orders"
        )
        count = WorkspaceService.release_stale_holds(data["older_than_hours"], dry_run=data["dry_run"])
        logger.info(f"[WorkspaceViewSet.release_stale] {count} holds handled, approved by {approver.username}")
        return Response({"released": count, "dry_run": data["dry_run"]})
