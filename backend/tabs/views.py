"""
Tab API views.

Endpoints:
- GET /api/tabs/ - Tabs (?status=OPEN by default, ?status=all for every tab)
- POST /api/tabs/ - Open a tab
- GET /api/tabs/{id}/ - One tab
- GET /api/tabs/{id}/bill-preview/ - Orders and totals for the bill
- POST /api/tabs/{id}/transfer-table/ - Move the tab to another table
- POST /api/tabs/{id}/close/ - Settle the tab
- POST /api/tabs/{id}/abandon/ - End the tab without payment
- GET /api/tabs/tables/ - Floor plan with table status
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.exceptions import NotFound
from customers.models import Customer
from .models import OrderSession, Table
from .serializers import (
    AbandonTabSerializer,
    CloseTabSerializer,
    OpenTabSerializer,
    OrderSessionSerializer,
    TableSerializer,
    TransferTableSerializer,
)
from .services import TabService


class TabViewSet(viewsets.ViewSet):

    def list(self, request):
        queryset = OrderSession.objects.select_related("table", "customer")
        status_filter = request.query_params.get("status", OrderSession.SessionStatus.OPEN)
        if status_filter.lower() != "all":
            queryset = queryset.filter(status=status_filter.upper())
        return Response(OrderSessionSerializer(queryset, many=True).data)

    def create(self, request):
        serializer = OpenTabSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        table = TabService.get_table(data["table_id"]) if data.get("table_id") else None
        customer = None
        if data.get("customer_id"):
            customer = Customer.objects.filter(pk=data["customer_id"]).first()
            if customer is None:
                raise NotFound("Customer", data["customer_id"])

        session = TabService.open_tab(
            table=table, customer=customer, opened_by=request.user, notes=data["notes"]
        )
        return Response(OrderSessionSerializer(session).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(OrderSessionSerializer(TabService.get_session(pk)).data)

    @action(detail=True, methods=["get"], url_path="bill-preview")
    def bill_preview(self, request, pk=None):
        return Response(TabService.get_bill_preview(TabService.get_session(pk)))

    @action(detail=True, methods=["post"], url_path="transfer-table")
    def transfer_table(self, request, pk=None):
        serializer = TransferTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = TabService.transfer_table(
            TabService.get_session(pk),
            TabService.get_table(serializer.validated_data["table_id"]),
            performed_by=request.user,
        )
        return Response(OrderSessionSerializer(session).data)

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        serializer = CloseTabSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = TabService.close_tab(
            TabService.get_session(pk),
            closed_by=request.user,
            payment_method=serializer.validated_data["payment_method"],
            amount_tendered=serializer.validated_data.get("amount_tendered"),
        )
        return Response(OrderSessionSerializer(session).data)

    @action(detail=True, methods=["post"])
    def abandon(self, request, pk=None):
        serializer = AbandonTabSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = TabService.abandon_tab(
            TabService.get_session(pk), closed_by=request.user, reason=serializer.validated_data["reason"]
        )
        return Response(OrderSessionSerializer(session).data)

    @action(detail=False, methods=["get"])
    def tables(self, request):
        tables = Table.objects.filter(is_active=True)
        return Response(TableSerializer(tables, many=True).data)
