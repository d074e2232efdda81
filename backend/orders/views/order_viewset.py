from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import viewsets
import logging

from core_backend.exceptions import NotFound
from orders.models import Order
from orders.serializers import OrderSerializer

from .item_actions import ItemActionsMixin
from .status_actions import StatusActionsMixin

logger = logging.getLogger(__name__)


class OrderViewSet(StatusActionsMixin, ItemActionsMixin, viewsets.ReadOnlyModelViewSet):
    """
    Committed orders. Creation happens through the workspace confirm endpoint;
    this viewset reads orders and drives their lifecycle.

    Filters: ?status=CONFIRMED, ?session=<uuid>, ?table=<id>
    """

    serializer_class = OrderSerializer

    def get_queryset(self):
        queryset = (
            Order.objects.select_related("session", "table", "customer", "cashier")
            .prefetch_related("items")
        )
        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"].upper())
        if params.get("session"):
            queryset = queryset.filter(session_id=params["session"])
        if params.get("table"):
            queryset = queryset.filter(table_id=params["table"])
        return queryset

    def get_object(self):
        try:
            return self.get_queryset().get(pk=self.kwargs["pk"])
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Order", self.kwargs.get("pk"))
