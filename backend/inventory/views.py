from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from products.services import CatalogService
from users.services import AuthorizationService
from .serializers import AvailabilityQuerySerializer, StockAdjustmentSerializer, StockMovementSerializer
from .services import InventoryService
from .tracker import stock_tracker


class InventoryViewSet(viewsets.ViewSet):
    """Live availability as every operator currently sees it."""

    @action(detail=False, methods=["post"], url_path="availability")
    def availability(self, request):
        serializer = AvailabilityQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = {}
        for product_id in serializer.validated_data["product_ids"]:
            key = str(product_id)
            result[key] = {
                "available": stock_tracker.current_available(key),
                "reserved": stock_tracker.reserved(key),
                "stock_status": stock_tracker.stock_status(key),
            }
        return Response(result)

    @action(detail=False, methods=["post"], url_path="adjust")
    def adjust(self, request):
        AuthorizationService.resolve_approver(
            request.user, request.data.get("manager_pin"), action="adjust stock"
        )
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = CatalogService.get_item(serializer.validated_data["product_id"])
        InventoryService.adjust_stock(
            product,
            serializer.validated_data["quantity_change"],
            performed_by=request.user,
            notes=serializer.validated_data["notes"],
        )
        movement = product.stock_movements.first()
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)
