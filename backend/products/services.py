"""
Catalog access for the order engine.

Everything outside the products app reads item definitions and durable stock
through CatalogService, so the reservation tracker and the finalization path
always agree on what "current stock" means.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F

from core_backend.exceptions import NotFound, ValidationError
from .models import Package, Product
from .policies import low_stock_threshold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockSnapshot:
    product_id: str
    name: str
    stock: int
    policy: str
    low_stock_threshold: int


class CatalogService:
    """Catalog Snapshot Provider backed by the products tables."""

    @staticmethod
    def get_item(item_id, active_only=False) -> Product:
        queryset = Product.objects.select_related("category")
        if active_only:
            queryset = queryset.filter(is_active=True)
        try:
            return queryset.get(pk=item_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Product", item_id)

    @staticmethod
    def get_package(package_id, active_only=False) -> Package:
        queryset = Package.objects.prefetch_related("items__product__category")
        if active_only:
            queryset = queryset.filter(is_active=True)
        try:
            return queryset.get(pk=package_id)
        except (Package.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Package", package_id)

    @staticmethod
    def describe(product: Product) -> StockSnapshot:
        return StockSnapshot(
            product_id=str(product.pk),
            name=product.name,
            stock=product.current_stock,
            policy=product.stock_policy,
            low_stock_threshold=low_stock_threshold(product),
        )

    @staticmethod
    def snapshot(product_ids: Optional[List] = None) -> List[StockSnapshot]:
        """Stock and policy for every active product (or just `product_ids`)."""
        queryset = Product.objects.filter(is_active=True).select_related("category")
        if product_ids is not None:
            queryset = queryset.filter(pk__in=product_ids)
        return [CatalogService.describe(product) for product in queryset]

    @staticmethod
    def get_stock(product_id) -> int:
        stock = Product.objects.filter(pk=product_id).values_list("current_stock", flat=True).first()
        if stock is None:
            raise NotFound("Product", product_id)
        return stock

    @staticmethod
    @transaction.atomic
    def decrement_stock(product_id, quantity: int) -> int:
        """Atomically lower durable stock and return the new level."""
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        updated = Product.objects.filter(pk=product_id).update(
            current_stock=F("current_stock") - quantity
        )
        if not updated:
            raise NotFound("Product", product_id)

        new_stock = CatalogService.get_stock(product_id)
        logger.debug(f"[CatalogService.decrement_stock] {product_id}: -{quantity} -> {new_stock}")
        return new_stock

    @staticmethod
    @transaction.atomic
    def increment_stock(product_id, quantity: int) -> int:
        """Atomically raise durable stock and return the new level."""
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        updated = Product.objects.filter(pk=product_id).update(
            current_stock=F("current_stock") + quantity
        )
        if not updated:
            raise NotFound("Product", product_id)

        new_stock = CatalogService.get_stock(product_id)
        logger.debug(f"[CatalogService.increment_stock] {product_id}: +{quantity} -> {new_stock}")
        return new_stock
