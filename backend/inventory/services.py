from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List
import logging

from django.db import transaction

from core_backend.exceptions import OutOfStock, ValidationError
from products.services import CatalogService
from settings.models import StockPolicy
from .models import StockMovement
from .tracker import Reservation, stock_tracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockRequirement:
    """Units of one product a line consumes."""

    product_id: str
    name: str
    quantity: int


class InventoryService:
    """
    Applies tracker operations to whole order lines. A package line needs each
    component times its multiplier, so one line may touch several products.
    """

    @staticmethod
    def requirements_for(product=None, package=None, quantity: int = 1) -> List[StockRequirement]:
        if (product is None) == (package is None):
            raise ValidationError("A line must reference exactly one product or package")

        if product is not None:
            return [StockRequirement(str(product.pk), product.name, quantity)]

        # Components whose product was deleted have no stock to track.
        return [
            StockRequirement(str(item.product_id), item.product.name, item.quantity * quantity)
            for item in package.components()
            if item.product_id is not None
        ]

    @staticmethod
    def requirements_for_line(line, quantity=None) -> List[StockRequirement]:
        """Requirements of a draft line or order item (optionally for another quantity)."""
        if line.product_id is None and line.package_id is None:
            logger.warning(f"[InventoryService.requirements_for_line] Line {line.pk} references no catalog item")
            return []
        return InventoryService.requirements_for(
            product=line.product,
            package=line.package,
            quantity=line.quantity if quantity is None else quantity,
        )

    @staticmethod
    def merge(requirements: Iterable[StockRequirement]) -> List[StockRequirement]:
        merged = OrderedDict()
        for requirement in requirements:
            current = merged.get(requirement.product_id)
            quantity = requirement.quantity + (current.quantity if current else 0)
            merged[requirement.product_id] = StockRequirement(
                requirement.product_id, requirement.name, quantity
            )
        return list(merged.values())

    # === RESERVATIONS ===

    @staticmethod
    def reserve(requirements: Iterable[StockRequirement]) -> List[Reservation]:
        """
        Reserve every requirement or none: a refusal part way through releases
        what this call already reserved before re-raising.
        """
        reservations = []
        try:
            for requirement in requirements:
                if requirement.quantity <= 0:
                    continue
                reservations.append(
                    stock_tracker.reserve(requirement.product_id, requirement.quantity)
                )
        except OutOfStock:
            for reservation in reservations:
                stock_tracker.release(reservation.item_id, reservation.quantity)
            raise
        return reservations

    @staticmethod
    def release(requirements: Iterable[StockRequirement]) -> None:
        for requirement in requirements:
            if requirement.quantity > 0:
                stock_tracker.release(requirement.product_id, requirement.quantity)

    # === COMMIT / RESTORE ===

    @staticmethod
    def verify_available(requirements: Iterable[StockRequirement]) -> None:
        """
        Check reserved quantities against the authoritative catalog right before
        committing; time may have passed since the lines were reserved.
        """
        for requirement in InventoryService.merge(requirements):
            product = CatalogService.get_item(requirement.product_id)
            if not product.is_active:
                raise ValidationError(f"{product.name} is no longer available")

            stock_tracker.refresh(requirement.product_id)
            if product.stock_policy == StockPolicy.STRICT and product.current_stock < requirement.quantity:
                logger.warning(
                    f"[InventoryService.verify_available] {product.name}: need {requirement.quantity}, "
                    f"durable stock {product.current_stock}"
                )
                raise OutOfStock(
                    item_name=product.name,
                    requested=requirement.quantity,
                    available=max(0, product.current_stock),
                )

    @staticmethod
    def commit(
        requirements: Iterable[StockRequirement], order=None, performed_by=None, committed=None
    ) -> List[StockRequirement]:
        """
        Deduct durable stock for confirmed lines. Each requirement is appended to
        `committed` as soon as it is deducted, so a caller can reinstate exactly
        what was applied if a later step fails.
        """
        committed = [] if committed is None else committed
        for requirement in InventoryService.merge(requirements):
            new_stock = stock_tracker.commit(requirement.product_id, requirement.quantity)
            committed.append(requirement)
            InventoryService._record(
                requirement,
                StockMovement.MovementType.SALE,
                -requirement.quantity,
                new_stock,
                order=order,
                performed_by=performed_by,
            )
        return committed

    @staticmethod
    def reinstate(committed: Iterable[StockRequirement]) -> None:
        """Undo the in-memory side of `commit` after the database rolled back."""
        for requirement in committed:
            try:
                stock_tracker.reinstate(requirement.product_id, requirement.quantity)
            except Exception as e:
                logger.error(f"[InventoryService.reinstate] Could not reinstate {requirement.name}: {e}")

    @staticmethod
    def resync(requirements: Iterable[StockRequirement]) -> None:
        """Re-read durable stock for these items after a rolled-back restore."""
        for requirement in InventoryService.merge(requirements):
            stock_tracker.refresh(requirement.product_id)

    @staticmethod
    def restore(
        requirements: Iterable[StockRequirement],
        movement_type=StockMovement.MovementType.VOID_RETURN,
        order=None,
        performed_by=None,
        notes="",
    ) -> None:
        for requirement in InventoryService.merge(requirements):
            if requirement.quantity <= 0:
                continue
            new_stock = stock_tracker.restore(requirement.product_id, requirement.quantity)
            InventoryService._record(
                requirement,
                movement_type,
                requirement.quantity,
                new_stock,
                order=order,
                performed_by=performed_by,
                notes=notes,
            )

    @staticmethod
    def _record(requirement, movement_type, change, new_stock, order=None, performed_by=None, notes=""):
        StockMovement.objects.create(
            product_id=requirement.product_id,
            movement_type=movement_type,
            quantity_change=change,
            previous_stock=new_stock - change,
            new_stock=new_stock,
            order=order,
            performed_by=performed_by,
            notes=notes,
        )

    @staticmethod
    @transaction.atomic
    def adjust_stock(product, quantity_change: int, performed_by=None, notes="") -> int:
        """Manual stock count correction."""
        if quantity_change == 0:
            raise ValidationError("Adjustment must change the stock level")

        requirement = StockRequirement(str(product.pk), product.name, abs(quantity_change))
        if quantity_change > 0:
            new_stock = stock_tracker.restore(product.pk, quantity_change)
        else:
            new_stock = stock_tracker.withdraw(product.pk, -quantity_change)

        InventoryService._record(
            requirement,
            StockMovement.MovementType.ADJUSTMENT,
            quantity_change,
            new_stock,
            performed_by=performed_by,
            notes=notes,
        )
        logger.info(f"[InventoryService.adjust_stock] {product.name}: {quantity_change:+d} -> {new_stock}")
        return new_stock

    # === RECOVERY ===

    @staticmethod
    def outstanding_reservations() -> dict:
        """
        Reservations implied by persisted state: every draft line plus the lines
        of orders saved as draft (reserved but not yet committed).
        """
        from cart.models import DraftOrderLine
        from orders.models import Order, OrderItem

        totals = {}
        lines = list(DraftOrderLine.objects.select_related("product", "package"))
        lines += list(
            OrderItem.objects.filter(order__status=Order.OrderStatus.DRAFT).select_related("product", "package")
        )
        for line in lines:
            for requirement in InventoryService.requirements_for_line(line):
                totals[requirement.product_id] = totals.get(requirement.product_id, 0) + requirement.quantity
        return totals

    @staticmethod
    def rebuild_reservations() -> dict:
        totals = InventoryService.outstanding_reservations()
        stock_tracker.rebuild(totals)
        return totals
