"""
Draft order workspace service.

This service handles:
- One active draft per operator, plus any number of held drafts
- Adding/updating/removing lines, reserving or releasing stock for each change
- Attaching a customer (re-pricing for their tier), a table, and a discount
- Explicit cleanup of abandoned holds

Every method takes the operator explicitly; a draft owned by someone else is
reported as not found.
"""

from datetime import timedelta
from typing import List, Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core_backend.exceptions import NotFound, PersistenceError, ValidationError
from inventory.services import InventoryService
from notifications.services import change_broadcaster
from orders.calculators import OrderCalculator, Totals, validate_discount
from products.pricing import PricingService
from .models import DraftOrder, DraftOrderLine

logger = logging.getLogger(__name__)


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number")
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    return quantity


class WorkspaceService:
    """Service for managing an operator's draft orders."""

    # === LOOKUP ===

    @staticmethod
    def get_workspace(workspace_id, operator) -> DraftOrder:
        try:
            return DraftOrder.objects.select_related("customer", "table").get(
                pk=workspace_id, cashier=operator
            )
        except (DraftOrder.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Workspace", workspace_id)

    @staticmethod
    def _check_owner(workspace: DraftOrder, operator) -> None:
        if workspace.cashier_id != operator.pk:
            logger.warning(
                f"[WorkspaceService] Operator {operator.pk} tried to use workspace {workspace.pk} "
                f"owned by {workspace.cashier_id}"
            )
            raise NotFound("Workspace", workspace.pk)

    @staticmethod
    def _get_line(workspace: DraftOrder, line_id) -> DraftOrderLine:
        try:
            return workspace.lines.select_related("product", "package").get(pk=line_id)
        except (DraftOrderLine.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("Line", line_id)

    @staticmethod
    def held_workspaces(operator) -> List[DraftOrder]:
        return list(DraftOrder.objects.filter(cashier=operator, is_on_hold=True).order_by("held_at"))

    @staticmethod
    def active_workspace(operator) -> Optional[DraftOrder]:
        return DraftOrder.objects.filter(cashier=operator, is_on_hold=False).first()

    # === LIFECYCLE ===

    @staticmethod
    def ensure_workspace(operator) -> DraftOrder:
        """Get or create the operator's active draft."""
        workspace = WorkspaceService.active_workspace(operator)
        if workspace:
            return workspace

        try:
            with transaction.atomic():
                workspace = DraftOrder.objects.create(cashier=operator)
        except IntegrityError:
            # A concurrent request created it first.
            workspace = WorkspaceService.active_workspace(operator)
            if workspace is None:
                raise PersistenceError()
            return workspace

        logger.info(f"[WorkspaceService.ensure_workspace] Created workspace {workspace.id} for {operator}")
        WorkspaceService._broadcast(workspace, "created")
        return workspace

    @staticmethod
    def hold(workspace: DraftOrder, operator) -> DraftOrder:
        """Park the draft; its reservations stay in place."""
        WorkspaceService._check_owner(workspace, operator)
        if workspace.is_on_hold:
            return workspace
        if not workspace.lines.exists():
            raise ValidationError("Cannot hold an empty order")

        workspace.is_on_hold = True
        workspace.held_at = timezone.now()
        workspace.save(update_fields=["is_on_hold", "held_at", "updated_at"])

        logger.info(f"[WorkspaceService.hold] Workspace {workspace.id} held by {operator}")
        WorkspaceService._broadcast(workspace, "held")
        return workspace

    @staticmethod
    @transaction.atomic
    def resume(workspace: DraftOrder, operator) -> DraftOrder:
        """
        Make a held draft active again. The draft that was active is held in its
        place, or deleted when it has no lines.
        """
        WorkspaceService._check_owner(workspace, operator)
        if not workspace.is_on_hold:
            return workspace

        current = (
            DraftOrder.objects.select_for_update()
            .filter(cashier=operator, is_on_hold=False)
            .exclude(pk=workspace.pk)
            .first()
        )
        if current is not None:
            if current.lines.exists():
                current.is_on_hold = True
                current.held_at = timezone.now()
                current.save(update_fields=["is_on_hold", "held_at", "updated_at"])
                WorkspaceService._broadcast(current, "held")
            else:
                current.delete()

        workspace.is_on_hold = False
        workspace.held_at = None
        workspace.save(update_fields=["is_on_hold", "held_at", "updated_at"])

        logger.info(f"[WorkspaceService.resume] Workspace {workspace.id} resumed by {operator}")
        WorkspaceService._broadcast(workspace, "resumed")
        return workspace

    @staticmethod
    def clear(workspace: DraftOrder, operator) -> DraftOrder:
        """Remove every line and release all of the draft's reservations."""
        WorkspaceService._check_owner(workspace, operator)
        lines = list(workspace.lines.select_related("product", "package"))
        requirements = [
            requirement
            for line in lines
            for requirement in InventoryService.requirements_for_line(line)
        ]

        try:
            with transaction.atomic():
                workspace.lines.all().delete()
                workspace.save(update_fields=["updated_at"])
        except DatabaseError as e:
            logger.error(f"[WorkspaceService.clear] Failed to clear workspace {workspace.id}: {e}")
            raise PersistenceError() from e

        InventoryService.release(requirements)
        logger.info(f"[WorkspaceService.clear] Cleared {len(lines)} lines from workspace {workspace.id}")
        WorkspaceService._broadcast(workspace, "cleared")
        return workspace

    @staticmethod
    def discard(workspace: DraftOrder, operator) -> None:
        """Clear and delete a draft (explicit cancellation of a held order)."""
        WorkspaceService.clear(workspace, operator)
        workspace_id = workspace.id
        workspace.delete()
        logger.info(f"[WorkspaceService.discard] Discarded workspace {workspace_id}")
        change_broadcaster.publish("workspace", workspace_id, "discarded", operator_id=operator.pk)

    # === LINES ===

    @staticmethod
    def add_line(
        workspace: DraftOrder,
        operator,
        *,
        product=None,
        package=None,
        quantity: int = 1,
        notes: str = "",
    ) -> DraftOrderLine:
        """
        Price, reserve and add a line, merging with an identical one.

        Stock is reserved before anything is written; a refusal (OutOfStock)
        leaves the workspace untouched. Advisory stock warnings are attached to
        the returned line as `stock_warnings`.
        """
        WorkspaceService._check_owner(workspace, operator)
        quantity = _validate_quantity(quantity)
        if (product is None) == (package is None):
            raise ValidationError("Provide either a product or a package")

        item = product or package
        if not item.is_active:
            raise ValidationError(f"{item.name} is not available")

        if product is not None:
            subtotal = OrderCalculator(workspace).calculate_subtotal()
            quote = PricingService.quote_product(product, workspace.customer, order_subtotal=subtotal)
        else:
            quote = PricingService.quote_package(package, workspace.customer)

        requirements = InventoryService.requirements_for(product=product, package=package, quantity=quantity)
        reservations = InventoryService.reserve(requirements)

        try:
            with transaction.atomic():
                line = (
                    workspace.lines.select_for_update()
                    .filter(
                        product=product,
                        package=package,
                        unit_price=quote.unit_price,
                        price_context=quote.context,
                        notes=notes,
                    )
                    .first()
                )
                if line:
                    line.quantity += quantity
                    line.save()
                    change_kind = "line_updated"
                else:
                    line = DraftOrderLine.objects.create(
                        draft=workspace,
                        product=product,
                        package=package,
                        item_name=item.name,
                        quantity=quantity,
                        unit_price=quote.unit_price,
                        price_context=quote.context,
                        notes=notes,
                    )
                    change_kind = "line_added"
                workspace.save(update_fields=["updated_at"])
        except DatabaseError as e:
            logger.error(f"[WorkspaceService.add_line] Failed to save line for {item.name}: {e}")
            InventoryService.release(requirements)
            raise PersistenceError() from e
        except Exception:
            InventoryService.release(requirements)
            raise

        line.stock_warnings = [r.warning for r in reservations if r.warning]
        logger.info(
            f"[WorkspaceService.add_line] {quantity} x {item.name} @ {quote.unit_price} "
            f"({quote.context}) -> workspace {workspace.id}"
        )
        WorkspaceService._broadcast(workspace, change_kind, line_id=line.id)
        return line

    @staticmethod
    def update_line_quantity(workspace: DraftOrder, operator, line_id, new_quantity: int) -> DraftOrderLine:
        WorkspaceService._check_owner(workspace, operator)
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise ValidationError("Quantity must be a whole number")
        if new_quantity <= 0:
            raise ValidationError("Quantity must be greater than 0. Remove the line instead.")
        line = WorkspaceService._get_line(workspace, line_id)

        delta = new_quantity - line.quantity
        if delta == 0:
            line.stock_warnings = []
            return line

        reservations = []
        if delta > 0:
            reservations = InventoryService.reserve(InventoryService.requirements_for_line(line, delta))

        try:
            with transaction.atomic():
                line.quantity = new_quantity
                line.save()
                workspace.save(update_fields=["updated_at"])
        except DatabaseError as e:
            logger.error(f"[WorkspaceService.update_line_quantity] Failed to update line {line.id}: {e}")
            if delta > 0:
                InventoryService.release(InventoryService.requirements_for_line(line, delta))
            raise PersistenceError() from e
        except Exception:
            if delta > 0:
                InventoryService.release(InventoryService.requirements_for_line(line, delta))
            raise

        if delta < 0:
            InventoryService.release(InventoryService.requirements_for_line(line, -delta))

        line.stock_warnings = [r.warning for r in reservations if r.warning]
        logger.info(f"[WorkspaceService.update_line_quantity] {line.item_name}: {delta:+d} -> {new_quantity}")
        WorkspaceService._broadcast(workspace, "line_updated", line_id=line.id)
        return line

    @staticmethod
    def remove_line(workspace: DraftOrder, operator, line_id) -> None:
        WorkspaceService._check_owner(workspace, operator)
        line = WorkspaceService._get_line(workspace, line_id)
        requirements = InventoryService.requirements_for_line(line)

        try:
            with transaction.atomic():
                line.delete()
                workspace.save(update_fields=["updated_at"])
        except DatabaseError as e:
            logger.error(f"[WorkspaceService.remove_line] Failed to remove line {line_id}: {e}")
            raise PersistenceError() from e

        InventoryService.release(requirements)
        logger.info(f"[WorkspaceService.remove_line] Removed {line.item_name} from workspace {workspace.id}")
        WorkspaceService._broadcast(workspace, "line_removed", line_id=line_id)

    # === ATTACHMENTS ===

    @staticmethod
    @transaction.atomic
    def set_customer(workspace: DraftOrder, operator, customer) -> DraftOrder:
        """Attach (or detach) a customer and re-price product lines for their tier."""
        WorkspaceService._check_owner(workspace, operator)
        workspace.customer = customer
        workspace.save(update_fields=["customer", "updated_at"])

        subtotal = OrderCalculator(workspace).calculate_subtotal()
        for line in workspace.lines.select_related("product", "package"):
            if line.product is not None:
                quote = PricingService.quote_product(line.product, customer, order_subtotal=subtotal)
            else:
                quote = PricingService.quote_package(line.package, customer)
            if quote.unit_price != line.unit_price or quote.context != line.price_context:
                line.unit_price = quote.unit_price
                line.price_context = quote.context
                line.save()

        WorkspaceService._broadcast(workspace, "customer_changed")
        return workspace

    @staticmethod
    def set_table(workspace: DraftOrder, operator, table) -> DraftOrder:
        WorkspaceService._check_owner(workspace, operator)
        if table is not None and not table.is_active:
            raise ValidationError(f"Table {table.number} is not in service")

        workspace.table = table
        workspace.save(update_fields=["table", "updated_at"])
        WorkspaceService._broadcast(workspace, "table_changed")
        return workspace

    @staticmethod
    def set_discount(workspace: DraftOrder, operator, discount_type: str, value) -> DraftOrder:
        WorkspaceService._check_owner(workspace, operator)
        workspace.discount_value = validate_discount(discount_type, value)
        workspace.discount_type = discount_type or ""
        workspace.save(update_fields=["discount_type", "discount_value", "updated_at"])
        WorkspaceService._broadcast(workspace, "discount_changed")
        return workspace

    @staticmethod
    def get_totals(workspace: DraftOrder) -> Totals:
        return OrderCalculator(workspace).calculate_totals()

    # === CLEANUP ===

    @staticmethod
    def release_stale_holds(older_than_hours: int = 12, dry_run: bool = False) -> int:
        """
        Discard held drafts untouched for `older_than_hours`. Holds never expire
        on their own; this runs only when an operator asks for it.
        """
        cutoff = timezone.now() - timedelta(hours=older_than_hours)
        stale = DraftOrder.objects.filter(is_on_hold=True, updated_at__lt=cutoff).select_related("cashier")

        count = 0
        for workspace in stale:
            if not dry_run:
                WorkspaceService.discard(workspace, workspace.cashier)
            count += 1

        logger.info(
            f"[WorkspaceService.release_stale_holds] {'Would release' if dry_run else 'Released'} "
            f"{count} held drafts older than {older_than_hours}h"
        )
        return count

    @staticmethod
    def _broadcast(workspace: DraftOrder, change_kind: str, **data) -> None:
        change_broadcaster.publish(
            "workspace",
            workspace.id,
            change_kind,
            operator_id=workspace.cashier_id,
            data={key: str(value) for key, value in data.items()},
        )
