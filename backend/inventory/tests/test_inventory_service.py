"""
Inventory Service Tests

Tests for line-level stock operations: package expansion, all-or-nothing
reservations, durable commits with movement history, and recovery of the
reservation counters from persisted drafts.
"""
import pytest

from cart.services import WorkspaceService
from core_backend.exceptions import ConflictError, OutOfStock, ValidationError
from inventory.models import StockMovement
from inventory.services import InventoryService, StockRequirement
from inventory.tracker import stock_tracker
from products.models import Product


@pytest.mark.django_db
class TestRequirements:
    """Expanding lines into per-product requirements"""

    def test_package_expands_into_components(self, bucket_package, beer, second_beer, sisig):
        requirements = InventoryService.requirements_for(package=bucket_package, quantity=2)

        by_product = {r.product_id: r.quantity for r in requirements}
        assert by_product == {str(beer.pk): 4, str(second_beer.pk): 6, str(sisig.pk): 2}

    def test_product_and_package_are_exclusive(self, beer, bucket_package):
        with pytest.raises(ValidationError):
            InventoryService.requirements_for(product=beer, package=bucket_package)

    def test_merge_sums_same_product(self):
        merged = InventoryService.merge([
            StockRequirement("a", "A", 2),
            StockRequirement("b", "B", 1),
            StockRequirement("a", "A", 3),
        ])

        assert [(r.product_id, r.quantity) for r in merged] == [("a", 5), ("b", 1)]


@pytest.mark.django_db
class TestReserveAndCommit:
    """Reservations and durable stock changes"""

    def test_untracked_product_is_loaded_from_catalog(self, beer):
        assert stock_tracker.current_available(beer.pk) == 10

    def test_reserve_is_all_or_nothing(self, beer, sisig):
        """
        CRITICAL: Verify a refusal part way through undoes earlier reservations.

        Sisig (advisory) is reserved first, then the beer (strict) is refused;
        the sisig reservation must be released again.
        """
        requirements = [
            StockRequirement(str(sisig.pk), sisig.name, 1),
            StockRequirement(str(beer.pk), beer.name, 11),
        ]

        with pytest.raises(OutOfStock):
            InventoryService.reserve(requirements)

        assert stock_tracker.reserved(sisig.pk) == 0
        assert stock_tracker.reserved(beer.pk) == 0

    def test_commit_deducts_durable_stock_and_records_movement(self, beer, cashier):
        requirement = StockRequirement(str(beer.pk), beer.name, 4)
        InventoryService.reserve([requirement])

        committed = InventoryService.commit([requirement], performed_by=cashier)

        beer.refresh_from_db()
        assert beer.current_stock == 6
        assert committed == [requirement]
        assert stock_tracker.reserved(beer.pk) == 0
        assert stock_tracker.current_available(beer.pk) == 6

        movement = StockMovement.objects.get(product=beer)
        assert movement.movement_type == StockMovement.MovementType.SALE
        assert movement.quantity_change == -4
        assert movement.previous_stock == 10
        assert movement.new_stock == 6

    def test_restore_returns_stock(self, beer):
        InventoryService.restore([StockRequirement(str(beer.pk), beer.name, 3)])

        beer.refresh_from_db()
        assert beer.current_stock == 13
        assert stock_tracker.current_available(beer.pk) == 13

    def test_verify_available_checks_durable_stock(self, beer):
        Product.objects.filter(pk=beer.pk).update(current_stock=2)

        with pytest.raises(OutOfStock):
            InventoryService.verify_available([StockRequirement(str(beer.pk), beer.name, 3)])

    def test_verify_available_rejects_inactive_items(self, beer):
        Product.objects.filter(pk=beer.pk).update(is_active=False)

        with pytest.raises(ValidationError):
            InventoryService.verify_available([StockRequirement(str(beer.pk), beer.name, 1)])

    def test_adjust_stock_records_adjustment(self, beer, manager):
        new_stock = InventoryService.adjust_stock(beer, -3, performed_by=manager, notes="Breakage")

        assert new_stock == 7
        assert StockMovement.objects.filter(
            product=beer, movement_type=StockMovement.MovementType.ADJUSTMENT
        ).exists()

    def test_adjustment_cannot_drop_below_reserved_stock(self, beer, manager):
        """
        CRITICAL: Verify a stock count correction never leaves strict stock
        below what operators already hold.

        Scenario:
        - Stock 10, an operator holds 8
        - Removing 5 would leave 5 for 8 reserved -> refused, nothing changes
        - Removing 2 leaves exactly the 8 reserved -> accepted
        """
        stock_tracker.reserve(beer.pk, 8)

        with pytest.raises(ConflictError):
            InventoryService.adjust_stock(beer, -5, performed_by=manager)

        beer.refresh_from_db()
        assert beer.current_stock == 10
        assert stock_tracker.snapshot()[str(beer.pk)]["baseline"] == 10
        assert not StockMovement.objects.filter(product=beer).exists()

        assert InventoryService.adjust_stock(beer, -2, performed_by=manager) == 8
        item = stock_tracker.snapshot()[str(beer.pk)]
        assert item["reserved"] <= item["baseline"]

    def test_advisory_adjustment_below_reserved_allowed(self, sisig):
        stock_tracker.reserve(sisig.pk, 4)

        assert InventoryService.adjust_stock(sisig, -3) == 2

    def test_zero_adjustment_rejected(self, beer):
        with pytest.raises(ValidationError):
            InventoryService.adjust_stock(beer, 0)


@pytest.mark.django_db
class TestRecovery:
    """Rebuilding counters from persisted state"""

    def test_rebuild_from_persisted_drafts(self, cashier, beer, bucket_package):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
        WorkspaceService.add_line(workspace, cashier, package=bucket_package, quantity=1)

        # Simulate a restart: counters are lost
        stock_tracker.clear()
        totals = InventoryService.rebuild_reservations()

        assert totals[str(beer.pk)] == 4
        assert stock_tracker.reserved(beer.pk) == 4
        assert stock_tracker.current_available(beer.pk) == 6
