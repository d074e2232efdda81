"""
Draft Order Workspace Tests

Tests for an operator's in-progress orders: line merging, stock reservation
on every change, hold/resume, customer re-pricing and explicit cleanup.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.utils import timezone

from cart.models import DraftOrder, DraftOrderLine
from cart.services import WorkspaceService
from core_backend.exceptions import NotFound, OutOfStock, ValidationError
from inventory.tracker import stock_tracker
from products.pricing import PriceContext


@pytest.mark.django_db
class TestWorkspaceLifecycle:
    """One active workspace per operator"""

    def test_ensure_workspace_is_idempotent(self, cashier):
        first = WorkspaceService.ensure_workspace(cashier)
        second = WorkspaceService.ensure_workspace(cashier)

        assert first.pk == second.pk
        assert DraftOrder.objects.filter(cashier=cashier).count() == 1

    def test_operators_have_separate_workspaces(self, cashier, second_cashier):
        mine = WorkspaceService.ensure_workspace(cashier)
        theirs = WorkspaceService.ensure_workspace(second_cashier)

        assert mine.pk != theirs.pk

    def test_other_operator_cannot_use_workspace(self, cashier, second_cashier, beer):
        """A workspace owned by someone else is reported as not found"""
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(NotFound):
            WorkspaceService.add_line(workspace, second_cashier, product=beer, quantity=1)
        with pytest.raises(NotFound):
            WorkspaceService.get_workspace(workspace.pk, second_cashier)


@pytest.mark.django_db
class TestWorkspaceLines:
    """Adding, merging, updating and removing lines"""

    def test_add_line_reserves_stock(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)

        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        assert line.unit_price == Decimal("50.00")
        assert line.subtotal == Decimal("100.00")
        assert line.price_context == PriceContext.REGULAR
        assert stock_tracker.current_available(beer.pk) == 8

    def test_same_item_merges_into_one_line(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)

        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=3)

        assert workspace.lines.count() == 1
        assert line.quantity == 5
        assert stock_tracker.reserved(beer.pk) == 5

    def test_different_notes_keep_separate_lines(self, cashier, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)

        WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1)
        WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1, notes="No chili")

        assert workspace.lines.count() == 2

    def test_out_of_stock_leaves_workspace_untouched(self, cashier, second_cashier, beer):
        """
        CRITICAL: Verify a refused reservation changes nothing.

        Another operator holds 8 of 10; asking for 3 is refused and neither
        the lines nor the counters move.
        """
        other = WorkspaceService.ensure_workspace(second_cashier)
        WorkspaceService.add_line(other, second_cashier, product=beer, quantity=8)

        workspace = WorkspaceService.ensure_workspace(cashier)
        with pytest.raises(OutOfStock) as exc_info:
            WorkspaceService.add_line(workspace, cashier, product=beer, quantity=3)

        assert "only 2 available" in exc_info.value.message
        assert workspace.lines.count() == 0
        assert stock_tracker.reserved(beer.pk) == 8

    def test_package_line_reserves_each_component(self, cashier, bucket_package, beer, second_beer, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)

        line = WorkspaceService.add_line(workspace, cashier, package=bucket_package, quantity=1)

        assert line.item_name == "Bucket Deal"
        assert line.unit_price == Decimal("400.00")
        assert stock_tracker.reserved(beer.pk) == 2
        assert stock_tracker.reserved(second_beer.pk) == 3
        assert stock_tracker.reserved(sisig.pk) == 1

    def test_advisory_warning_is_returned(self, cashier, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)

        line = WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=4)

        assert line.stock_warnings == ["Low stock - kitchen confirmation required"]

    def test_inactive_item_rejected(self, cashier, beer):
        beer.is_active = False
        beer.save()
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(ValidationError):
            WorkspaceService.add_line(workspace, cashier, product=beer, quantity=1)

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, cashier, beer, quantity):
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(ValidationError):
            WorkspaceService.add_line(workspace, cashier, product=beer, quantity=quantity)

    def test_update_quantity_reserves_and_releases_delta(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        WorkspaceService.update_line_quantity(workspace, cashier, line.pk, 5)
        assert stock_tracker.reserved(beer.pk) == 5

        line = WorkspaceService.update_line_quantity(workspace, cashier, line.pk, 1)
        assert stock_tracker.reserved(beer.pk) == 1
        assert line.subtotal == Decimal("50.00")

    def test_update_quantity_to_zero_rejected(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        with pytest.raises(ValidationError):
            WorkspaceService.update_line_quantity(workspace, cashier, line.pk, 0)

        assert stock_tracker.reserved(beer.pk) == 2

    def test_remove_line_releases_stock(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=3)

        WorkspaceService.remove_line(workspace, cashier, line.pk)

        assert workspace.lines.count() == 0
        assert stock_tracker.current_available(beer.pk) == 10

    def test_remove_unknown_line(self, cashier):
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(NotFound):
            WorkspaceService.remove_line(workspace, cashier, "not-a-uuid")

    def test_clear_releases_everything(self, cashier, beer, bucket_package, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
        WorkspaceService.add_line(workspace, cashier, package=bucket_package, quantity=1)

        WorkspaceService.clear(workspace, cashier)

        assert workspace.lines.count() == 0
        assert stock_tracker.reserved(beer.pk) == 0
        assert stock_tracker.reserved(sisig.pk) == 0

    def test_failed_line_write_gives_back_reservations(self, cashier, beer):
        """
        HIGH: Verify any failure after reserving hands the stock back, not only
        database errors.
        """
        workspace = WorkspaceService.ensure_workspace(cashier)

        with patch.object(DraftOrderLine.objects, "create", side_effect=RuntimeError("serializer bug")):
            with pytest.raises(RuntimeError):
                WorkspaceService.add_line(workspace, cashier, product=beer, quantity=3)

        assert stock_tracker.reserved(beer.pk) == 0
        assert workspace.lines.count() == 0

    def test_failed_quantity_increase_gives_back_reservations(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        with patch.object(DraftOrderLine, "save", side_effect=RuntimeError("serializer bug")):
            with pytest.raises(RuntimeError):
                WorkspaceService.update_line_quantity(workspace, cashier, line.id, 5)

        line.refresh_from_db()
        assert line.quantity == 2
        assert stock_tracker.reserved(beer.pk) == 2


@pytest.mark.django_db
class TestHoldAndResume:
    """Held drafts keep their reservations"""

    def test_held_workspace_keeps_reservations(self, cashier, beer):
        """
        CRITICAL: Verify holding does not release stock.

        Availability reflects the hold until the draft is resumed and
        cleared.
        """
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=4)

        WorkspaceService.hold(workspace, cashier)
        assert stock_tracker.current_available(beer.pk) == 6

        fresh = WorkspaceService.ensure_workspace(cashier)
        assert fresh.pk != workspace.pk
        assert stock_tracker.current_available(beer.pk) == 6

        WorkspaceService.resume(workspace, cashier)
        assert stock_tracker.current_available(beer.pk) == 6

        WorkspaceService.clear(workspace, cashier)
        assert stock_tracker.current_available(beer.pk) == 10

    def test_resume_holds_the_active_draft(self, cashier, beer, sisig):
        first = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(first, cashier, product=beer, quantity=1)
        WorkspaceService.hold(first, cashier)

        second = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(second, cashier, product=sisig, quantity=1)

        WorkspaceService.resume(first, cashier)

        second.refresh_from_db()
        assert second.is_on_hold is True
        assert WorkspaceService.active_workspace(cashier).pk == first.pk
        assert DraftOrder.objects.filter(cashier=cashier, is_on_hold=False).count() == 1

    def test_resume_deletes_empty_active_draft(self, cashier, beer):
        first = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(first, cashier, product=beer, quantity=1)
        WorkspaceService.hold(first, cashier)
        empty = WorkspaceService.ensure_workspace(cashier)

        WorkspaceService.resume(first, cashier)

        assert not DraftOrder.objects.filter(pk=empty.pk).exists()

    def test_cannot_hold_empty_workspace(self, cashier):
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(ValidationError):
            WorkspaceService.hold(workspace, cashier)

    def test_discard_releases_and_deletes(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=3)
        WorkspaceService.hold(workspace, cashier)
        workspace_id = workspace.pk

        WorkspaceService.discard(workspace, cashier)

        assert not DraftOrder.objects.filter(pk=workspace_id).exists()
        assert stock_tracker.reserved(beer.pk) == 0

    def test_release_stale_drafts_command(self, cashier, beer):
        """Old holds are discarded only when the command runs"""
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
        WorkspaceService.hold(workspace, cashier)
        DraftOrder.objects.filter(pk=workspace.pk).update(updated_at=timezone.now() - timedelta(hours=30))

        call_command("release_stale_drafts", "--hours", "24", "--dry-run")
        assert DraftOrder.objects.filter(pk=workspace.pk).exists()

        call_command("release_stale_drafts", "--hours", "24")
        assert not DraftOrder.objects.filter(pk=workspace.pk).exists()
        assert stock_tracker.reserved(beer.pk) == 0


@pytest.mark.django_db
class TestAttachments:
    """Customer, table and discount"""

    def test_vip_customer_reprices_lines(self, cashier, beer, vip_customer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        line = WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        WorkspaceService.set_customer(workspace, cashier, vip_customer)

        line.refresh_from_db()
        assert line.unit_price == Decimal("45.00")
        assert line.price_context == PriceContext.VIP
        assert WorkspaceService.get_totals(workspace).subtotal == Decimal("90.00")

    def test_inactive_table_rejected(self, cashier, table_one):
        table_one.is_active = False
        table_one.save()
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(ValidationError):
            WorkspaceService.set_table(workspace, cashier, table_one)

    def test_percentage_discount_in_totals(self, cashier, beer):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)

        WorkspaceService.set_discount(workspace, cashier, "percentage", Decimal("10"))
        totals = WorkspaceService.get_totals(workspace)

        assert totals.subtotal == Decimal("100.00")
        assert totals.discount == Decimal("10.00")
        assert totals.total == Decimal("90.00")

    def test_discount_over_100_percent_rejected(self, cashier):
        workspace = WorkspaceService.ensure_workspace(cashier)

        with pytest.raises(ValidationError):
            WorkspaceService.set_discount(workspace, cashier, "percentage", Decimal("150"))
