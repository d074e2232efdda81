"""
Order API Tests

Tests for the order lifecycle endpoints: status changes, voids and
changes to lines already sent to the stations.
"""
import pytest

from cart.services import WorkspaceService
from core_backend.tests.fixtures import MANAGER_PIN
from orders.models import Order
from orders.services import FinalizationService


@pytest.fixture
def confirmed_order(cashier, beer, sisig):
    workspace = WorkspaceService.ensure_workspace(cashier)
    WorkspaceService.add_line(workspace, cashier, product=beer, quantity=4)
    WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1)
    return FinalizationService.finalize(workspace, cashier)


@pytest.mark.django_db
class TestOrderStatusEndpoints:

    def test_list_by_status(self, cashier_client, confirmed_order):
        response = cashier_client.get("/api/orders/", {"status": "confirmed"})

        assert response.status_code == 200
        assert [o["id"] for o in response.data] == [str(confirmed_order.pk)]

    def test_advance_status(self, cashier_client, confirmed_order):
        response = cashier_client.post(
            f"/api/orders/{confirmed_order.pk}/status/", {"status": "PREPARING"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == "PREPARING"

    def test_invalid_transition_is_a_conflict(self, cashier_client, confirmed_order):
        response = cashier_client.post(
            f"/api/orders/{confirmed_order.pk}/status/", {"status": "SERVED"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["code"] == "invalid_state_transition"

    def test_unknown_order(self, cashier_client):
        response = cashier_client.get("/api/orders/not-a-uuid/")

        assert response.status_code == 404


@pytest.mark.django_db
class TestVoidEndpoint:

    def test_cashier_void_with_manager_pin(self, cashier_client, confirmed_order, manager, beer):
        response = cashier_client.post(
            f"/api/orders/{confirmed_order.pk}/void/",
            {"reason": "Customer left", "manager_pin": MANAGER_PIN},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["status"] == "VOIDED"
        beer.refresh_from_db()
        assert beer.current_stock == 10

    def test_cashier_void_without_pin_forbidden(self, cashier_client, confirmed_order, manager):
        response = cashier_client.post(
            f"/api/orders/{confirmed_order.pk}/void/", {"reason": "Customer left"}, format="json"
        )

        assert response.status_code == 403
        confirmed_order.refresh_from_db()
        assert confirmed_order.status == Order.OrderStatus.CONFIRMED

    def test_manager_voids_directly(self, manager_client, confirmed_order):
        response = manager_client.post(
            f"/api/orders/{confirmed_order.pk}/void/", {"reason": "Wrong table"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["void_reason"] == "Wrong table"

    def test_reason_required(self, manager_client, confirmed_order):
        response = manager_client.post(f"/api/orders/{confirmed_order.pk}/void/", {}, format="json")

        assert response.status_code == 400


@pytest.mark.django_db
class TestItemEndpoints:

    def test_reduce_item(self, manager_client, confirmed_order, beer):
        item = confirmed_order.items.get(product=beer)

        response = manager_client.post(
            f"/api/orders/{confirmed_order.pk}/items/{item.pk}/reduce/",
            {"quantity": 3, "reason": "One returned"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["total"] == "330.00"
        beer.refresh_from_db()
        assert beer.current_stock == 7

    def test_remove_item(self, manager_client, confirmed_order, sisig):
        item = confirmed_order.items.get(product=sisig)

        response = manager_client.delete(
            f"/api/orders/{confirmed_order.pk}/items/{item.pk}/", {"reason": "Not ordered"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["total"] == "200.00"

    def test_reduce_unknown_item(self, manager_client, confirmed_order):
        response = manager_client.post(
            f"/api/orders/{confirmed_order.pk}/items/00000000-0000-0000-0000-000000000000/reduce/",
            {"quantity": 1},
            format="json",
        )

        assert response.status_code == 404
