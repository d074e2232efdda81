"""
Inventory API Tests
"""
import pytest

from cart.services import WorkspaceService
from core_backend.tests.fixtures import MANAGER_PIN
from inventory.models import StockMovement


@pytest.mark.django_db
class TestAvailability:

    def test_availability_reflects_reservations(self, cashier_client, cashier, beer, sisig):
        workspace = WorkspaceService.ensure_workspace(cashier)
        WorkspaceService.add_line(workspace, cashier, product=beer, quantity=8)

        response = cashier_client.post(
            "/api/inventory/availability/", {"product_ids": [str(beer.pk), str(sisig.pk)]}, format="json"
        )

        assert response.status_code == 200
        assert response.data[str(beer.pk)] == {"available": 2, "reserved": 8, "stock_status": "low_stock"}
        assert response.data[str(sisig.pk)]["available"] == 5

    def test_empty_query_rejected(self, cashier_client):
        response = cashier_client.post("/api/inventory/availability/", {"product_ids": []}, format="json")

        assert response.status_code == 400


@pytest.mark.django_db
class TestAdjust:

    def test_adjust_with_manager_pin(self, cashier_client, manager, beer):
        response = cashier_client.post(
            "/api/inventory/adjust/",
            {"product_id": str(beer.pk), "quantity_change": 12, "notes": "Delivery", "manager_pin": MANAGER_PIN},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["movement_type"] == StockMovement.MovementType.ADJUSTMENT
        assert response.data["new_stock"] == 22
        beer.refresh_from_db()
        assert beer.current_stock == 22

    def test_adjust_requires_manager(self, cashier_client, beer):
        response = cashier_client.post(
            "/api/inventory/adjust/", {"product_id": str(beer.pk), "quantity_change": 5}, format="json"
        )

        assert response.status_code == 403
        beer.refresh_from_db()
        assert beer.current_stock == 10
