"""
Station API Tests
"""
import pytest

from cart.services import WorkspaceService
from orders.services import FinalizationService


@pytest.fixture
def order(cashier, beer, sisig):
    workspace = WorkspaceService.ensure_workspace(cashier)
    WorkspaceService.add_line(workspace, cashier, product=beer, quantity=2)
    WorkspaceService.add_line(workspace, cashier, product=sisig, quantity=1)
    return FinalizationService.finalize(workspace, cashier)


@pytest.mark.django_db
class TestStationEndpoints:

    def test_station_queue(self, cashier_client, order):
        response = cashier_client.get("/api/kds/kitchen/tickets/")

        assert response.status_code == 200
        assert response.data["destination"] == "kitchen"
        assert response.data["count"] == 1
        assert response.data["tickets"][0]["label"] == "Sizzling Sisig"
        assert response.data["tickets"][0]["order_number"] == order.order_number

    def test_unknown_station(self, cashier_client):
        response = cashier_client.get("/api/kds/dishwasher/tickets/")

        assert response.status_code == 400

    def test_advance_ticket(self, cashier_client, order):
        ticket = order.tickets.get(destination="bartender")

        response = cashier_client.post(
            f"/api/kds/tickets/{ticket.pk}/advance/", {"status": "preparing"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == "preparing"
        assert response.data["started_at"] is not None

    def test_advance_skipping_steps(self, cashier_client, order):
        ticket = order.tickets.get(destination="bartender")

        response = cashier_client.post(
            f"/api/kds/tickets/{ticket.pk}/advance/", {"status": "served"}, format="json"
        )

        assert response.status_code == 409

    def test_requires_authentication(self, api_client):
        response = api_client.get("/api/kds/kitchen/tickets/")

        assert response.status_code == 403
