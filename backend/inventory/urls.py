from django.urls import path

from .views import InventoryViewSet

urlpatterns = [
    path(
        "availability/",
        InventoryViewSet.as_view({"post": "availability"}),
        name="inventory-availability",
    ),
    path(
        "adjust/",
        InventoryViewSet.as_view({"post": "adjust"}),
        name="inventory-adjust",
    ),
]
