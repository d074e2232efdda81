from django.urls import path, include
from rest_framework import routers

from .views import OrderViewSet

app_name = "orders"

# Mounted at /api/orders/
router = routers.SimpleRouter()
router.register(r"", OrderViewSet, basename="order")

urlpatterns = [
    path("", include(router.urls)),
]
