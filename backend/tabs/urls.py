from django.urls import path, include
from rest_framework import routers

from .views import TabViewSet

app_name = "tabs"

# Mounted at /api/tabs/
router = routers.SimpleRouter()
router.register(r"", TabViewSet, basename="tab")

urlpatterns = [
    path("", include(router.urls)),
]
