"""
URL configuration for core_backend project.

Every app registers its own endpoints; they are all mounted under /api/.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    path("api/workspace/", include("cart.urls")),
    path("api/orders/", include("orders.urls")),
    path("api/tabs/", include("tabs.urls")),
    path("api/kds/", include("kds.urls")),
    path("api/inventory/", include("inventory.urls")),
]
