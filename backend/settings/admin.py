from django.contrib import admin

from .models import GlobalSettings


@admin.register(GlobalSettings)
class GlobalSettingsAdmin(admin.ModelAdmin):
    list_display = ("business_name", "currency", "tax_rate", "default_stock_policy", "default_destination")

    def has_add_permission(self, request):
        return not GlobalSettings.objects.exists()
