from django.contrib import admin

from .models import StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "quantity_change", "new_stock", "order", "created_at")
    list_filter = ("movement_type",)
    readonly_fields = [field.name for field in StockMovement._meta.fields]
