from django.contrib import admin

from .models import OrderSession, Table


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("number", "section", "capacity", "status", "current_session", "is_active")
    list_filter = ("status", "section", "is_active")
    search_fields = ("number", "section")


@admin.register(OrderSession)
class OrderSessionAdmin(admin.ModelAdmin):
    list_display = ("session_number", "status", "table", "customer", "total", "opened_at", "closed_at")
    list_filter = ("status", "payment_method", "opened_at")
    search_fields = ("session_number", "table__number", "customer__first_name", "customer__last_name")
    readonly_fields = (
        "session_number",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total",
        "opened_at",
        "closed_at",
    )
    date_hierarchy = "opened_at"
