from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("item_name", "unit_price", "quantity", "subtotal", "price_context", "is_voided")
    fields = ("item_name", "quantity", "unit_price", "subtotal", "price_context", "is_voided")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Order model.

    Orders are changed only through the services (confirm, void, modify), so
    the money and status fields are read-only here.
    """

    list_display = ("order_number", "status", "session", "table", "cashier", "total", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("order_number", "session__session_number", "cashier__username")
    readonly_fields = (
        "order_number",
        "status",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total",
        "created_at",
        "confirmed_at",
        "served_at",
        "voided_at",
        "voided_by",
        "void_reason",
    )
    inlines = [OrderItemInline]
    date_hierarchy = "created_at"
