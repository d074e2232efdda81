from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "tier", "vip_expiry_date", "is_active")
    list_filter = ("tier", "is_active")
    search_fields = ("first_name", "last_name", "phone_number")
