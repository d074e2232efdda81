from django.contrib import admin
from mptt.admin import MPTTModelAdmin

from .models import Category, HappyHour, HappyHourProduct, Package, PackageItem, Product


@admin.register(Category)
class CategoryAdmin(MPTTModelAdmin):
    list_display = ("name", "default_destination", "stock_policy", "is_active")
    list_filter = ("default_destination", "stock_policy", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "base_price", "vip_price", "current_stock", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("name",)


class PackageItemInline(admin.TabularInline):
    model = PackageItem
    extra = 1


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "vip_price", "is_active")
    inlines = [PackageItemInline]


class HappyHourProductInline(admin.TabularInline):
    model = HappyHourProduct
    extra = 1


@admin.register(HappyHour)
class HappyHourAdmin(admin.ModelAdmin):
    list_display = ("name", "start_time", "end_time", "discount_type", "discount_value", "is_active")
    inlines = [HappyHourProductInline]
