from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "stock_quantity", "stock_state", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")

    def stock_state(self, obj):
        if obj.is_out_of_stock:
            return "out of stock"
        if obj.is_low_stock:
            return "low"
        return "ok"
    stock_state.short_description = "stock"
