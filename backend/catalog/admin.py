from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'store', 'brand', 'category', 'sale_price', 'stock_quantity', 'is_available', 'updated_at']
    list_filter = ['store', 'is_available', 'category', 'created_at']
    search_fields = ['name', 'brand', 'category']
    ordering = ['store', 'name']
    readonly_fields = ['created_at', 'updated_at']
