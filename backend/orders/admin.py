from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product', 'quantity', 'unit_price']
    readonly_fields = ['product', 'quantity', 'unit_price']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'store', 'customer_name', 'customer_phone', 'seller', 'status', 'get_total', 'created_at']
    list_filter = ['store', 'status', 'created_at']
    search_fields = ['customer_name', 'customer_phone']
    ordering = ['-created_at']
    inlines = [OrderItemInline]
    readonly_fields = ['created_at']

    def get_total(self, obj):
        return f"{obj.get_total():.2f}"
    get_total.short_description = 'Total'
