from django.contrib import admin
from .models import AnalyticsEvent


@admin.register(AnalyticsEvent)
class AnalyticsEventAdmin(admin.ModelAdmin):
    list_display = ['id', 'store', 'product', 'event_type', 'created_at']
    list_filter = ['event_type', 'store', 'created_at']
    search_fields = ['product__name']
    readonly_fields = ['store', 'product', 'event_type', 'user_agent', 'referrer', 'created_at']
    ordering = ['-created_at']
