from django.db import models
from backend.catalog.models import Product
from backend.stores.models import Store


class AnalyticsEvent(models.Model):
    """Public catalog interaction with a product"""
    EVENT_VIEW = 'view'
    EVENT_WHATSAPP_CLICK = 'whatsapp_click'
    EVENT_TYPE_CHOICES = [
        (EVENT_VIEW, 'Product View'),
        (EVENT_WHATSAPP_CLICK, 'WhatsApp Click'),
    ]

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='analytics_events')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='analytics_events')
    event_type = models.CharField(max_length=20, choices=EVENT_TYPE_CHOICES)
    user_agent = models.TextField(blank=True, null=True)
    referrer = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.event_type} - {self.product_id}"

    class Meta:
        db_table = 'analytics_events'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store', 'event_type', 'created_at'], name='idx_event_store_type_created'),
        ]
