from rest_framework import serializers
from .models import AnalyticsEvent


class TrackEventSerializer(serializers.Serializer):
    """Public tracking payload: {tenantId, productId, eventType, userAgent?, referrer?}"""
    tenantId = serializers.IntegerField(source='store_id')
    productId = serializers.IntegerField(source='product_id')
    eventType = serializers.ChoiceField(source='event_type', choices=[c[0] for c in AnalyticsEvent.EVENT_TYPE_CHOICES])
    userAgent = serializers.CharField(source='user_agent', required=False, allow_blank=True, allow_null=True)
    referrer = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AnalyticsEventSerializer(serializers.ModelSerializer):
    eventType = serializers.CharField(source='event_type', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = AnalyticsEvent
        fields = ['id', 'eventType', 'createdAt']
