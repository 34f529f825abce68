from decimal import Decimal
from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    sale_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    original_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True)
    stock_quantity = serializers.IntegerField(required=False)

    class Meta:
        model = Product
        fields = ['id', 'store', 'name', 'description', 'brand', 'category', 'original_price', 'sale_price',
                  'image_url', 'is_available', 'stock_quantity', 'created_at', 'updated_at']
        read_only_fields = ['store', 'created_at', 'updated_at']

    def validate_image_url(self, value):
        if value and not (value.startswith('http://') or value.startswith('https://') or value.startswith('/')):
            raise serializers.ValidationError('Invalid image URL')
        return value

    def validate_stock_quantity(self, value):
        # Admin edits may not set negative stock; only the order flow can
        if value is not None and value < 0:
            raise serializers.ValidationError('Stock quantity cannot be negative')
        return value


class CatalogProductSerializer(serializers.ModelSerializer):
    """Public catalog view of a product, with the store's WhatsApp enquiry link"""
    whatsapp_url = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'brand', 'category', 'original_price', 'sale_price', 'image_url',
                  'whatsapp_url']

    def get_whatsapp_url(self, obj):
        from backend.analytics.tracking import build_whatsapp_url
        phone = obj.store.whatsapp_primary
        if not phone:
            return None
        return build_whatsapp_url(phone, obj.name, obj.sale_price)
