from decimal import Decimal
from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemInputSerializer(serializers.Serializer):
    productId = serializers.IntegerField(source='product_id')
    quantity = serializers.IntegerField(min_value=1)
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=10, decimal_places=2,
                                         min_value=Decimal('0.00'), required=False, allow_null=True)


class CreateOrderSerializer(serializers.Serializer):
    """Order creation payload: {customerName, customerPhone, sellerId, items}"""
    customerName = serializers.CharField(source='customer_name', max_length=200)
    customerPhone = serializers.CharField(source='customer_phone', max_length=30)
    sellerId = serializers.IntegerField(source='seller_id')
    items = OrderItemInputSerializer(many=True, allow_empty=False)


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.IntegerField(source='product_id', read_only=True)
    productName = serializers.CharField(source='product.name', read_only=True)
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=10, decimal_places=2, read_only=True)
    lineTotal = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'productId', 'productName', 'quantity', 'unitPrice', 'lineTotal']

    def get_lineTotal(self, obj):
        return f"{obj.get_line_total():.2f}"


class OrderSerializer(serializers.ModelSerializer):
    customerName = serializers.CharField(source='customer_name', read_only=True)
    customerPhone = serializers.CharField(source='customer_phone', read_only=True)
    seller = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    itemCount = serializers.SerializerMethodField()
    total = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['id', 'store', 'customerName', 'customerPhone', 'seller', 'status', 'createdAt',
                  'items', 'itemCount', 'total']

    def get_seller(self, obj):
        if obj.seller:
            return {'id': obj.seller.id, 'name': obj.seller.display_name}
        return None

    def get_itemCount(self, obj):
        # Annotated by get_recent_orders; fall back to the prefetched items
        item_count = getattr(obj, 'item_count', None)
        if item_count is None:
            item_count = len(obj.items.all())
        return item_count

    def get_total(self, obj):
        return f"{obj.get_total():.2f}"
