"""
Order transaction service

Creates an order with its line items and decrements product stock inside a
single database transaction. Either everything is written or nothing is.
"""
from decimal import Decimal, ROUND_HALF_UP
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.db.models import Count, F, Value
from django.db.models.functions import Greatest

from backend.catalog.models import Product
from backend.core.cache_utils import invalidate_order_dependent_caches
from backend.core.models import User
from backend.core.utils import create_audit_log
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

STOCK_POLICY_ALLOW_NEGATIVE = 'allow_negative'
STOCK_POLICY_CLAMP_AT_ZERO = 'clamp_at_zero'
STOCK_POLICIES = (STOCK_POLICY_ALLOW_NEGATIVE, STOCK_POLICY_CLAMP_AT_ZERO)

ORDER_FAILED_MESSAGE = 'Failed to create order'
CENTS = Decimal('0.01')


class OrderValidationError(Exception):
    """Order payload rejected before any write"""


class OrderResult:
    """Outcome of create_order"""

    def __init__(self, success, order_id=None, error=None):
        self.success = success
        self.order_id = order_id
        self.error = error

    def to_dict(self):
        data = {'success': self.success}
        if self.order_id is not None:
            data['orderId'] = self.order_id
        if self.error:
            data['error'] = self.error
        return data

    def __repr__(self):
        return f"OrderResult(success={self.success}, order_id={self.order_id}, error={self.error!r})"


def get_stock_policy():
    policy = getattr(settings, 'ORDER_STOCK_POLICY', STOCK_POLICY_ALLOW_NEGATIVE)
    if policy not in STOCK_POLICIES:
        raise ImproperlyConfigured(
            f"ORDER_STOCK_POLICY must be one of {', '.join(STOCK_POLICIES)}, got {policy!r}"
        )
    return policy


def stock_decrement_expression(quantity, policy):
    """Database-side expression for the new stock value"""
    if policy == STOCK_POLICY_CLAMP_AT_ZERO:
        return Greatest(F('stock_quantity') - quantity, Value(0))
    return F('stock_quantity') - quantity


def calculate_order_total(items):
    """
    Sum of quantity x unit price over the line items, rounded half-up to cents.

    Accepts OrderItem instances or dicts with 'quantity' and 'unit_price'.
    """
    total = Decimal('0')
    for item in items:
        if isinstance(item, dict):
            quantity, unit_price = item['quantity'], item['unit_price']
        else:
            quantity, unit_price = item.quantity, item.unit_price
        total += Decimal(str(quantity)) * Decimal(str(unit_price))
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_order_payload(store_id, data):
    if not store_id:
        raise OrderValidationError('Store ID is required')

    items = (data or {}).get('items') or []
    if not items:
        raise OrderValidationError('Order must have at least one item')

    for item in items:
        if not item.get('product_id'):
            raise OrderValidationError('Every item needs a product')
        quantity = item.get('quantity')
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise OrderValidationError('Item quantity must be a positive integer')
    return items


def create_order(store_id, data, user=None, request=None):
    """
    Create an order for a store.

    Args:
        store_id: Tenant store id
        data: dict with customer_name, customer_phone, seller_id and
            items [{product_id, quantity, unit_price (optional)}]
        user: User performing the action (audit log)
        request: Optional request (audit log IP)

    Returns:
        OrderResult. Any failure inside the transaction is rolled back and
        reported as a single generic failure.

    Raises:
        OrderValidationError: missing store or empty/invalid items, raised
            before the database is touched.
    """
    items = validate_order_payload(store_id, data)
    policy = get_stock_policy()

    try:
        with transaction.atomic():
            seller = None
            seller_id = data.get('seller_id')
            if seller_id:
                seller = User.objects.get(pk=seller_id, store_id=store_id)

            order = Order.objects.create(
                store_id=store_id,
                customer_name=data.get('customer_name') or '',
                customer_phone=data.get('customer_phone') or '',
                seller=seller,
                status=Order.STATUS_COMPLETED,
            )

            for item in items:
                product = Product.objects.get(pk=item['product_id'], store_id=store_id)
                unit_price = item.get('unit_price')
                if unit_price is None:
                    unit_price = product.sale_price

                OrderItem.objects.create(
                    order=order,
                    product=product,
                    quantity=item['quantity'],
                    unit_price=unit_price,
                )

                Product.objects.filter(pk=product.pk).update(
                    stock_quantity=stock_decrement_expression(item['quantity'], policy)
                )
    except Exception as e:
        logger.error(f"Error creating order for store {store_id}: {str(e)}", exc_info=True)
        return OrderResult(success=False, error=ORDER_FAILED_MESSAGE)

    # Cached order lists, product stock and dashboard metrics are stale now
    transaction.on_commit(invalidate_order_dependent_caches)

    logger.info(f"Order {order.id} created for store {store_id} with {len(items)} item(s)")
    create_audit_log(
        request=request,
        user=user,
        action='order_create',
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
        store=order.store,
        changes={
            'items': [
                {'product_id': item['product_id'], 'quantity': item['quantity']}
                for item in items
            ],
            'stock_policy': policy,
        },
    )
    return OrderResult(success=True, order_id=order.id)


def get_recent_orders(store_id, limit=None):
    """Most recent orders of a store, newest first, with seller, items and item count"""
    if not store_id:
        return []

    if limit is None:
        limit = getattr(settings, 'ORDER_RECENT_LIMIT', 10)

    return list(
        Order.objects.filter(store_id=store_id)
        .select_related('seller')
        .prefetch_related('items', 'items__product')
        .annotate(item_count=Count('items'))
        .order_by('-created_at', '-id')[:limit]
    )
