"""
Test suite for the order transaction service
Tests: atomic order creation, stock decrement policies, totals, recent orders and cache invalidation
"""
from decimal import Decimal
from unittest.mock import patch
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase, override_settings
from rest_framework import status
from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order, OrderItem
from backend.orders.services import (
    OrderResult, OrderValidationError, calculate_order_total, create_order, get_recent_orders,
)


class OrderTotalTests(TestCase):
    """Order totals and result payloads"""

    def test_total_of_scenario(self):
        items = [
            {'quantity': 2, 'unit_price': Decimal('10.00')},
            {'quantity': 1, 'unit_price': Decimal('25.00')},
        ]
        self.assertEqual(calculate_order_total(items), Decimal('45.00'))

    def test_total_rounds_half_up(self):
        self.assertEqual(calculate_order_total([{'quantity': 1, 'unit_price': Decimal('0.005')}]), Decimal('0.01'))
        self.assertEqual(calculate_order_total([{'quantity': 3, 'unit_price': Decimal('3.335')}]), Decimal('10.01'))

    def test_total_of_no_items(self):
        self.assertEqual(calculate_order_total([]), Decimal('0.00'))

    def test_result_to_dict(self):
        self.assertEqual(OrderResult(success=True, order_id=7).to_dict(), {'success': True, 'orderId': 7})
        self.assertEqual(
            OrderResult(success=False, error='Failed to create order').to_dict(),
            {'success': False, 'error': 'Failed to create order'}
        )

    def test_model_total(self):
        store = TestDataFactory.create_store()
        p1 = TestDataFactory.create_product(store)
        p2 = TestDataFactory.create_product(store)
        order = TestDataFactory.create_order(store, items=[
            (p1, 2, Decimal('10.00')),
            (p2, 1, Decimal('25.00')),
        ])
        self.assertEqual(order.get_total(), Decimal('45.00'))


class CreateOrderServiceTests(TestCase):
    """create_order: all-or-nothing writes"""

    def setUp(self):
        self.store = TestDataFactory.create_store()
        self.seller = TestDataFactory.create_user(store=self.store, role='attendant')
        self.p1 = TestDataFactory.create_product(self.store, sale_price=Decimal('10.00'), stock_quantity=5)
        self.p2 = TestDataFactory.create_product(self.store, sale_price=Decimal('25.00'), stock_quantity=3)

    def _payload(self, items, seller_id=None):
        return {
            'customer_name': 'Ana',
            'customer_phone': '11999998888',
            'seller_id': seller_id or self.seller.id,
            'items': items,
        }

    def test_creates_order_items_and_decrements_stock(self):
        result = create_order(self.store.id, self._payload([
            {'product_id': self.p1.id, 'quantity': 2, 'unit_price': Decimal('10.00')},
            {'product_id': self.p2.id, 'quantity': 1, 'unit_price': Decimal('25.00')},
        ]), user=self.seller)

        self.assertTrue(result.success)
        order = Order.objects.get(pk=result.order_id)
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(order.seller, self.seller)
        self.assertEqual(order.get_total(), Decimal('45.00'))

        self.p1.refresh_from_db()
        self.p2.refresh_from_db()
        self.assertEqual(self.p1.stock_quantity, 3)
        self.assertEqual(self.p2.stock_quantity, 2)

    def test_unit_price_defaults_to_sale_price(self):
        result = create_order(self.store.id, self._payload([{'product_id': self.p2.id, 'quantity': 2}]))
        self.assertTrue(result.success)
        item = OrderItem.objects.get(order_id=result.order_id)
        self.assertEqual(item.unit_price, Decimal('25.00'))

    def test_invalid_product_rolls_back_everything(self):
        result = create_order(self.store.id, self._payload([
            {'product_id': self.p1.id, 'quantity': 2},
            {'product_id': 999999, 'quantity': 1},
        ]))

        self.assertFalse(result.success)
        self.assertEqual(result.error, 'Failed to create order')
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock_quantity, 5)

    def test_product_of_another_store_rolls_back(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_store(), stock_quantity=4)
        result = create_order(self.store.id, self._payload([{'product_id': foreign.id, 'quantity': 1}]))
        self.assertFalse(result.success)
        foreign.refresh_from_db()
        self.assertEqual(foreign.stock_quantity, 4)
        self.assertEqual(Order.objects.count(), 0)

    def test_seller_of_another_store_rolls_back(self):
        outsider = TestDataFactory.create_user(store=TestDataFactory.create_store())
        result = create_order(self.store.id, self._payload([{'product_id': self.p1.id, 'quantity': 1}], seller_id=outsider.id))
        self.assertFalse(result.success)
        self.assertEqual(Order.objects.count(), 0)

    def test_empty_items_rejected_before_persistence(self):
        with self.assertRaises(OrderValidationError):
            create_order(self.store.id, self._payload([]))
        self.assertEqual(Order.objects.count(), 0)

    def test_missing_store_rejected(self):
        with self.assertRaises(OrderValidationError):
            create_order(None, self._payload([{'product_id': self.p1.id, 'quantity': 1}]))

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(OrderValidationError):
            create_order(self.store.id, self._payload([{'product_id': self.p1.id, 'quantity': 0}]))

    def test_stock_may_go_negative_by_default(self):
        result = create_order(self.store.id, self._payload([{'product_id': self.p2.id, 'quantity': 5}]))
        self.assertTrue(result.success)
        self.p2.refresh_from_db()
        self.assertEqual(self.p2.stock_quantity, -2)

    @override_settings(ORDER_STOCK_POLICY='clamp_at_zero')
    def test_clamp_at_zero_policy(self):
        result = create_order(self.store.id, self._payload([
            {'product_id': self.p2.id, 'quantity': 5},
            {'product_id': self.p1.id, 'quantity': 2},
        ]))
        self.assertTrue(result.success)
        self.p1.refresh_from_db()
        self.p2.refresh_from_db()
        self.assertEqual(self.p2.stock_quantity, 0)
        self.assertEqual(self.p1.stock_quantity, 3)

    @override_settings(ORDER_STOCK_POLICY='whatever')
    def test_unknown_policy_is_a_configuration_error(self):
        with self.assertRaises(ImproperlyConfigured):
            create_order(self.store.id, self._payload([{'product_id': self.p1.id, 'quantity': 1}]))

    def test_order_is_audited(self):
        result = create_order(self.store.id, self._payload([{'product_id': self.p1.id, 'quantity': 1}]), user=self.seller)
        log = AuditLog.objects.get(action='order_create')
        self.assertEqual(log.object_id, str(result.order_id))
        self.assertEqual(log.store, self.store)

    def test_caches_invalidated_only_after_commit(self):
        with patch('backend.orders.services.invalidate_order_dependent_caches') as invalidate:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                result = create_order(self.store.id, self._payload([{'product_id': self.p1.id, 'quantity': 1}]))
                invalidate.assert_not_called()
        self.assertTrue(result.success)
        self.assertEqual(len(callbacks), 1)
        invalidate.assert_called_once()

    def test_failed_order_does_not_invalidate(self):
        with patch('backend.orders.services.invalidate_order_dependent_caches') as invalidate:
            with self.captureOnCommitCallbacks(execute=True):
                create_order(self.store.id, self._payload([{'product_id': 999999, 'quantity': 1}]))
        invalidate.assert_not_called()


class RecentOrdersTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store()
        self.product = TestDataFactory.create_product(self.store)

    def test_newest_first_with_item_count(self):
        older = TestDataFactory.create_order(self.store, items=[(self.product, 1, Decimal('10.00'))])
        newer = TestDataFactory.create_order(self.store, items=[
            (self.product, 1, Decimal('10.00')),
            (self.product, 2, Decimal('10.00')),
        ])
        orders = get_recent_orders(self.store.id)
        self.assertEqual([o.id for o in orders], [newer.id, older.id])
        self.assertEqual(orders[0].item_count, 2)

    def test_limited_to_ten(self):
        for _ in range(12):
            TestDataFactory.create_order(self.store, items=[(self.product, 1, Decimal('10.00'))])
        self.assertEqual(len(get_recent_orders(self.store.id)), 10)
        self.assertEqual(len(get_recent_orders(self.store.id, limit=3)), 3)

    def test_other_store_orders_excluded(self):
        TestDataFactory.create_order(TestDataFactory.create_store())
        self.assertEqual(get_recent_orders(self.store.id), [])

    def test_no_store(self):
        self.assertEqual(get_recent_orders(None), [])


class OrderAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.store = TestDataFactory.create_store()
        self.user = TestDataFactory.create_user(store=self.store)
        self.p1 = TestDataFactory.create_product(self.store, sale_price=Decimal('10.00'), stock_quantity=5)
        self.p2 = TestDataFactory.create_product(self.store, sale_price=Decimal('25.00'), stock_quantity=3)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _order_body(self, items):
        return {
            'customerName': 'Ana',
            'customerPhone': '11999998888',
            'sellerId': self.user.id,
            'items': items,
        }

    def test_create_order(self):
        response = self.client.post('/api/v1/orders/', self._order_body([
            {'productId': self.p1.id, 'quantity': 2, 'unitPrice': '10.00'},
            {'productId': self.p2.id, 'quantity': 1, 'unitPrice': '25.00'},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])

        detail = self.client.get(f"/api/v1/orders/{response.data['orderId']}/")
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data['total'], '45.00')
        self.assertEqual(detail.data['itemCount'], 2)
        self.assertEqual(detail.data['seller']['id'], self.user.id)

    def test_empty_items_rejected(self):
        response = self.client.post('/api/v1/orders/', self._order_body([]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)
        self.assertEqual(Order.objects.count(), 0)

    def test_invalid_product_returns_failure(self):
        response = self.client.post('/api/v1/orders/', self._order_body([
            {'productId': self.p1.id, 'quantity': 1},
            {'productId': 999999, 'quantity': 1},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'success': False, 'error': 'Failed to create order'})
        self.assertEqual(Product.objects.get(pk=self.p1.id).stock_quantity, 5)

    def test_user_without_store_cannot_order(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(store=False))
        response = client.post('/api/v1/orders/', self._order_body([{'productId': self.p1.id, 'quantity': 1}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Store ID is required')

    def test_recent_orders_list_refreshed_after_order(self):
        first = self.client.get('/api/v1/orders/')
        self.assertEqual(first.data, [])
        self.assertEqual(first['X-Cache'], 'MISS')
        self.assertEqual(self.client.get('/api/v1/orders/')['X-Cache'], 'HIT')

        with self.captureOnCommitCallbacks(execute=True):
            created = self.client.post('/api/v1/orders/', self._order_body([
                {'productId': self.p1.id, 'quantity': 1},
            ]), format='json')
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)

        listing = self.client.get('/api/v1/orders/')
        self.assertEqual(listing['X-Cache'], 'MISS')
        self.assertEqual([o['id'] for o in listing.data], [created.data['orderId']])
        self.assertEqual(listing.data[0]['customerName'], 'Ana')

    def test_other_store_order_not_found(self):
        other = TestDataFactory.create_order(TestDataFactory.create_store())
        response = self.client.get(f'/api/v1/orders/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_zero_limit_falls_back_to_default(self):
        for _ in range(2):
            TestDataFactory.create_order(self.store, items=[(self.p1, 1, Decimal('10.00'))])
        response = self.client.get('/api/v1/orders/', {'limit': '0'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_requires_auth(self):
        self.client.logout()
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
