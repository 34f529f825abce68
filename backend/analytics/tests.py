"""
Tests for catalog event tracking, the analytics summary and WhatsApp helpers
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch
from urllib.parse import quote
import requests
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from backend.analytics.models import AnalyticsEvent
from backend.analytics.tracking import (
    build_whatsapp_url, format_price, is_mobile_user_agent, open_whatsapp, track_event,
)
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class TrackEventAPITests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store()
        self.product = TestDataFactory.create_product(self.store)

    def _post(self, body, **extra):
        return self.client.post('/api/v1/catalog/analytics/', body, content_type='application/json', **extra)

    def test_records_view(self):
        response = self._post({'tenantId': self.store.id, 'productId': self.product.id, 'eventType': 'view'},
                              HTTP_USER_AGENT='Mozilla/5.0')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['eventType'], 'view')
        event = AnalyticsEvent.objects.get(pk=response.data['data']['id'])
        self.assertEqual(event.user_agent, 'Mozilla/5.0')
        self.assertEqual(event.store, self.store)

    def test_missing_fields(self):
        response = self._post({'tenantId': self.store.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('productId', response.data['details'])

    def test_invalid_event_type(self):
        response = self._post({'tenantId': self.store.id, 'productId': self.product.id, 'eventType': 'purchase'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AnalyticsEvent.objects.count(), 0)

    def test_unknown_tenant(self):
        response = self._post({'tenantId': 999999, 'productId': self.product.id, 'eventType': 'view'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_product_must_belong_to_tenant(self):
        other_store = TestDataFactory.create_store()
        response = self._post({'tenantId': other_store.id, 'productId': self.product.id, 'eventType': 'whatsapp_click'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(AnalyticsEvent.objects.count(), 0)


class AnalyticsSummaryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.store = TestDataFactory.create_store()
        self.user = TestDataFactory.create_user(store=self.store)
        self.p1 = TestDataFactory.create_product(self.store, stock_quantity=5)
        self.p2 = TestDataFactory.create_product(self.store, stock_quantity=0)
        self.p3 = TestDataFactory.create_product(self.store, stock_quantity=-1)
        for event_type in ('view', 'view', 'whatsapp_click'):
            AnalyticsEvent.objects.create(store=self.store, product=self.p1, event_type=event_type)
        TestDataFactory.create_order(self.store, items=[
            (self.p1, 2, Decimal('10.00')),
            (self.p2, 1, Decimal('25.00')),
        ])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_summary(self):
        response = self.client.get('/api/v1/analytics/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['views'], 2)
        self.assertEqual(response.data['whatsappClicks'], 1)
        self.assertEqual(response.data['conversionRate'], 50.0)
        self.assertEqual(response.data['orderCount'], 1)
        self.assertEqual(response.data['revenue'], '45.00')
        self.assertEqual(response.data['outOfStockCount'], 2)
        self.assertEqual(response.data['negativeStockCount'], 1)

    def test_summary_is_cached(self):
        self.assertEqual(self.client.get('/api/v1/analytics/summary/')['X-Cache'], 'MISS')
        self.assertEqual(self.client.get('/api/v1/analytics/summary/')['X-Cache'], 'HIT')

    def test_summary_ignores_other_stores(self):
        other_store = TestDataFactory.create_store()
        other_product = TestDataFactory.create_product(other_store)
        AnalyticsEvent.objects.create(store=other_store, product=other_product, event_type='view')
        response = self.client.get('/api/v1/analytics/summary/')
        self.assertEqual(response.data['views'], 2)

    def test_date_range_excludes_older_events(self):
        response = self.client.get('/api/v1/analytics/summary/', {'startDate': '2000-01-01', 'endDate': '2000-01-02'})
        self.assertEqual(response.data['views'], 0)
        self.assertEqual(response.data['orderCount'], 0)
        self.assertEqual(response.data['conversionRate'], 0)

    def test_requires_auth(self):
        self.client.logout()
        response = self.client.get('/api/v1/analytics/summary/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TrackingClientTests(SimpleTestCase):

    @patch('backend.analytics.tracking.requests.post')
    def test_track_event_posts_with_timeout(self, mock_post):
        mock_post.return_value = MagicMock(status_code=201)
        self.assertTrue(track_event('http://catalog.test/', 1, 2, 'view', user_agent='UA'))
        mock_post.assert_called_once_with(
            'http://catalog.test/api/v1/catalog/analytics/',
            json={'tenantId': 1, 'productId': 2, 'eventType': 'view', 'userAgent': 'UA'},
            timeout=0.5,
        )

    @patch('backend.analytics.tracking.requests.post')
    def test_track_event_swallows_timeout(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout('slow')
        with self.assertLogs('backend.analytics.tracking', level='WARNING'):
            self.assertFalse(track_event('http://catalog.test', 1, 2, 'whatsapp_click'))

    @patch('backend.analytics.tracking.requests.post')
    def test_track_event_swallows_errors(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        self.assertFalse(track_event('http://catalog.test', 1, 2, 'view'))

    @patch('backend.analytics.tracking.requests.post')
    def test_track_event_rejected(self, mock_post):
        mock_post.return_value = MagicMock(status_code=404)
        self.assertFalse(track_event('http://catalog.test', 1, 2, 'view'))


class WhatsAppTests(SimpleTestCase):

    def test_format_price(self):
        self.assertEqual(format_price(Decimal('1234.5')), 'R$ 1.234,50')
        self.assertEqual(format_price(9.9), 'R$ 9,90')

    def test_web_url(self):
        url = build_whatsapp_url('+55 (11) 99999-8888', 'Vestido Floral', Decimal('89.90'))
        self.assertTrue(url.startswith('https://wa.me/5511999998888?text='))
        self.assertIn(quote('Vestido Floral', safe=''), url)
        self.assertIn(quote('R$ 89,90', safe=''), url)

    def test_mobile_url(self):
        url = build_whatsapp_url('5511999998888', 'Vestido', 10, mobile=True)
        self.assertTrue(url.startswith('whatsapp://send?phone=5511999998888&text='))

    def test_mobile_user_agent(self):
        self.assertTrue(is_mobile_user_agent('Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)'))
        self.assertFalse(is_mobile_user_agent('Mozilla/5.0 (X11; Linux x86_64)'))
        self.assertFalse(is_mobile_user_agent(None))

    @patch('backend.analytics.tracking.requests.post')
    def test_open_whatsapp_tracks_then_returns_url(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout('slow')
        url = open_whatsapp(
            '5511999998888', 'Vestido', 10,
            user_agent='Android',
            tracking={'base_url': 'http://catalog.test', 'tenant_id': 1, 'product_id': 2},
        )
        self.assertTrue(url.startswith('whatsapp://send?phone=5511999998888'))
        self.assertEqual(mock_post.call_args.kwargs['json']['eventType'], 'whatsapp_click')

    @patch('backend.analytics.tracking.requests.post')
    def test_open_whatsapp_without_tracking(self, mock_post):
        url = open_whatsapp('5511999998888', 'Vestido', 10)
        self.assertTrue(url.startswith('https://wa.me/'))
        mock_post.assert_not_called()
