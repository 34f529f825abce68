"""
Tests for authentication, audit logging and cache helpers
"""
from unittest.mock import patch
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken
from backend.core.cache_utils import (
    make_cache_key, invalidate_order_dependent_caches, ORDERS_LIST_PREFIX, PRODUCTS_LIST_PREFIX
)
from backend.core.cache_signals import suspend_cache_signals
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, get_client_ip


class AuthTests(TestCase):
    """Login and current-user endpoints"""

    def setUp(self):
        self.store = TestDataFactory.create_store(name='Loja Centro', slug='loja-centro')
        self.user = TestDataFactory.create_user(store=self.store, username='maria', role='attendant')
        self.client = AuthenticatedAPIClient()

    def test_login_token_carries_tenant(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'maria', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = AccessToken(response.data['access'])
        self.assertEqual(token['store_id'], self.store.id)
        self.assertEqual(token['role'], 'attendant')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'maria', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_returns_store(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['store'], {'id': self.store.id, 'name': 'Loja Centro', 'slug': 'loja-centro'})

    def test_me_requires_auth(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_user_list_is_tenant_scoped(self):
        other_store = TestDataFactory.create_store()
        TestDataFactory.create_user(store=other_store)
        colleague = TestDataFactory.create_user(store=self.store)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {u['id'] for u in response.data}
        self.assertEqual(ids, {self.user.id, colleague.id})


class AuditLogTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store()
        self.user = TestDataFactory.create_user(store=self.store)

    def test_create_audit_log(self):
        log = create_audit_log(user=self.user, action='update', model_name='Store',
                               object_id=self.store.id, store=self.store, changes={'name': 'x'})
        self.assertIsNotNone(log)
        self.assertEqual(log.object_id, str(self.store.id))
        self.assertEqual(log.store, self.store)

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(user=self.user, action='update'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_failure_never_raises(self):
        with patch('backend.core.utils.AuditLog.objects.create', side_effect=Exception('db down')):
            self.assertIsNone(create_audit_log(user=self.user, action='update', model_name='Store', object_id=1))

    def test_get_client_ip_prefers_forwarded_for(self):
        class FakeRequest:
            META = {'HTTP_X_FORWARDED_FOR': '10.0.0.1, 10.0.0.2', 'REMOTE_ADDR': '127.0.0.1'}
        self.assertEqual(get_client_ip(FakeRequest()), '10.0.0.1')

    def test_audit_log_list_scoped_to_store(self):
        other_store = TestDataFactory.create_store()
        create_audit_log(user=self.user, action='update', model_name='Store', object_id=1, store=self.store)
        create_audit_log(user=self.user, action='update', model_name='Store', object_id=2, store=other_store)
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class CacheUtilsTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_cache_key_is_stable(self):
        key_a = make_cache_key(PRODUCTS_LIST_PREFIX, 1, search='x', available='true')
        key_b = make_cache_key(PRODUCTS_LIST_PREFIX, 1, available='true', search='x')
        self.assertEqual(key_a, key_b)
        self.assertTrue(key_a.startswith(PRODUCTS_LIST_PREFIX))

    def test_invalidate_order_dependent_caches(self):
        key = make_cache_key(ORDERS_LIST_PREFIX, 1, None)
        cache.set(key, ['stale'])
        invalidate_order_dependent_caches()
        self.assertIsNone(cache.get(key))

    def test_invalidation_failure_is_swallowed(self):
        with patch('backend.core.cache_utils._uses_redis', side_effect=Exception('boom')):
            invalidate_order_dependent_caches()


class CacheSignalTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store()

    def test_product_change_invalidates_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            TestDataFactory.create_product(self.store)
        self.assertEqual(len(callbacks), 1)

    def test_suspended_signals_skip_invalidation(self):
        with self.captureOnCommitCallbacks() as callbacks:
            with suspend_cache_signals():
                TestDataFactory.create_product(self.store)
        self.assertEqual(callbacks, [])
