"""
Tests for the current-store settings endpoint
"""
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class StoreCurrentAPITests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store(name='Loja Azul', slug='loja-azul')
        self.user = TestDataFactory.create_user(store=self.store)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_current_store(self):
        response = self.client.get('/api/v1/stores/current/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['slug'], 'loja-azul')
        self.assertEqual(response.data['primary_color'], '#0f172a')

    def test_patch_whatsapp_and_colors(self):
        response = self.client.patch('/api/v1/stores/current/', {
            'whatsapp_primary': '+5511999998888',
            'primary_color': '#ff0000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.store.refresh_from_db()
        self.assertEqual(self.store.whatsapp_primary, '+5511999998888')
        self.assertEqual(self.store.primary_color, '#ff0000')
        self.assertTrue(AuditLog.objects.filter(model_name='Store', action='update').exists())

    def test_patch_rejects_invalid_color(self):
        response = self.client.patch('/api/v1/stores/current/', {'primary_color': 'red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('primary_color', response.data)

    def test_slug_is_read_only(self):
        self.client.patch('/api/v1/stores/current/', {'slug': 'other'}, format='json')
        self.store.refresh_from_db()
        self.assertEqual(self.store.slug, 'loja-azul')

    def test_user_without_store(self):
        user = TestDataFactory.create_user(store=False)
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/v1/stores/current/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
