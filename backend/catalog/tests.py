"""
Tests for tenant-scoped products and the public catalog listing
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.catalog.filters import ProductFilter
from backend.catalog.models import Product
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.store = TestDataFactory.create_store()
        self.user = TestDataFactory.create_user(store=self.store)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Camiseta',
            'sale_price': '49.90',
            'stock_quantity': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.store, self.store)
        self.assertEqual(product.sale_price, Decimal('49.90'))

    def test_create_rejects_negative_stock(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Camiseta', 'sale_price': '10.00', 'stock_quantity': -1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('stock_quantity', response.data)

    def test_create_rejects_zero_price(self):
        response = self.client.post('/api/v1/products/', {'name': 'Brinde', 'sale_price': '0.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_tenant_scoped(self):
        TestDataFactory.create_product(self.store, name='Mine')
        TestDataFactory.create_product(TestDataFactory.create_store(), name='Theirs')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Mine'])

    def test_list_is_cached_and_invalidated_on_change(self):
        product = TestDataFactory.create_product(self.store, name='Tenis')
        first = self.client.get('/api/v1/products/')
        self.assertEqual(first['X-Cache'], 'MISS')
        second = self.client.get('/api/v1/products/')
        self.assertEqual(second['X-Cache'], 'HIT')

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(f'/api/v1/products/{product.id}/', {'name': 'Tenis Pro'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        third = self.client.get('/api/v1/products/')
        self.assertEqual(third['X-Cache'], 'MISS')
        self.assertEqual(third.data[0]['name'], 'Tenis Pro')

    def test_other_store_product_not_found(self):
        other = TestDataFactory.create_product(TestDataFactory.create_store())
        response = self.client.get(f'/api/v1/products/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_product_with_orders_conflicts(self):
        product = TestDataFactory.create_product(self.store)
        TestDataFactory.create_order(self.store, items=[(product, 1, Decimal('10.00'))])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())

    def test_delete_product(self):
        product = TestDataFactory.create_product(self.store)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class ProductFilterTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store()
        self.positive = TestDataFactory.create_product(self.store, name='Bolsa Couro', stock_quantity=3, brand='Arezzo')
        self.zero = TestDataFactory.create_product(self.store, name='Bolsa Palha', stock_quantity=0)
        self.negative = TestDataFactory.create_product(self.store, name='Cinto', stock_quantity=-2)

    def _filter(self, **params):
        return set(ProductFilter(params, queryset=Product.objects.all()).qs)

    def test_out_of_stock_includes_negative(self):
        self.assertEqual(self._filter(out_of_stock='true'), {self.zero, self.negative})

    def test_in_stock(self):
        self.assertEqual(self._filter(in_stock='true'), {self.positive})

    def test_search_matches_every_word(self):
        self.assertEqual(self._filter(search='bolsa couro'), {self.positive})
        self.assertEqual(self._filter(search='arezzo'), {self.positive})


class CatalogProductsTests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store(slug='loja-publica', whatsapp_primary='+55 11 99999-8888')
        self.available = TestDataFactory.create_product(self.store, name='Vestido', sale_price=Decimal('89.90'))
        TestDataFactory.create_product(self.store, name='Oculto', is_available=False)

    def test_public_listing(self):
        response = self.client.get('/api/v1/catalog/loja-publica/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['results']], ['Vestido'])
        self.assertIn('s-maxage=60', response['Cache-Control'])
        self.assertTrue(response.data['results'][0]['whatsapp_url'].startswith('https://wa.me/5511999998888?text='))

    def test_unknown_slug(self):
        response = self.client.get('/api/v1/catalog/nope/products/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_public_listing_ignores_stale_token(self):
        response = self.client.get('/api/v1/catalog/loja-publica/products/', HTTP_AUTHORIZATION='Bearer expired.token.value')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)

    def test_inactive_store_hidden(self):
        self.store.is_active = False
        self.store.save()
        response = self.client.get('/api/v1/catalog/loja-publica/products/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
