"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.stores.models import Store
from backend.catalog.models import Product
from backend.orders.models import Order, OrderItem
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_store(name=None, slug=None, **kwargs):
        """Create a test store (tenant)"""
        if not name:
            name = f'Store_{TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'store-{TestDataFactory.random_string(8).lower()}'
        return Store.objects.create(name=name, slug=slug, **kwargs)

    @staticmethod
    def create_user(store=None, username=None, email=None, password='testpass123', role='owner',
                    is_staff=False, is_superuser=False):
        """Create a test user, attached to a store unless store is False"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        if store is None:
            store = TestDataFactory.create_store()
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            store=store or None,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_product(store, name=None, sale_price=None, stock_quantity=10, is_available=True, **kwargs):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if sale_price is None:
            sale_price = Decimal('10.00')
        return Product.objects.create(
            store=store,
            name=name,
            sale_price=sale_price,
            stock_quantity=stock_quantity,
            is_available=is_available,
            **kwargs
        )

    @staticmethod
    def create_order(store, items=None, seller=None, customer_name='Test Customer', customer_phone=''):
        """
        Create an order directly through the ORM, without touching stock.

        items: list of (product, quantity, unit_price) tuples
        """
        order = Order.objects.create(
            store=store,
            seller=seller,
            customer_name=customer_name,
            customer_phone=customer_phone,
            status=Order.STATUS_COMPLETED,
        )
        for product, quantity, unit_price in items or []:
            OrderItem.objects.create(
                order=order,
                product=product,
                quantity=quantity,
                unit_price=unit_price,
            )
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
