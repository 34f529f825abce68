from django.urls import path
from .views import product_list_create, product_detail, catalog_products

urlpatterns = [
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),

    # Public catalog endpoints (no auth required)
    path('catalog/<slug:slug>/products/', catalog_products, name='catalog-products'),
]
