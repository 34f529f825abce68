from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404
import logging

from backend.core.cache_utils import get_cached_products_list, cache_products_list
from backend.core.utils import create_audit_log, get_request_store
from backend.stores.models import Store
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, CatalogProductSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List the store's products or create a new product"""
    store = get_request_store(request)
    if not store:
        return Response({'error': 'Store ID is required'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'GET':
        filters_dict = dict(request.query_params.items())
        try:
            cached_data, cache_key = get_cached_products_list(store.id, filters_dict)
        except Exception as e:
            logger.warning(f"Cache unavailable, proceeding without cache: {e}")
            cached_data, cache_key = None, None

        if cached_data is not None:
            response = Response(cached_data)
            response['X-Cache'] = 'HIT'
            return response

        queryset = Product.objects.filter(store=store)
        filterset = ProductFilter(request.query_params, queryset=queryset)
        serializer = ProductSerializer(filterset.qs, many=True)
        data = serializer.data

        if cache_key:
            cache_products_list(cache_key, data)
        response = Response(data)
        response['X-Cache'] = 'MISS'
        return response

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save(store=store)
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
            store=store,
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete one of the store's products"""
    store = get_request_store(request)
    product = get_object_or_404(Product, pk=pk, store=store)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        old_stock = product.stock_quantity
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            changes = {}
            if old_stock != product.stock_quantity:
                changes['stock_quantity'] = {'old': old_stock, 'new': product.stock_quantity}
            create_audit_log(
                request=request,
                action='update',
                model_name='Product',
                object_id=product.id,
                object_name=product.name,
                store=store,
                changes=changes,
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_id, product_name = product.id, product.name
        try:
            product.delete()
        except ProtectedError:
            return Response(
                {'error': 'Product has orders and cannot be deleted. Mark it unavailable instead.'},
                status=status.HTTP_409_CONFLICT
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product_id,
            object_name=product_name,
            store=store,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def catalog_products(request, slug):
    """Public catalog: available products of an active store"""
    store = get_object_or_404(Store, slug=slug, is_active=True)
    products = Product.objects.filter(store=store, is_available=True).select_related('store')
    serializer = CatalogProductSerializer(products, many=True)
    response = Response({
        'store': {'id': store.id, 'name': store.name, 'slug': store.slug},
        'results': serializer.data,
    })
    response['Cache-Control'] = 'public, s-maxage=60, stale-while-revalidate=300'
    return response
