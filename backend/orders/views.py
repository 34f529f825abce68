from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.cache import cache
from django.shortcuts import get_object_or_404
import logging

from backend.core.cache_utils import make_cache_key, ORDERS_LIST_PREFIX, ORDERS_LIST_CACHE_TTL
from backend.core.utils import get_request_store
from .models import Order
from .serializers import CreateOrderSerializer, OrderSerializer
from .services import create_order, get_recent_orders, OrderValidationError

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List the most recent orders of the store or create a new order"""
    store = get_request_store(request)

    if request.method == 'GET':
        if not store:
            return Response([])

        limit = request.query_params.get('limit', None)
        # Non-numeric or zero limits fall back to ORDER_RECENT_LIMIT
        limit = int(limit) if limit and limit.isdigit() and int(limit) > 0 else None
        cache_key = make_cache_key(ORDERS_LIST_PREFIX, store.id, limit)
        try:
            cached_data = cache.get(cache_key)
        except Exception as e:
            logger.warning(f"Cache unavailable, proceeding without cache: {e}")
            cached_data = None
        if cached_data is not None:
            response = Response(cached_data)
            response['X-Cache'] = 'HIT'
            return response

        orders = get_recent_orders(store.id, limit=limit)
        data = OrderSerializer(orders, many=True).data
        try:
            cache.set(cache_key, data, ORDERS_LIST_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Could not cache orders list: {e}")
        response = Response(data)
        response['X-Cache'] = 'MISS'
        return response

    serializer = CreateOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = create_order(
            store.id if store else None,
            serializer.validated_data,
            user=request.user,
            request=request,
        )
    except OrderValidationError as e:
        return Response({'success': False, 'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if not result.success:
        return Response(result.to_dict(), status=status.HTTP_400_BAD_REQUEST)
    return Response(result.to_dict(), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve one of the store's orders"""
    store = get_request_store(request)
    order = get_object_or_404(
        Order.objects.select_related('seller').prefetch_related('items', 'items__product'),
        pk=pk, store=store
    )
    return Response(OrderSerializer(order).data)
