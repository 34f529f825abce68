from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db.models import Count, DecimalField, F, Q, Sum
from django.utils.dateparse import parse_date
from decimal import Decimal
import logging

from backend.catalog.models import Product
from backend.core.cache_utils import get_cached_dashboard_kpis, cache_dashboard_kpis
from backend.core.utils import get_request_store
from backend.orders.models import Order, OrderItem
from backend.stores.models import Store
from .models import AnalyticsEvent
from .serializers import TrackEventSerializer, AnalyticsEventSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def track_event_view(request):
    """Record a product view or WhatsApp click from the public catalog"""
    serializer = TrackEventSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Validation error', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )
    data = serializer.validated_data

    store = Store.objects.filter(pk=data['store_id'], is_active=True).first()
    if not store:
        return Response(
            {'error': 'Resource not found', 'message': f"Tenant not found: {data['store_id']}"},
            status=status.HTTP_404_NOT_FOUND
        )
    product = Product.objects.filter(pk=data['product_id'], store=store).first()
    if not product:
        return Response(
            {'error': 'Resource not found', 'message': f"Product not found: {data['product_id']}"},
            status=status.HTTP_404_NOT_FOUND
        )

    event = AnalyticsEvent.objects.create(
        store=store,
        product=product,
        event_type=data['event_type'],
        user_agent=data.get('user_agent') or request.META.get('HTTP_USER_AGENT') or None,
        referrer=data.get('referrer') or request.META.get('HTTP_REFERER') or None,
    )
    return Response(
        {'success': True, 'data': AnalyticsEventSerializer(event).data},
        status=status.HTTP_201_CREATED
    )


def _parse_date_param(request, name):
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def analytics_summary(request):
    """Views, WhatsApp clicks, orders and stock health of the current store"""
    store = get_request_store(request)
    if not store:
        return Response({'error': 'Store ID is required'}, status=status.HTTP_400_BAD_REQUEST)

    date_from = _parse_date_param(request, 'startDate')
    date_to = _parse_date_param(request, 'endDate')

    try:
        cached_data, cache_key = get_cached_dashboard_kpis(store.id, date_from, date_to)
    except Exception as e:
        logger.warning(f"Cache unavailable, proceeding without cache: {e}")
        cached_data, cache_key = None, None
    if cached_data is not None:
        response = Response(cached_data)
        response['X-Cache'] = 'HIT'
        return response

    events = AnalyticsEvent.objects.filter(store=store)
    orders = Order.objects.filter(store=store).exclude(status=Order.STATUS_CANCELLED)
    if date_from:
        events = events.filter(created_at__date__gte=date_from)
        orders = orders.filter(created_at__date__gte=date_from)
    if date_to:
        events = events.filter(created_at__date__lte=date_to)
        orders = orders.filter(created_at__date__lte=date_to)

    event_counts = events.aggregate(
        views=Count('id', filter=Q(event_type=AnalyticsEvent.EVENT_VIEW)),
        whatsapp_clicks=Count('id', filter=Q(event_type=AnalyticsEvent.EVENT_WHATSAPP_CLICK)),
    )
    views = event_counts['views'] or 0
    whatsapp_clicks = event_counts['whatsapp_clicks'] or 0
    conversion_rate = round(whatsapp_clicks / views * 100, 1) if views else 0

    revenue = OrderItem.objects.filter(order__in=orders).aggregate(
        total=Sum(F('quantity') * F('unit_price'), output_field=DecimalField())
    )['total'] or Decimal('0.00')

    products = Product.objects.filter(store=store)
    data = {
        'views': views,
        'whatsappClicks': whatsapp_clicks,
        'conversionRate': conversion_rate,
        'orderCount': orders.count(),
        'revenue': f"{revenue:.2f}",
        'outOfStockCount': products.filter(stock_quantity__lte=0).count(),
        'negativeStockCount': products.filter(stock_quantity__lt=0).count(),
    }

    if cache_key:
        try:
            cache_dashboard_kpis(cache_key, data)
        except Exception as e:
            logger.warning(f"Could not cache analytics summary: {e}")
    response = Response(data)
    response['X-Cache'] = 'MISS'
    return response
