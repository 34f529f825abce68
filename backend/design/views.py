from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.utils import timezone
from django.utils.dateparse import parse_datetime
import logging

from backend.core.utils import create_audit_log, get_request_store
from backend.stores.models import Store
from .css import theme_to_css_variables
from .theme import get_default_theme_config, merge_theme_config, validate_theme_config

logger = logging.getLogger(__name__)


def _is_stale_save(store, base_updated_at):
    """True when the stored document changed after the client loaded it"""
    if not base_updated_at or not store.catalog_config_updated_at:
        return False
    try:
        base = parse_datetime(str(base_updated_at))
    except ValueError:
        base = None
    if base is None:
        return False
    if timezone.is_naive(base):
        base = timezone.make_aware(base)
    return store.catalog_config_updated_at > base


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def design_theme(request):
    """Fetch or save the theme document of the current user's store"""
    store = get_request_store(request)
    if not store:
        return Response({'error': 'Store not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response({
            'success': True,
            'config': store.catalog_config or {},
            'updatedAt': store.catalog_config_updated_at,
        })

    config = request.data.get('config')
    if not config:
        return Response({'error': 'config is required'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        validated = validate_theme_config(config)
    except serializers.ValidationError as e:
        return Response(
            {'error': 'Invalid theme configuration', 'details': e.detail},
            status=status.HTTP_400_BAD_REQUEST
        )

    # Last writer wins: a stale save still goes through, but leaves a trace
    if _is_stale_save(store, request.data.get('baseUpdatedAt')):
        logger.warning(
            f"Theme of store {store.id} was changed at {store.catalog_config_updated_at.isoformat()} "
            f"after the editor loaded it; overwriting with the latest save"
        )

    store.catalog_config = validated
    store.primary_color = validated['colors']['primary']
    store.secondary_color = validated['colors']['secondary']
    store.border_radius = validated['typography']['borderRadius']
    store.catalog_config_updated_at = timezone.now()
    store.save(update_fields=[
        'catalog_config', 'primary_color', 'secondary_color', 'border_radius',
        'catalog_config_updated_at', 'updated_at',
    ])

    create_audit_log(
        request=request,
        action='theme_update',
        model_name='Store',
        object_id=store.id,
        object_name=store.name,
        store=store,
        changes={'sections': sorted(config.keys())},
    )
    logger.info(f"Theme saved for store {store.id}")

    return Response({
        'success': True,
        'config': store.catalog_config,
        'updatedAt': store.catalog_config_updated_at,
    })


def _legacy_theme(store):
    """Theme built from the store's legacy brand fields"""
    config = get_default_theme_config()
    config['colors']['primary'] = store.primary_color or config['colors']['primary']
    config['colors']['secondary'] = store.secondary_color or config['colors']['secondary']
    config['typography']['borderRadius'] = store.border_radius or config['typography']['borderRadius']
    config['banner']['isActive'] = False
    return merge_theme_config(config)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def catalog_theme(request, slug):
    """Public theme of a store, by slug"""
    store = Store.objects.filter(slug=slug, is_active=True).first()
    if not store:
        return Response(
            {
                'success': False,
                'error': {'code': 'TENANT_NOT_FOUND', 'message': f'Store not found: {slug}'},
            },
            status=status.HTTP_404_NOT_FOUND
        )

    if store.catalog_config:
        theme = merge_theme_config(store.catalog_config)
    else:
        theme = _legacy_theme(store)

    theme.update({
        'name': store.name,
        'slug': store.slug,
        'logoUrl': store.logo_url,
        'cssVariables': theme_to_css_variables(theme),
    })

    response = Response({'success': True, 'data': theme})
    response['Cache-Control'] = 'public, s-maxage=60, stale-while-revalidate=300'
    return response
