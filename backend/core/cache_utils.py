"""
Caching utilities for tenant-scoped list and dashboard queries
Uses Redis (django_redis) when configured, local memory otherwise
"""
from django.conf import settings
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
ORDERS_LIST_CACHE_TTL = 60  # 1 minute
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes

# Key prefixes
PRODUCTS_LIST_PREFIX = "products_list"
ORDERS_LIST_PREFIX = "orders_list"
DASHBOARD_KPIS_PREFIX = "dashboard_kpis"
STOCK_CALC_PREFIX = "stock_calc"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _uses_redis():
    return 'django_redis' in settings.CACHES['default']['BACKEND']


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern

    With Redis the keys are found with SCAN and deleted. Other backends
    cannot enumerate keys, so the whole cache is cleared instead.
    """
    try:
        if not _uses_redis():
            cache.clear()
            logger.info(f"Cache invalidation requested for pattern: {pattern} - cleared local cache")
            return

        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
        else:
            logger.info(f"Cache invalidation requested for pattern: {pattern} - No keys found")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_dashboard_kpis(store_id, date_from=None, date_to=None):
    """Get cached dashboard KPIs"""
    cache_key = make_cache_key(DASHBOARD_KPIS_PREFIX, store_id, date_from, date_to)
    return cache.get(cache_key), cache_key


def cache_dashboard_kpis(cache_key, data, ttl=DASHBOARD_KPI_CACHE_TTL):
    """Cache dashboard KPIs data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard KPIs: {cache_key}")


def invalidate_products_cache():
    """Invalidate all products-related cache"""
    invalidate_cache_pattern(PRODUCTS_LIST_PREFIX)


def invalidate_orders_cache():
    """Invalidate all order listings"""
    invalidate_cache_pattern(ORDERS_LIST_PREFIX)


def invalidate_stock_cache():
    """Invalidate all stock-related cache"""
    invalidate_cache_pattern(STOCK_CALC_PREFIX)


def invalidate_dashboard_cache():
    """Invalidate dashboard KPIs cache"""
    invalidate_cache_pattern(DASHBOARD_KPIS_PREFIX)


def invalidate_order_dependent_caches():
    """Refresh every cached view that depends on orders, stock or metrics"""
    invalidate_orders_cache()
    invalidate_products_cache()
    invalidate_stock_cache()
    invalidate_dashboard_cache()


def get_cached_products_list(store_id, filters_dict):
    """
    Get cached products list with filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_PREFIX, store_id, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data, ttl=PRODUCTS_LIST_CACHE_TTL):
    """Cache products list data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached products list: {cache_key}")
