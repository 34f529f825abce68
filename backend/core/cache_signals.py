"""
Cache invalidation signals
Automatically invalidate cache when catalog data changes outside the order flow
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from backend.core.cache_utils import (
    invalidate_products_cache, invalidate_stock_cache, invalidate_dashboard_cache
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _invalidate_catalog_after_commit():
    invalidate_products_cache()
    invalidate_stock_cache()


@receiver([post_save, post_delete])
def invalidate_products_cache_on_change(sender, instance, **kwargs):
    """Invalidate products and stock cache when a product is edited or removed"""
    if is_suspended():
        return

    if sender.__name__ != 'Product':
        return

    try:
        from backend.catalog.models import Product
        if isinstance(instance, Product):
            # After commit, so the cache is not repopulated with stale rows
            transaction.on_commit(_invalidate_catalog_after_commit)
    except Exception as e:
        logger.warning(f"Error in invalidate_products_cache_on_change signal: {e}")


@receiver([post_delete])
def invalidate_dashboard_on_order_delete(sender, instance, **kwargs):
    """Orders are only removed from the admin; metrics must follow"""
    if is_suspended():
        return

    if sender.__name__ != 'Order':
        return

    try:
        from backend.orders.models import Order
        if isinstance(instance, Order):
            transaction.on_commit(invalidate_dashboard_cache)
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_order_delete signal: {e}")
