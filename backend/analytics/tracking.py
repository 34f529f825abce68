"""
Catalog-side tracking helpers

Tracking is fire-and-forget: the call is time-boxed and every failure is
logged and swallowed, so opening WhatsApp is never blocked by analytics.
"""
from decimal import Decimal
from urllib.parse import quote
import logging
import re

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

TRACKING_PATH = '/api/v1/catalog/analytics/'
WHATSAPP_WEB_URL = 'https://wa.me/{phone}?text={text}'
WHATSAPP_APP_URL = 'whatsapp://send?phone={phone}&text={text}'
MOBILE_USER_AGENT = re.compile(r'android|webos|iphone|ipad|ipod|blackberry|iemobile|opera mini', re.IGNORECASE)


def track_event(base_url, tenant_id, product_id, event_type, user_agent=None, referrer=None, timeout=None):
    """
    Post an analytics event to the tracking endpoint.

    Returns True when the event was recorded; never raises.
    """
    if timeout is None:
        timeout = getattr(settings, 'ANALYTICS_TRACKING_TIMEOUT', 0.5)

    payload = {
        'tenantId': tenant_id,
        'productId': product_id,
        'eventType': event_type,
    }
    if user_agent:
        payload['userAgent'] = user_agent
    if referrer:
        payload['referrer'] = referrer

    try:
        response = requests.post(f"{base_url.rstrip('/')}{TRACKING_PATH}", json=payload, timeout=timeout)
        if response.status_code != 201:
            logger.warning(f"Tracking {event_type} for product {product_id} returned {response.status_code}")
            return False
        return True
    except requests.exceptions.Timeout:
        logger.warning(f"Tracking {event_type} for product {product_id} timed out after {timeout}s")
    except requests.exceptions.RequestException as e:
        logger.warning(f"Error tracking {event_type} for product {product_id}: {str(e)}")
    return False


def format_price(price):
    """Brazilian Real, e.g. R$ 1.234,50"""
    amount = f"{Decimal(str(price)):,.2f}"
    return 'R$ ' + amount.replace(',', '_').replace('.', ',').replace('_', '.')


def is_mobile_user_agent(user_agent):
    return bool(user_agent) and bool(MOBILE_USER_AGENT.search(user_agent))


def build_whatsapp_url(phone_number, product_name, price, mobile=False):
    """WhatsApp link with a pre-filled product enquiry"""
    phone = re.sub(r'\D', '', phone_number or '')
    message = f"Olá! Tenho interesse no produto:\n📦 {product_name}\n💰 {format_price(price)}"
    template = WHATSAPP_APP_URL if mobile else WHATSAPP_WEB_URL
    return template.format(phone=phone, text=quote(message, safe=''))


def open_whatsapp(phone_number, product_name, price, user_agent=None, tracking=None):
    """
    Build the WhatsApp link for a product, tracking the click first when
    tracking data ({base_url, tenant_id, product_id}) is given.
    """
    url = build_whatsapp_url(phone_number, product_name, price, mobile=is_mobile_user_agent(user_agent))
    if tracking:
        track_event(
            tracking['base_url'],
            tracking['tenant_id'],
            tracking['product_id'],
            'whatsapp_click',
            user_agent=user_agent,
            referrer=tracking.get('referrer'),
        )
    return url
