"""Shopify webhook authentication.

Shopify signs every delivery with X-Shopify-Hmac-Sha256: the base64 HMAC-SHA256
of the raw body keyed with the app's API secret. A missing secret rejects
everything.
"""
import base64
import hashlib
import hmac
import logging

from order_relay.errors import AuthenticationError
from order_relay.models.shop_session import ShopSession

logger = logging.getLogger(__name__)

HMAC_HEADER = 'X-Shopify-Hmac-Sha256'
SHOP_HEADER = 'X-Shopify-Shop-Domain'
TOPIC_HEADER = 'X-Shopify-Topic'


def verify_shopify_hmac(body, signature, secret):
    if not secret:
        logger.warning("SHOPIFY_API_SECRET not set, rejecting webhook")
        return False
    if not signature:
        return False

    digest = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).digest()
    # Bytes on both sides: str comparison rejects non-ASCII headers with TypeError
    return hmac.compare_digest(base64.b64encode(digest), signature.encode('utf-8', 'replace'))


def authenticate_webhook(body, headers, secret):
    """Returns (shop, topic, session) for a genuine delivery from an installed shop."""
    if not verify_shopify_hmac(body, headers.get(HMAC_HEADER), secret):
        raise AuthenticationError('Invalid webhook HMAC signature')

    shop = headers.get(SHOP_HEADER)
    topic = headers.get(TOPIC_HEADER, '')
    if not shop:
        raise AuthenticationError(f'Missing {SHOP_HEADER} header')

    session = ShopSession.for_shop(shop)
    if session is None:
        raise AuthenticationError(f'No session found for shop {shop}', shop=shop)
    return shop, topic, session
