import logging

from flask import current_app

from order_relay.errors import ConfigurationError
from order_relay.models.audit_log import AuditEventType, AuditStatus
from order_relay.models.logistic_center import LogisticCenter
from order_relay.services import audit_log
from order_relay.services.logistics_client import LogisticsClient

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ('first_name', 'last_name', 'address1', 'address2', 'city',
                  'province', 'country', 'zip', 'phone')
LINE_ITEM_FIELDS = ('id', 'name', 'quantity', 'sku', 'variant_id', 'price')
CUSTOMER_FIELDS = ('id', 'email', 'first_name', 'last_name', 'phone')


def require_logistic_center(shop):
    center = LogisticCenter.query.filter_by(shop=shop).first()
    if center is None:
        raise ConfigurationError('No logistic center configured for this shop')
    if not center.is_configured:
        raise ConfigurationError('Logistic center missing baseUrl or accessToken')
    return center


def _pick(source, fields):
    if not source:
        return None
    return {name: source.get(name) for name in fields}


def _shipping_total(order):
    shop_money = (order.get('total_shipping_price_set') or {}).get('shop_money') or {}
    return shop_money.get('amount') or order.get('total_shipping_price')


def build_package_payload(paid_order, shop, center):
    order = paid_order.payload
    return {
        'shopify_order_id': paid_order.external_order_id,
        'order_name': paid_order.order_label,
        'order_number': order.get('order_number') or order.get('name'),
        'financial_status': order.get('financial_status'),
        'line_items': [_pick(item, LINE_ITEM_FIELDS) for item in order.get('line_items') or []],
        'shipping_address': _pick(order.get('shipping_address'), ADDRESS_FIELDS),
        'billing_address': _pick(order.get('billing_address'), ADDRESS_FIELDS),
        'customer': _pick(order.get('customer'), CUSTOMER_FIELDS),
        'total_price': order.get('total_price'),
        'subtotal_price': order.get('subtotal_price'),
        'total_shipping_price': _shipping_total(order),
        'currency': order.get('currency'),
        'created_at': order.get('created_at'),
        'updated_at': order.get('updated_at'),
        'shop': shop,
        # Source platform and tenant on the Recibelo side
        'ecommerce_id': current_app.config['SHOPIFY_ECOMMERCE_ID'],
        'client_id': center.external_id,
    }


def _request_snapshot(paid_order):
    order = paid_order.payload
    return {
        'full_order': order,
        'order_id': order.get('id'),
        'order_name': paid_order.order_label,
        'financial_status': paid_order.financial_status,
        'total_price': order.get('total_price'),
        'currency': order.get('currency'),
        'line_items_count': len(order.get('line_items') or []),
        'has_shipping_address': bool(order.get('shipping_address')),
        'has_billing_address': bool(order.get('billing_address')),
        'has_customer': bool(order.get('customer')),
    }


def relay_paid_order(center, paid_order, shop):
    """Send a paid order to Recibelo and record the attempt.

    Returns the parsed Recibelo response, or None when the order is not paid
    (nothing is sent or recorded in that case). Any failure while building
    or sending the package is recorded on the ``order_paid`` entry and
    re-raised, so the entry never stays ``pending``.
    """
    if not paid_order.is_paid:
        logger.info(
            "Order %s not paid yet (financial_status=%s), skipping relay",
            paid_order.external_order_id, paid_order.financial_status,
        )
        return None

    order_id = paid_order.external_order_id
    audit_log.record(
        external_order_id=order_id,
        order_label=paid_order.order_label,
        shop=shop,
        event_type=AuditEventType.ORDER_PAID,
        status=AuditStatus.PENDING,
        request_data=_request_snapshot(paid_order),
    )

    client = LogisticsClient(center.base_url, center.access_token)
    try:
        http_status, response = client.send_package(build_package_payload(paid_order, shop, center))
    except Exception as exc:
        logger.error("Relay of order %s to Recibelo failed: %s", order_id, exc)
        body = getattr(exc, 'body', None)
        audit_log.record_update(
            order_id, AuditEventType.ORDER_PAID,
            shop=shop,
            order_label=paid_order.order_label,
            status=AuditStatus.ERROR,
            error_message=str(exc),
            http_status=getattr(exc, 'status_code', None),
            response_data={'error': body} if body else None,
        )
        raise

    logger.info("Package created in Recibelo for order %s", paid_order.order_label)
    audit_log.record_update(
        order_id, AuditEventType.ORDER_PAID,
        shop=shop,
        order_label=paid_order.order_label,
        status=AuditStatus.SUCCESS,
        http_status=http_status,
        response_data=response,
    )
    return response
