"""Shopify orders/paid webhook: relay the paid order to Recibelo.

Apart from authentication failures (401), every outcome is answered with
HTTP 200. Shopify disables a subscription after repeated failures, and none
of these conditions goes away by retrying. What happened is recorded in the
audit trail.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from order_relay.errors import AuthenticationError, ConfigurationError, ValidationError
from order_relay.models.audit_log import UNKNOWN, AuditEventType, AuditStatus
from order_relay.services import audit_log
from order_relay.services.event_normalizer import parse_paid_order
from order_relay.services.order_relay import relay_paid_order, require_logistic_center
from order_relay.services.webhook_auth import authenticate_webhook

logger = logging.getLogger(__name__)

bp = Blueprint('orders_paid', __name__)


def _record_error(message, shop=UNKNOWN, external_order_id=UNKNOWN, order_label=UNKNOWN, request_data=None):
    audit_log.record(
        external_order_id=external_order_id,
        order_label=order_label,
        shop=shop,
        event_type=AuditEventType.ERROR,
        status=AuditStatus.ERROR,
        error_message=message,
        request_data=request_data,
    )


@bp.route('/webhooks/orders/paid', methods=['POST'])
def orders_paid():
    body = request.get_data()

    # -------- 1. Authenticate --------
    try:
        shop, topic, _session = authenticate_webhook(
            body, request.headers, current_app.config['SHOPIFY_API_SECRET']
        )
    except AuthenticationError as exc:
        logger.warning("orders/paid webhook rejected: %s", exc)
        _record_error(
            f"Webhook authentication failed: {exc}",
            shop=exc.shop or UNKNOWN,
            request_data={'error_type': 'authentication_error', 'url': request.url, 'method': request.method},
        )
        return jsonify(success=False, error='Webhook authentication failed', message=str(exc)), 401

    logger.info("Received %s webhook for %s", topic or 'orders/paid', shop)

    # -------- 2. Validate payload --------
    payload = request.get_json(silent=True)
    try:
        order = parse_paid_order(payload)
    except ValidationError as exc:
        logger.error("Invalid order payload from %s: %s", shop, exc)
        _record_error(
            str(exc),
            shop=shop,
            request_data={'has_payload': payload is not None,
                          'payload_keys': sorted(payload) if isinstance(payload, dict) else []},
        )
        return jsonify(success=False, error=str(exc)), 200

    if not order.is_paid:
        logger.info("Order %s not paid yet, financial_status: %s", order.external_order_id, order.financial_status)
        return jsonify(success=True, message='Order not paid'), 200

    # -------- 3. Tenant configuration --------
    try:
        center = require_logistic_center(shop)
    except ConfigurationError as exc:
        logger.error("%s: %s", exc, shop)
        _record_error(
            str(exc),
            shop=shop,
            external_order_id=order.external_order_id,
            order_label=order.order_label,
            request_data={'order_id': order.payload.get('id'), 'order_name': order.order_label,
                          'financial_status': order.financial_status},
        )
        return jsonify(success=False, error=str(exc)), 200

    # -------- 4. Relay --------
    try:
        response = relay_paid_order(center, order, shop)
    except Exception as exc:
        logger.exception("Error processing orders/paid webhook for %s", order.order_label)
        _record_error(
            str(exc),
            shop=shop,
            external_order_id=order.external_order_id,
            order_label=order.order_label,
            request_data={'order_id': order.payload.get('id'), 'order_name': order.order_label,
                          'error_type': type(exc).__name__},
        )
        return jsonify(success=False, error=str(exc)), 200

    return jsonify(
        success=True,
        message=f"Package sent to Recibelo for order {order.order_label}",
        recibelo_response=response,
    ), 200


@bp.route('/webhooks/orders/paid', methods=['GET'])
def orders_paid_info():
    return jsonify(
        message='This endpoint only accepts POST requests from Shopify webhooks',
        endpoint='/webhooks/orders/paid',
        method='POST',
    )
