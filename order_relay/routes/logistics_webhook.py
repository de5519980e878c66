"""Recibelo package notifications: move the Shopify order along.

- package created     -> fulfillment orders OPEN/UNSUBMITTED to IN_PROGRESS
- shipment completed  -> fulfillment with tracking, customer notified

Unlike the orders/paid webhook, failures here are answered with 4xx/5xx so
that Recibelo retries the delivery.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from order_relay.errors import ValidationError
from order_relay.models.audit_log import UNKNOWN, AuditEventType, AuditStatus
from order_relay.models.logistic_center import LogisticCenter
from order_relay.models.shop_session import ShopSession
from order_relay.services import audit_log, order_state
from order_relay.services.event_normalizer import RelayEventKind, normalize_logistics_event

logger = logging.getLogger(__name__)

bp = Blueprint('logistics_webhook', __name__)


class TenantNotResolved(Exception):

    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


def resolve_shop(routing_token=None):
    if routing_token:
        center = LogisticCenter.query.filter_by(routing_token=routing_token).first()
        if center is None:
            raise TenantNotResolved('Unknown routing token', 404)
        return center.shop

    # Without a routing token the delivery can only be routed when a single
    # shop is installed.
    shops = {s.shop for s in ShopSession.active().all()}
    if len(shops) != 1:
        raise TenantNotResolved(
            'Could not determine the shop. Make sure exactly one shop session is active '
            'or use the webhook URL that includes the routing token.', 400,
        )
    return shops.pop()


@bp.route('/api/logistics-webhook', methods=['POST'])
@bp.route('/api/logistics-webhook/<routing_token>', methods=['POST'])
def logistics_webhook(routing_token=None):
    body = request.get_json(silent=True)
    logger.info("Webhook received from Recibelo: %s", body)

    tracking_template = current_app.config['RECIBELO_TRACKING_URL']
    try:
        event = normalize_logistics_event(body, tracking_template)
    except ValidationError as exc:
        return jsonify(success=False, error=str(exc)), 400

    if not event.is_recognized:
        logger.info("Event not processed: %s (package %s)", event.status_label, event.package_id)
        return jsonify(success=True, message=f"Event not processed: {event.status_label}"), 200

    try:
        shop = resolve_shop(routing_token)
    except TenantNotResolved as exc:
        logger.error("Recibelo webhook for package %s not routed: %s", event.package_id, exc)
        return jsonify(success=False, error=str(exc)), exc.status_code

    event_type = AuditEventType(event.kind.value)
    order_id = event.external_order_id

    if not order_id:
        if event.kind is RelayEventKind.PACKAGE_CREATED:
            message = (f"Package {event.package_id} received but shopify_order_id is not available. "
                       "Make sure imported_id holds the Shopify order id.")
            logger.warning(message)
            audit_log.record(
                external_order_id=UNKNOWN,
                order_label=event.order_label or str(event.package_id),
                shop=shop,
                event_type=event_type,
                status=AuditStatus.ERROR,
                error_message=message,
                request_data=body,
            )
            return jsonify(success=True, message=message), 200
        return jsonify(
            success=False,
            error='shopify_order_id is required for shipment_completed. '
                  'Make sure imported_id holds the Shopify order id.',
        ), 400

    session = ShopSession.for_shop(shop)
    if session is None:
        logger.error("No session found for shop: %s", shop)
        return jsonify(success=False, error='Shop not found or not authenticated'), 404

    audit_log.record(
        external_order_id=order_id,
        order_label=event.order_label or str(event.package_id),
        shop=shop,
        event_type=event_type,
        status=AuditStatus.PENDING,
        request_data=body,
    )

    outcome = {'status': AuditStatus.SUCCESS, 'http_status': 200}
    try:
        if event.kind is RelayEventKind.PACKAGE_CREATED:
            order_state.advance_to_in_progress(shop, session.access_token, order_id)
        else:
            tracking_number, tracking_url = event.resolved_tracking(tracking_template)
            order_state.create_fulfillment_with_tracking(
                shop, session.access_token, order_id, tracking_number, tracking_url,
            )
            outcome['response_data'] = {'tracking_number': tracking_number, 'tracking_url': tracking_url}
    except Exception as exc:
        logger.exception("Error processing Recibelo %s for order %s", event.kind.value, order_id)
        audit_log.record_update(
            order_id, event_type,
            shop=shop,
            status=AuditStatus.ERROR,
            error_message=str(exc),
            http_status=getattr(exc, 'status_code', None),
        )
        return jsonify(success=False, error=str(exc)), 500

    audit_log.record_update(order_id, event_type, shop=shop, **outcome)
    return jsonify(success=True, message=f"Event {event.kind.value} processed successfully"), 200
