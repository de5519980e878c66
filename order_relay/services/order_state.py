"""Fulfillment order transitions on Shopify.

Both operations query the order's fulfillment orders first and then mutate
the ones in the expected pre-state, one at a time. A failed query aborts.
A failed mutation is logged and the loop moves on; the operation still
returns normally.
"""
import logging

from flask import current_app

from order_relay.errors import PartialMutationError, TransportError
from order_relay.services.shopify_admin import ShopifyAdminClient

logger = logging.getLogger(__name__)

OPEN = 'OPEN'
IN_PROGRESS = 'IN_PROGRESS'
UNSUBMITTED = 'UNSUBMITTED'


def _apply_each(fulfillment_orders, should_apply, mutate, action):
    applied = failed = 0
    for fulfillment_order in fulfillment_orders:
        if not should_apply(fulfillment_order):
            continue
        try:
            mutate(fulfillment_order)
        except (TransportError, PartialMutationError) as exc:
            failed += 1
            logger.error("Error on %s for %s: %s", action, fulfillment_order['id'], exc)
        else:
            applied += 1
            logger.info("%s applied to %s", action, fulfillment_order['id'])

    logger.info("%s finished: %s applied, %s failed", action, applied, failed)


def advance_to_in_progress(shop, access_token, external_order_id):
    client = ShopifyAdminClient(shop, access_token)
    fulfillment_orders = client.fetch_fulfillment_orders(external_order_id)

    _apply_each(
        fulfillment_orders,
        lambda fo: fo.get('status') == OPEN and fo.get('requestStatus') == UNSUBMITTED,
        lambda fo: client.update_fulfillment_order_status(fo['id'], IN_PROGRESS),
        f"IN_PROGRESS transition (order {external_order_id})",
    )


def create_fulfillment_with_tracking(shop, access_token, external_order_id, tracking_number, tracking_url):
    client = ShopifyAdminClient(shop, access_token)
    fulfillment_orders = client.fetch_fulfillment_orders(external_order_id)
    carrier = current_app.config['RECIBELO_CARRIER_NAME']

    _apply_each(
        fulfillment_orders,
        lambda fo: fo.get('status') in (IN_PROGRESS, OPEN),
        lambda fo: client.create_fulfillment(fo['id'], tracking_number, tracking_url, carrier),
        f"fulfillment {tracking_number} (order {external_order_id})",
    )
