import logging

import httpx
from flask import current_app

from order_relay.errors import PartialMutationError, TransportError
from order_relay.extensions import http_client

logger = logging.getLogger(__name__)

FULFILLMENT_ORDERS_QUERY = """
query getFulfillmentOrders($orderId: ID!) {
  order(id: $orderId) {
    id
    fulfillmentOrders(first: 10) {
      edges {
        node {
          id
          status
          requestStatus
          assignedLocation {
            location {
              id
            }
          }
        }
      }
    }
  }
}
"""

FULFILLMENT_ORDER_UPDATE_MUTATION = """
mutation fulfillmentOrderUpdate($id: ID!, $status: FulfillmentOrderStatus!) {
  fulfillmentOrderUpdate(id: $id, status: $status) {
    fulfillmentOrder {
      id
      status
    }
    userErrors {
      field
      message
    }
  }
}
"""

FULFILLMENT_CREATE_MUTATION = """
mutation fulfillmentCreateV2($fulfillment: FulfillmentV2Input!) {
  fulfillmentCreateV2(fulfillment: $fulfillment) {
    fulfillment {
      id
      status
      trackingInfo {
        number
        url
        company
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""


def order_gid(external_order_id):
    return f"gid://shopify/Order/{external_order_id}"


class ShopifyAdminClient:
    """Shopify Admin GraphQL API for one shop."""

    def __init__(self, shop, access_token, api_version=None):
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version or current_app.config['SHOPIFY_API_VERSION']

    @property
    def endpoint(self):
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def execute(self, query, variables=None):
        try:
            with http_client() as client:
                response = client.post(
                    self.endpoint,
                    json={'query': query, 'variables': variables or {}},
                    headers={
                        'Content-Type': 'application/json',
                        'X-Shopify-Access-Token': self.access_token,
                    },
                )
        except httpx.HTTPError as exc:
            raise TransportError(f"Shopify request failed: {exc}") from exc

        if not response.is_success:
            raise TransportError(
                f"Shopify returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            result = response.json()
        except ValueError as exc:
            raise TransportError(
                "Shopify returned a non-JSON body", status_code=response.status_code, body=response.text,
            ) from exc

        if result.get('errors'):
            raise TransportError(
                f"GraphQL errors: {result['errors']}", status_code=response.status_code, body=result,
            )
        return result.get('data') or {}

    def fetch_fulfillment_orders(self, external_order_id):
        data = self.execute(FULFILLMENT_ORDERS_QUERY, {'orderId': order_gid(external_order_id)})
        order = data.get('order') or {}
        edges = (order.get('fulfillmentOrders') or {}).get('edges') or []
        return [edge['node'] for edge in edges if edge.get('node')]

    def update_fulfillment_order_status(self, fulfillment_order_id, status):
        data = self.execute(FULFILLMENT_ORDER_UPDATE_MUTATION, {'id': fulfillment_order_id, 'status': status})
        result = data.get('fulfillmentOrderUpdate') or {}
        _raise_user_errors(result, f"fulfillmentOrderUpdate {fulfillment_order_id}")
        return result.get('fulfillmentOrder')

    def create_fulfillment(self, fulfillment_order_id, tracking_number, tracking_url, company,
                           notify_customer=True):
        data = self.execute(FULFILLMENT_CREATE_MUTATION, {
            'fulfillment': {
                'fulfillmentOrderId': fulfillment_order_id,
                'trackingInfo': {
                    'number': tracking_number,
                    'url': tracking_url,
                    'company': company,
                },
                'notifyCustomer': notify_customer,
            }
        })
        result = data.get('fulfillmentCreateV2') or {}
        _raise_user_errors(result, f"fulfillmentCreateV2 {fulfillment_order_id}")
        return result.get('fulfillment')


def _raise_user_errors(result, operation):
    user_errors = result.get('userErrors') or []
    if user_errors:
        raise PartialMutationError(f"{operation} rejected: {user_errors}", user_errors=user_errors)
