import logging

import httpx

from order_relay.errors import TransportError
from order_relay.extensions import http_client

logger = logging.getLogger(__name__)

class LogisticsClient:
    """Recibelo package intake: {base_url}/webhook/{access_token}/shopify"""

    def __init__(self, base_url, access_token):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token

    @property
    def webhook_url(self):
        return f"{self.base_url}/webhook/{self.access_token}/shopify"

    def send_package(self, package_data):
        """POST the package; returns (http_status, parsed body)."""
        logger.info("Sending package for order %s to Recibelo", package_data.get('shopify_order_id'))
        try:
            with http_client() as client:
                response = client.post(self.webhook_url, json=package_data)
        except httpx.HTTPError as exc:
            raise TransportError(f"Error connecting to Recibelo: {exc}") from exc

        if not response.is_success:
            raise TransportError(
                f"Error from Recibelo: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Recibelo returned a non-JSON body: {response.text}",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        return response.status_code, body
