"""Decoding of inbound webhook bodies.

Recibelo posts package updates in two shapes. The current one carries a
``package_status`` object (or a bare ``package_status_id``); the legacy one
carries an explicit ``event`` name. Both decode to a single
:class:`CanonicalRelayEvent`, so nothing downstream looks at the shape.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from order_relay.errors import ValidationError

logger = logging.getLogger(__name__)

SHOPIFY_ORDER_GID_PREFIX = 'gid://shopify/Order/'

PACKAGE_STATUS_CREATED_ID = 2
PACKAGE_STATUS_COMPLETED_ID = 8
_CREATED_LABELS = {'created', 'Creado'}
_COMPLETED_LABELS = {'completed', 'delivered', 'Completado', 'Entregado'}

_LEGACY_EVENTS = {
    'paquete_creado': 'package_created',
    'package_created': 'package_created',
    'envio_completado': 'shipment_completed',
    'shipment_completed': 'shipment_completed',
}


class RelayEventKind(enum.Enum):
    PACKAGE_CREATED = "package_created"
    SHIPMENT_COMPLETED = "shipment_completed"
    UNRECOGNIZED = "unrecognized"


@dataclass
class CanonicalRelayEvent:
    kind: RelayEventKind
    package_id: Any
    external_order_id: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    order_label: Optional[str] = None
    status_label: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def is_recognized(self):
        return self.kind is not RelayEventKind.UNRECOGNIZED

    def resolved_tracking(self, tracking_url_template):
        """Tracking number and URL with the package id / tracking-site fallbacks applied."""
        number = self.tracking_number or self.order_label or str(self.package_id)
        url = self.tracking_url or tracking_url_template.format(tracking_number=number)
        return number, url


def _str_or_none(value):
    if value is None or value == '':
        return None
    return str(value)


def _is_missing(value):
    return value is None or value == ''


def _classify_package_status(status_id, code, name):
    if str(status_id) == str(PACKAGE_STATUS_CREATED_ID) or code in _CREATED_LABELS or name in _CREATED_LABELS:
        return RelayEventKind.PACKAGE_CREATED
    if (str(status_id) == str(PACKAGE_STATUS_COMPLETED_ID)
            or code in _COMPLETED_LABELS or name in _COMPLETED_LABELS):
        return RelayEventKind.SHIPMENT_COMPLETED
    return RelayEventKind.UNRECOGNIZED


def _decode_package_status(body, tracking_url_template):
    status = body.get('package_status')
    if not isinstance(status, dict):
        status = {}
    status_id = body.get('package_status_id') or status.get('id')
    code = status.get('code')
    name = status.get('name')

    package_id = body.get('id')
    if _is_missing(package_id):
        raise ValidationError('Missing required field: paquete_id (id)')

    kind = _classify_package_status(status_id, code, name)
    event = CanonicalRelayEvent(
        kind=kind,
        package_id=package_id,
        external_order_id=_str_or_none(body.get('imported_id')) or _str_or_none(body.get('shopify_order_id')),
        order_label=_str_or_none(body.get('internal_id')),
        status_label=f"{name} ({code})" if (name or code) else str(status_id),
        raw=body,
    )

    if kind is RelayEventKind.SHIPMENT_COMPLETED:
        event.tracking_number = _str_or_none(body.get('internal_id')) or str(package_id)
        event.tracking_url = _str_or_none(body.get('tracking_url')) or tracking_url_template.format(
            tracking_number=event.tracking_number
        )
    return event


def _decode_legacy(body):
    package_id = body.get('paquete_id') or body.get('id')
    if _is_missing(package_id):
        raise ValidationError('Missing required field: paquete_id (id)')

    event_name = body.get('event')
    kind = RelayEventKind(_LEGACY_EVENTS.get(event_name, 'unrecognized'))
    return CanonicalRelayEvent(
        kind=kind,
        package_id=package_id,
        external_order_id=_str_or_none(body.get('shopify_order_id')),
        tracking_number=_str_or_none(body.get('tracking_number')),
        tracking_url=_str_or_none(body.get('tracking_url')),
        order_label=_str_or_none(body.get('internal_id')),
        status_label=str(event_name),
        raw=body,
    )


def normalize_logistics_event(body, tracking_url_template):
    if not isinstance(body, dict):
        raise ValidationError('Webhook body must be a JSON object')

    if 'package_status' in body or 'package_status_id' in body:
        event = _decode_package_status(body, tracking_url_template)
    else:
        event = _decode_legacy(body)

    logger.debug("Normalized logistics event: %r", event)
    return event


# -------------------------------------------------
# Shopify orders/paid
# -------------------------------------------------

@dataclass
class PaidOrder:
    external_order_id: str
    order_label: str
    financial_status: Optional[str]
    payload: dict = field(repr=False)

    @property
    def is_paid(self):
        return self.financial_status == 'paid'


def strip_order_gid(order_id):
    return str(order_id).replace(SHOPIFY_ORDER_GID_PREFIX, '')


def parse_paid_order(payload):
    if not isinstance(payload, dict):
        raise ValidationError('Invalid order payload: body is not a JSON object')
    if _is_missing(payload.get('id')):
        raise ValidationError('Invalid order payload: missing order or order.id')

    external_order_id = strip_order_gid(payload['id']) or 'unknown'
    order_label = (
        _str_or_none(payload.get('name'))
        or _str_or_none(payload.get('order_number'))
        or external_order_id
    )
    return PaidOrder(
        external_order_id=external_order_id,
        order_label=order_label,
        financial_status=payload.get('financial_status'),
        payload=payload,
    )
