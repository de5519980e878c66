from order_relay.extensions import db
from order_relay.utils import utcnow
import enum
import json

UNKNOWN = 'unknown'

class AuditEventType(enum.Enum):
    ORDER_PAID = "order_paid"
    PACKAGE_CREATED = "package_created"
    SHIPMENT_COMPLETED = "shipment_completed"
    FULFILLMENT_UPDATED = "fulfillment_updated"
    ERROR = "error"

class AuditStatus(enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    RETRY = "retry"

class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)

    # Identity
    external_order_id = db.Column(db.String(64), nullable=False, index=True)  # Shopify order id or 'unknown'
    order_label = db.Column(db.String(100))                                   # e.g. #1001
    shop = db.Column(db.String(255), nullable=False, index=True)

    event_type = db.Column(db.Enum(AuditEventType), nullable=False)
    status = db.Column(db.Enum(AuditStatus), nullable=False, default=AuditStatus.PENDING)

    # Payload snapshots (JSON text)
    request_data = db.Column(db.Text)
    response_data = db.Column(db.Text)

    error_message = db.Column(db.Text)
    http_status = db.Column(db.Integer)
    retry_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'external_order_id': self.external_order_id,
            'order_label': self.order_label,
            'shop': self.shop,
            'event_type': self.event_type.value,
            'status': self.status.value,
            'request_data': _loads(self.request_data),
            'response_data': _loads(self.response_data),
            'error_message': self.error_message,
            'http_status': self.http_status,
            'retry_count': self.retry_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<AuditLog {self.id} {self.external_order_id} {self.event_type.value}:{self.status.value}>'


def _loads(text):
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
