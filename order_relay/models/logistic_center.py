from order_relay.extensions import db
from order_relay.utils import utcnow

class LogisticCenter(db.Model):
    """Per-shop Recibelo configuration. Managed outside the relay."""
    __tablename__ = 'logistic_centers'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), nullable=False, index=True)

    external_id = db.Column(db.Integer)            # client id on the Recibelo side
    name = db.Column(db.String(200))

    base_url = db.Column(db.String(255))
    access_token = db.Column(db.String(255))

    # Opaque token carried in the inbound webhook URL
    routing_token = db.Column(db.String(64), unique=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_configured(self):
        return bool(self.base_url and self.access_token)

    def __repr__(self):
        return f'<LogisticCenter {self.id} {self.shop}>'
