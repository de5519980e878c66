from flask_login import UserMixin
from order_relay.extensions import db
from order_relay.utils import utcnow

class ShopSession(UserMixin, db.Model):
    __tablename__ = 'shop_sessions'

    id = db.Column(db.Integer, primary_key=True)
    shop = db.Column(db.String(255), nullable=False, index=True)
    access_token = db.Column(db.String(255))
    expires = db.Column(db.DateTime)  # NULL for offline tokens
    created_at = db.Column(db.DateTime, default=utcnow)

    @classmethod
    def active(cls):
        return cls.query.filter(db.or_(cls.expires.is_(None), cls.expires > utcnow()))

    @classmethod
    def for_shop(cls, shop):
        return cls.active().filter(
            cls.shop == shop, cls.access_token.isnot(None)
        ).order_by(cls.id.desc()).first()
