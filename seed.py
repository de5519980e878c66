import os
import secrets

from order_relay import create_app, db
from order_relay.models import LogisticCenter, ShopSession

app = create_app()

SHOP = os.environ.get('SEED_SHOP', 'dev-store.myshopify.com')

with app.app_context():
    db.create_all()  # Creates tables if they don't exist

    if not LogisticCenter.query.filter_by(shop=SHOP).first():
        print(f"Seeding {SHOP}...")

        # 1. Offline Admin API session for the shop
        session = ShopSession(
            shop=SHOP,
            access_token=os.environ.get('SEED_SHOPIFY_TOKEN', 'shpat_dev_token'),
        )
        db.session.add(session)

        # 2. Recibelo configuration
        center = LogisticCenter(
            shop=SHOP,
            external_id=int(os.environ.get('SEED_RECIBELO_CLIENT_ID', 1)),
            name="Centro Logístico Santiago",
            base_url=os.environ.get('SEED_RECIBELO_URL', 'http://localhost:8080'),
            access_token=os.environ.get('SEED_RECIBELO_TOKEN', 'dev-recibelo-token'),
            routing_token=secrets.token_urlsafe(24),
        )
        db.session.add(center)
        db.session.commit()

        print(f"Database seeded! Recibelo webhook URL: /api/logistics-webhook/{center.routing_token}")
    else:
        print("Database already contains data.")
