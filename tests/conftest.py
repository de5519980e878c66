"""Shared fixtures: an in-memory app and fake Shopify / Recibelo upstreams."""

import base64
import hashlib
import hmac
import json
import re
from datetime import timedelta

import httpx
import pytest

from order_relay import create_app
from order_relay.config import TestingConfig
from order_relay.extensions import db
from order_relay.models import LogisticCenter, ShopSession
from order_relay.utils import utcnow

SHOP = 'test-store.myshopify.com'
SHOP_TOKEN = 'shpat_test_token'
RECIBELO_URL = 'https://api.recibelo.test'
RECIBELO_TOKEN = 'recibelo-token'
ROUTING_TOKEN = 'route-abc123'


def operation_name(query):
    match = re.search(r'(?:query|mutation)\s+(\w+)', query)
    return match.group(1) if match else None


class FakeShopify:
    """Admin GraphQL endpoint holding one order's fulfillment orders."""

    def __init__(self):
        self.fulfillment_orders = []
        self.query_status = 200
        self.query_errors = None
        self.rejected = set()        # fulfillment order ids answered with userErrors
        self.broken = set()          # fulfillment order ids answered with HTTP 500
        self.requests = []
        self.mutations = []

    def add_fulfillment_order(self, fo_id, status='OPEN', request_status='UNSUBMITTED'):
        self.fulfillment_orders.append({
            'id': f'gid://shopify/FulfillmentOrder/{fo_id}',
            'status': status,
            'requestStatus': request_status,
        })
        return f'gid://shopify/FulfillmentOrder/{fo_id}'

    def handle(self, request):
        self.requests.append(request)
        payload = json.loads(request.content)
        op = operation_name(payload['query'])
        variables = payload.get('variables') or {}

        if op == 'getFulfillmentOrders':
            if self.query_status != 200:
                return httpx.Response(self.query_status, text='upstream unavailable')
            if self.query_errors:
                return httpx.Response(200, json={'errors': self.query_errors})
            return httpx.Response(200, json={'data': {'order': {
                'id': variables['orderId'],
                'fulfillmentOrders': {'edges': [{'node': fo} for fo in self.fulfillment_orders]},
            }}})

        self.mutations.append((op, variables))
        fo_id = variables.get('id') or variables['fulfillment']['fulfillmentOrderId']
        if fo_id in self.broken:
            return httpx.Response(500, text='internal error')
        if fo_id in self.rejected:
            return httpx.Response(200, json={'data': {op: {
                'userErrors': [{'field': ['id'], 'message': 'Fulfillment order is not open'}],
            }}})
        if op == 'fulfillmentOrderUpdate':
            return httpx.Response(200, json={'data': {op: {
                'fulfillmentOrder': {'id': fo_id, 'status': variables['status']}, 'userErrors': [],
            }}})
        return httpx.Response(200, json={'data': {op: {
            'fulfillment': {'id': 'gid://shopify/Fulfillment/1', 'status': 'SUCCESS',
                            'trackingInfo': [variables['fulfillment']['trackingInfo']]},
            'userErrors': [],
        }}})


class FakeRecibelo:

    def __init__(self):
        self.status_code = 200
        self.body = {'success': True, 'package_id': 4242}
        self.raise_error = None
        self.requests = []

    def handle(self, request):
        self.requests.append(request)
        if self.raise_error:
            raise self.raise_error
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


class Upstreams:

    def __init__(self):
        self.shopify = FakeShopify()
        self.recibelo = FakeRecibelo()

    def __call__(self, request):
        if request.url.host.endswith('.myshopify.com'):
            return self.shopify.handle(request)
        return self.recibelo.handle(request)


@pytest.fixture()
def upstreams():
    return Upstreams()


@pytest.fixture()
def app(upstreams):
    app = create_app(TestingConfig)
    app.config['HTTP_TRANSPORT'] = httpx.MockTransport(upstreams)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def shop_session(app):
    session = ShopSession(shop=SHOP, access_token=SHOP_TOKEN)
    db.session.add(session)
    db.session.commit()
    return session


@pytest.fixture()
def logistic_center(app):
    center = LogisticCenter(
        shop=SHOP,
        external_id=77,
        name='Centro Santiago',
        base_url=RECIBELO_URL,
        access_token=RECIBELO_TOKEN,
        routing_token=ROUTING_TOKEN,
    )
    db.session.add(center)
    db.session.commit()
    return center


@pytest.fixture()
def admin_headers(shop_session):
    return {'Authorization': f'Bearer {SHOP_TOKEN}'}


def expired_session(shop):
    return ShopSession(shop=shop, access_token='expired', expires=utcnow() - timedelta(hours=1))


def shopify_signature(body, secret=TestingConfig.SHOPIFY_API_SECRET):
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def shopify_webhook_headers(body, shop=SHOP, topic='orders/paid', secret=TestingConfig.SHOPIFY_API_SECRET):
    return {
        'Content-Type': 'application/json',
        'X-Shopify-Hmac-Sha256': shopify_signature(body, secret),
        'X-Shopify-Shop-Domain': shop,
        'X-Shopify-Topic': topic,
    }


def paid_order(**overrides):
    order = {
        'id': 5550001,
        'name': '#1001',
        'order_number': 1001,
        'financial_status': 'paid',
        'line_items': [
            {'id': 1, 'name': 'Polera negra', 'quantity': 2, 'sku': 'POL-NEG', 'variant_id': 11,
             'price': '9990', 'vendor': 'ignored'},
        ],
        'shipping_address': {
            'first_name': 'Ana', 'last_name': 'Rojas', 'address1': 'Av. Providencia 123',
            'address2': None, 'city': 'Santiago', 'province': 'RM', 'country': 'Chile',
            'zip': '7500000', 'phone': '+56911111111', 'latitude': -33.4,
        },
        'billing_address': None,
        'customer': {'id': 9, 'email': 'ana@example.com', 'first_name': 'Ana', 'last_name': 'Rojas',
                     'phone': None},
        'total_price': '23970',
        'subtotal_price': '19980',
        'total_shipping_price_set': {'shop_money': {'amount': '3990'}},
        'currency': 'CLP',
        'created_at': '2026-10-01T10:00:00-03:00',
        'updated_at': '2026-10-01T10:05:00-03:00',
    }
    order.update(overrides)
    return order
