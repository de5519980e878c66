import json

import pytest

from order_relay.errors import TransportError
from order_relay.services import order_state
from order_relay.services.shopify_admin import ShopifyAdminClient
from tests.conftest import SHOP, SHOP_TOKEN


class TestShopifyAdminClient:

    def test_query_sends_token_and_order_gid(self, app, upstreams):
        upstreams.shopify.add_fulfillment_order(1)

        nodes = ShopifyAdminClient(SHOP, SHOP_TOKEN).fetch_fulfillment_orders('555')

        request = upstreams.shopify.requests[0]
        assert str(request.url) == f'https://{SHOP}/admin/api/2024-10/graphql.json'
        assert request.headers['X-Shopify-Access-Token'] == SHOP_TOKEN
        assert json.loads(request.content)['variables'] == {'orderId': 'gid://shopify/Order/555'}
        assert [n['id'] for n in nodes] == ['gid://shopify/FulfillmentOrder/1']

    def test_graphql_errors_raise(self, app, upstreams):
        upstreams.shopify.query_errors = [{'message': 'Access denied'}]
        with pytest.raises(TransportError, match='Access denied'):
            ShopifyAdminClient(SHOP, SHOP_TOKEN).fetch_fulfillment_orders('555')

    def test_non_2xx_raises_with_status(self, app, upstreams):
        upstreams.shopify.query_status = 503
        with pytest.raises(TransportError) as excinfo:
            ShopifyAdminClient(SHOP, SHOP_TOKEN).fetch_fulfillment_orders('555')
        assert excinfo.value.status_code == 503


class TestAdvanceToInProgress:

    def test_only_open_unsubmitted_orders_are_mutated(self, app, upstreams):
        shopify = upstreams.shopify
        open_id = shopify.add_fulfillment_order(1, 'OPEN', 'UNSUBMITTED')
        shopify.add_fulfillment_order(2, 'IN_PROGRESS', 'UNSUBMITTED')
        shopify.add_fulfillment_order(3, 'OPEN', 'SUBMITTED')
        shopify.add_fulfillment_order(4, 'CANCELLED', 'UNSUBMITTED')

        order_state.advance_to_in_progress(SHOP, SHOP_TOKEN, '555')

        assert shopify.mutations == [('fulfillmentOrderUpdate', {'id': open_id, 'status': 'IN_PROGRESS'})]

    def test_failed_mutation_still_succeeds(self, app, upstreams, caplog):
        shopify = upstreams.shopify
        open_id = shopify.add_fulfillment_order(1, 'OPEN', 'UNSUBMITTED')
        shopify.add_fulfillment_order(2, 'IN_PROGRESS', 'UNSUBMITTED')
        shopify.rejected.add(open_id)

        order_state.advance_to_in_progress(SHOP, SHOP_TOKEN, '555')

        assert len(shopify.mutations) == 1
        assert 'not open' in caplog.text

    def test_failure_does_not_stop_remaining_orders(self, app, upstreams):
        shopify = upstreams.shopify
        first = shopify.add_fulfillment_order(1)
        second = shopify.add_fulfillment_order(2)
        shopify.broken.add(first)

        order_state.advance_to_in_progress(SHOP, SHOP_TOKEN, '555')

        assert [v['id'] for _, v in shopify.mutations] == [first, second]

    def test_query_failure_propagates(self, app, upstreams):
        upstreams.shopify.query_status = 500
        with pytest.raises(TransportError):
            order_state.advance_to_in_progress(SHOP, SHOP_TOKEN, '555')
        assert upstreams.shopify.mutations == []

    def test_second_delivery_is_a_no_op(self, app, upstreams):
        shopify = upstreams.shopify
        shopify.add_fulfillment_order(1, 'IN_PROGRESS', 'UNSUBMITTED')

        order_state.advance_to_in_progress(SHOP, SHOP_TOKEN, '555')
        assert shopify.mutations == []


class TestCreateFulfillmentWithTracking:

    def test_creates_fulfillment_for_open_and_in_progress(self, app, upstreams):
        shopify = upstreams.shopify
        in_progress = shopify.add_fulfillment_order(1, 'IN_PROGRESS')
        opened = shopify.add_fulfillment_order(2, 'OPEN')
        shopify.add_fulfillment_order(3, 'CLOSED')

        order_state.create_fulfillment_with_tracking(
            SHOP, SHOP_TOKEN, '555', 'ABC123', 'https://recibelo.cl/track/ABC123'
        )

        assert [op for op, _ in shopify.mutations] == ['fulfillmentCreateV2', 'fulfillmentCreateV2']
        first = shopify.mutations[0][1]['fulfillment']
        assert first == {
            'fulfillmentOrderId': in_progress,
            'trackingInfo': {'number': 'ABC123', 'url': 'https://recibelo.cl/track/ABC123',
                             'company': 'Recibelo'},
            'notifyCustomer': True,
        }
        assert shopify.mutations[1][1]['fulfillment']['fulfillmentOrderId'] == opened

    def test_rejected_fulfillment_is_logged_not_raised(self, app, upstreams, caplog):
        shopify = upstreams.shopify
        rejected = shopify.add_fulfillment_order(1, 'IN_PROGRESS')
        shopify.rejected.add(rejected)
        shopify.add_fulfillment_order(2, 'OPEN')

        order_state.create_fulfillment_with_tracking(SHOP, SHOP_TOKEN, '555', 'T', 'https://t')

        assert len(shopify.mutations) == 2
        assert '1 applied, 1 failed' in caplog.text

    def test_graphql_errors_on_query_propagate(self, app, upstreams):
        upstreams.shopify.query_errors = [{'message': 'Throttled'}]
        with pytest.raises(TransportError):
            order_state.create_fulfillment_with_tracking(SHOP, SHOP_TOKEN, '555', 'T', 'https://t')
