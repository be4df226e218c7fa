"""
Integration tests for the JSON API.
"""

from datetime import datetime

import pytest
from prometheus_client import REGISTRY

from retail.models import InventoryTransaction, ReferenceType, TransactionType


def _create_order(client, product_id, quantity, **extra):
    return client.post('/api/orders', json={'items': [{'product_id': product_id, 'quantity': quantity}], **extra})


class TestAuthentication:

    def test_mutations_require_acting_user(self, client, product):
        response = _create_order(client, product, 1)

        assert response.status_code == 401
        assert response.get_json() == {'status': 'error', 'message': 'Authentication required'}

    def test_unknown_user_in_session(self, client, product):
        with client.session_transaction() as sess:
            sess['user_id'] = 123456

        assert _create_order(client, product, 1).status_code == 401

    def test_health_is_public(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}


class TestOrdersApi:

    def test_create_and_fetch_order(self, authenticated_client, product, customer, user):
        response = _create_order(authenticated_client, product, 2, customer_id=customer, note='Phone order')

        assert response.status_code == 201
        body = response.get_json()
        assert body['status'] == 'ok'
        order = body['data']
        assert order['final_amount'] == '50.00'
        assert order['created_by'] == user
        assert order['customer_name'] == 'Ana Torres'
        assert order['items'][0]['unit_price'] == '25.00'

        fetched = authenticated_client.get(f"/api/orders/{order['id']}").get_json()['data']
        assert fetched['id'] == order['id']
        assert fetched['order_status'] == 'confirmed'

    def test_insufficient_stock_is_409(self, authenticated_client, product):
        response = _create_order(authenticated_client, product, 11)

        assert response.status_code == 409
        body = response.get_json()
        assert body['status'] == 'error'
        assert body['available'] == 10
        assert body['requested'] == 11
        assert body['product_id'] == product

    def test_invalid_quantity_is_400(self, authenticated_client, product):
        response = _create_order(authenticated_client, product, 0)
        assert response.status_code == 400

    def test_missing_body_is_400(self, authenticated_client):
        response = authenticated_client.post('/api/orders', data='nope', content_type='text/plain')
        assert response.status_code == 400

    def test_order_total_beyond_money_column_is_400(self, authenticated_client, make_product, stock_of):
        product_id = make_product(stock=2, price='9999999999.99')

        response = _create_order(authenticated_client, product_id, 2)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Order total is too large'
        assert stock_of(product_id) == 2

    def test_status_update(self, authenticated_client, product):
        order_id = _create_order(authenticated_client, product, 1).get_json()['data']['id']

        bad = authenticated_client.patch(f'/api/orders/{order_id}/status', json={'order_status': 'shipped'})
        assert bad.status_code == 400
        assert bad.get_json()['field'] == 'order_status'

        empty = authenticated_client.patch(f'/api/orders/{order_id}/status', json={'color': 'red'})
        assert empty.status_code == 400
        assert empty.get_json()['message'] == 'No valid fields to update'

        good = authenticated_client.put(f'/api/orders/{order_id}/status', json={'payment_status': 'paid'})
        assert good.status_code == 200
        assert good.get_json()['data']['payment_status'] == 'paid'

    def test_cancel_is_idempotent(self, authenticated_client, product, stock_of):
        order_id = _create_order(authenticated_client, product, 4).get_json()['data']['id']

        for _ in range(2):
            response = authenticated_client.post(f'/api/orders/{order_id}/cancel')
            assert response.status_code == 200
            assert response.get_json()['data']['order_status'] == 'cancelled'

        assert stock_of(product) == 10

    def test_list_orders(self, authenticated_client, product):
        _create_order(authenticated_client, product, 1)
        _create_order(authenticated_client, product, 1)

        response = authenticated_client.get('/api/orders?status=confirmed&limit=1')
        assert response.status_code == 200
        assert len(response.get_json()['data']) == 1

        assert authenticated_client.get('/api/orders?status=lost').status_code == 400

    def test_missing_order_is_404(self, authenticated_client):
        response = authenticated_client.get('/api/orders/999')
        assert response.status_code == 404
        assert response.get_json()['order_id'] == 999


class TestStockInApi:

    def test_draft_then_confirm(self, authenticated_client, make_product, supplier, stock_of):
        product_id = make_product()
        response = authenticated_client.post('/api/stock-in', json={
            'supplier_id': supplier,
            'items': [{'product_id': product_id, 'quantity': 6, 'unit_cost': '4.50'}],
        })
        assert response.status_code == 201
        receipt = response.get_json()['data']
        assert receipt['status'] == 'draft'
        assert receipt['total_amount'] == '27.00'
        assert stock_of(product_id) == 0

        response = authenticated_client.patch(
            f"/api/stock-in/{receipt['id']}/status", json={'status': 'confirmed'}
        )
        assert response.status_code == 200
        assert stock_of(product_id) == 6

        items = authenticated_client.get(f"/api/stock-in/{receipt['id']}/items").get_json()['data']
        assert items[0]['current_cost_price'] == '4.50'

    def test_oversized_unit_cost_is_400(self, authenticated_client, make_product, supplier):
        product_id = make_product()
        response = authenticated_client.post('/api/stock-in', json={
            'supplier_id': supplier,
            'items': [{'product_id': product_id, 'quantity': 1, 'unit_cost': '1e30'}],
        })

        assert response.status_code == 400
        assert response.get_json() == {'status': 'error', 'message': 'unit_cost is too large'}

    def test_cancel_then_confirm_rejected(self, authenticated_client, make_product, supplier):
        product_id = make_product()
        receipt_id = authenticated_client.post('/api/stock-in', json={
            'supplier_id': supplier,
            'items': [{'product_id': product_id, 'quantity': 1, 'unit_cost': 1}],
        }).get_json()['data']['id']

        assert authenticated_client.post(f'/api/stock-in/{receipt_id}/cancel').status_code == 200
        response = authenticated_client.put(f'/api/stock-in/{receipt_id}/status', json={'status': 'confirmed'})
        assert response.status_code == 400

    def test_list_and_missing(self, authenticated_client, product):
        # The product fixture is stocked by one confirmed receipt
        listed = authenticated_client.get('/api/stock-in?status=confirmed').get_json()['data']
        assert len(listed) == 1
        assert authenticated_client.get('/api/stock-in/999').status_code == 404


class TestProductsAndInventoryApi:

    def test_product_lifecycle(self, authenticated_client):
        response = authenticated_client.post('/api/products', json={
            'sku': 'TEA-001', 'name': 'Green tea', 'price': '3.20', 'min_stock': 5,
        })
        assert response.status_code == 201
        product = response.get_json()['data']
        assert product['stock_quantity'] == 0
        assert product['status'] == 'active'

        duplicate = authenticated_client.post('/api/products', json={'sku': 'TEA-001', 'name': 'Again', 'price': 1})
        assert duplicate.status_code == 400

        deleted = authenticated_client.delete(f"/api/products/{product['id']}")
        assert deleted.get_json()['data']['status'] == 'deleted'

        response = _create_order(authenticated_client, product['id'], 1)
        assert response.status_code == 404

    def test_low_stock(self, authenticated_client, make_product):
        low = make_product(stock=2, min_stock=5)
        make_product(stock=20, min_stock=5)

        data = authenticated_client.get('/api/inventory/low-stock').get_json()['data']
        assert [p['id'] for p in data] == [low]

        data = authenticated_client.get('/api/inventory/low-stock?threshold=100').get_json()['data']
        assert len(data) == 2

    def test_history_and_verify(self, authenticated_client, product):
        _create_order(authenticated_client, product, 3)

        history = authenticated_client.get(f'/api/inventory/products/{product}/history').get_json()['data']
        assert sorted(row['type'] for row in history) == ['export', 'import']
        assert sorted(row['signed_quantity'] for row in history) == [-3, 10]

        verify = authenticated_client.get('/api/inventory/verify').get_json()['data']
        assert verify == {'consistent': True, 'discrepancies': []}

        assert authenticated_client.get('/api/inventory/products/999/history').status_code == 404

    @pytest.mark.parametrize('date,expected', [('2000-01-01', 0), ('2999-12-31', 7)])
    def test_inventory_as_of(self, authenticated_client, product, date, expected):
        _create_order(authenticated_client, product, 3)

        data = authenticated_client.get(f'/api/inventory/as-of?date={date}').get_json()['data']
        row = next(r for r in data if r['product_id'] == product)
        assert row['quantity'] == expected
        assert row['current_quantity'] == 7

    def test_as_of_requires_valid_date(self, authenticated_client):
        assert authenticated_client.get('/api/inventory/as-of').status_code == 400
        assert authenticated_client.get('/api/inventory/as-of?date=yesterday').status_code == 400

    def test_date_only_as_of_covers_the_last_microsecond(self, authenticated_client, session, make_product, user):
        product_id = make_product()
        session.add(InventoryTransaction(
            product_id=product_id,
            type=TransactionType.IMPORT,
            quantity=4,
            reference_type=ReferenceType.STOCK_IN,
            reference_id=1,
            created_by=user,
            created_at=datetime(2024, 5, 1, 23, 59, 59, 500000),
        ))
        session.commit()

        data = authenticated_client.get('/api/inventory/as-of?date=2024-05-01').get_json()['data']
        row = next(r for r in data if r['product_id'] == product_id)
        assert row['quantity'] == 4

        data = authenticated_client.get('/api/inventory/as-of?date=2024-05-01T23:59:59').get_json()['data']
        row = next(r for r in data if r['product_id'] == product_id)
        assert row['quantity'] == 0


class TestMetricsApi:

    def test_domain_counters_exposed(self, authenticated_client, product):
        _create_order(authenticated_client, product, 1)

        response = authenticated_client.get('/metrics')
        assert response.status_code == 200
        text = response.get_data(as_text=True)
        assert 'retail_orders_created_total' in text
        assert 'retail_stock_movements_total{type="export"}' in text
        assert 'http_requests_total' in text
        assert 'endpoint="orders.create_order"' in text

    def test_unrouted_requests_share_one_label(self, client):
        client.get('/api/nowhere')
        client.get('/api/somewhere-else')

        count = REGISTRY.get_sample_value(
            'http_requests_total',
            {'method': 'GET', 'endpoint': 'unmatched', 'http_status': '404'},
        )
        assert count is not None and count >= 2

    def test_in_flight_gauge_returns_to_previous_value(self, client):
        before = REGISTRY.get_sample_value('http_requests_in_flight')
        client.get('/health')
        client.get('/api/nowhere')
        assert REGISTRY.get_sample_value('http_requests_in_flight') == before

    def test_unknown_route_is_json_404(self, client):
        response = client.get('/api/nowhere')
        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'
