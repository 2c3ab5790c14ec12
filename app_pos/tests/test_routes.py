# -*- coding: utf-8 -*-
"""
Tests de la API JSON con el cliente de pruebas de Flask.
"""
import pytest

from app_pos.app_container import AppContainer
from app_pos.main import create_app
from app_pos.models import Customer, Product, Unit


@pytest.fixture
def app(tmp_path):
    app = create_app(str(tmp_path))
    container = app.config['CONTAINER']
    container.inventory_repo.save_product(Product(
        id='p1', name_en='Rice', price=100.0, stock_shop=50,
        units=[Unit(name='Box', price=1100.0, conversion_factor=12)],
    ))
    container.inventory_repo.save_product(Product(id='p2', name_en='Bread', price=50.0, stock_shop=20,
                                                  is_zero_tax=True))
    container.customer_repo.save_customer(Customer(id='c1', name_en='Ali', credit_limit=500.0))
    container.customer_repo.save_customer(Customer(id='c2', name_en='Aisha', credit_limit=5000.0,
                                                   outstanding_balance=2000.0))
    yield app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def cart_id(client):
    return client.get('/api/carts').get_json()['active_cart_id']


def add(client, cart_id, product_id, **extra):
    body = {'product_id': product_id}
    body.update(extra)
    r = client.post(f'/api/carts/{cart_id}/lines', json=body)
    assert r.status_code == 200, r.get_json()
    return r.get_json()


def test_list_and_create_carts(client, cart_id):
    r = client.post('/api/carts')
    assert r.status_code == 201
    new_id = r.get_json()['cart']['id']

    data = client.get('/api/carts').get_json()
    assert data['ok'] is True
    assert [c['id'] for c in data['carts']] == [cart_id, new_id]
    assert data['active_cart_id'] == new_id

    client.post(f'/api/carts/{cart_id}/activate')
    assert client.get('/api/carts').get_json()['active_cart_id'] == cart_id


def test_close_last_cart_creates_new_one(client, cart_id):
    data = client.delete(f'/api/carts/{cart_id}').get_json()
    assert data['ok'] is True
    assert data['active_cart']['id'] != cart_id


def test_add_line_merges_and_reports_totals(client, cart_id):
    add(client, cart_id, 'p1')
    data = add(client, cart_id, 'p1')

    assert len(data['cart']['items']) == 1
    assert data['cart']['items'][0]['qty'] == 2
    assert data['cart']['totals']['grand_total'] == 200.0


def test_unknown_product_is_an_error(client, cart_id):
    r = client.post(f'/api/carts/{cart_id}/lines', json={'product_id': 'nope'})
    assert r.status_code == 400
    assert r.get_json()['ok'] is False


def test_change_unit_and_qty(client, cart_id):
    line_id = add(client, cart_id, 'p1')['line']['line_id']

    r = client.post(f'/api/carts/{cart_id}/lines/{line_id}/unit', json={'unit': 'Box'})
    assert r.get_json()['line']['unit_price'] == 1100.0

    r = client.post(f'/api/carts/{cart_id}/lines/{line_id}/qty', json={'qty': 0})
    assert r.get_json()['line'] is None
    assert r.get_json()['cart']['items'] == []


def test_unknown_line_returns_404(client, cart_id):
    r = client.delete(f'/api/carts/{cart_id}/lines/nope')
    assert r.status_code == 404
    assert r.get_json() == {'ok': False, 'error': 'Línea nope no encontrada en el carrito'}


def test_totals_endpoint(client, cart_id):
    add(client, cart_id, 'p1')
    add(client, cart_id, 'p2')
    data = client.get(f'/api/carts/{cart_id}/totals').get_json()

    assert data['totals']['grand_total'] == 150.0
    assert data['totals']['zero_tax_total'] == 50.0
    assert data['tax_rate'] == 8.0


def test_cash_checkout(client, app, cart_id):
    add(client, cart_id, 'p1')

    r = client.post(f'/api/carts/{cart_id}/checkout/cash', json={'paid_amount': 99})
    assert r.status_code == 400
    assert r.get_json()['ok'] is False

    r = client.post(f'/api/carts/{cart_id}/checkout/cash', json={'paid_amount': 150})
    data = r.get_json()
    assert data['ok'] is True
    assert data['change'] == 50.0
    assert data['sales'][0]['payment_method'] == 'cash'

    container = app.config['CONTAINER']
    assert container.inventory_repo.get_product('p1').stock_shop == 49


def test_credit_checkout_over_limit(client, cart_id):
    add(client, cart_id, 'p1', qty=6)
    client.post(f'/api/carts/{cart_id}/customer', json={'customer_id': 'c1'})

    r = client.post(f'/api/carts/{cart_id}/checkout/credit')
    assert r.status_code == 400
    assert 'Límite de crédito' in r.get_json()['error']


def test_split_checkout(client, app, cart_id):
    add(client, cart_id, 'p1')
    r = client.post(f'/api/carts/{cart_id}/checkout/split', json={'customer_ids': ['c1', 'c2']})
    data = r.get_json()

    assert data['ok'] is True
    assert [s['grand_total'] for s in data['sales']] == [50.0, 50.0]
    assert data['split']['is_balanced'] is True
    customers = app.config['CONTAINER'].customer_repo
    assert customers.get_customer('c2').outstanding_balance == 2050.0


def test_split_needs_two_customers(client, cart_id):
    add(client, cart_id, 'p1')
    r = client.post(f'/api/carts/{cart_id}/checkout/split', json={'customer_ids': ['c1']})
    assert r.status_code == 400


def test_settlements_and_report(client):
    r = client.post('/api/customers/c2/settlements', json={'amount': 500, 'date': '2023-10-20'})
    assert r.status_code == 201
    assert r.get_json()['settlement']['new_outstanding'] == 1500.0

    client.post('/api/customers/c2/settlements', json={'amount': 500})
    history = client.get('/api/customers/c2/settlements').get_json()['settlements']
    assert [s['new_outstanding'] for s in history] == [1000.0, 1500.0]

    report = client.get('/api/reports/outstanding').get_json()
    assert report['total_outstanding'] == 1000.0
    assert report['customers'][0]['id'] == 'c2'


def test_manual_credit_sale_and_breakdown(client):
    r = client.post('/api/customers/c1/credit-sales',
                    json={'items': [{'product_id': 'p1', 'qty': 1}]})
    assert r.status_code == 201
    sale = r.get_json()['sale']
    assert sale['grand_total'] == 100.0

    data = client.get(f"/api/sales/{sale['id']}/breakdown").get_json()
    assert data['breakdown']['gst_amount'] == pytest.approx(7.41, abs=0.01)


def test_storage_failure_returns_502(client, app, cart_id, monkeypatch):
    add(client, cart_id, 'p1')
    sales_repo = app.config['CONTAINER'].sales_repo

    def broken(sale_data):
        raise OSError('remote unavailable')

    monkeypatch.setattr(sales_repo, 'create_sale', broken)
    r = client.post(f'/api/carts/{cart_id}/checkout/cash', json={'paid_amount': 100})
    assert r.status_code == 502
    assert r.get_json()['ok'] is False

    cart = client.get('/api/carts').get_json()['carts'][0]
    assert len(cart['items']) == 1
