"""
test_line_snapshot.py — Tests for recorded line snapshots.
Run: pytest test_line_snapshot.py -v
"""
from decimal import Decimal

import pytest
from sqlalchemy import update

from clinic_pos import create_app, db
from clinic_pos.billing.models import TransactionLine, SnapshotImmutableError
from clinic_pos.billing.snapshot import record_line
from clinic_pos.pricing.calculations import DiscountSpec
from clinic_pos.pricing.lookup import quote_line
from clinic_pos.pricing.models import (
    CustomerCategory, Product, ProductPrice, Treatment, Settings,
)


@pytest.fixture(scope='function')
def client():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


def seed_catalog():
    pasien = CustomerCategory(code='PASIEN', name='Pasien')
    db.session.add(pasien)
    db.session.flush()

    product = Product(name='Facial Wash 100ml', sku='SKN-001', cost_price=Decimal('20.00'))
    db.session.add(product)
    db.session.flush()
    db.session.add(ProductPrice(product_id=product.id, category_id=pasien.id, price=Decimal('50.00')))

    treatment = Treatment(name='Facial Basic', sell_price=Decimal('33.33'), cost_price=Decimal('10.00'))
    db.session.add(treatment)
    db.session.commit()
    return {'pasien': pasien.id, 'product': product.id, 'treatment': treatment.id}


def product_quote(product_id, qty='1', discount=None):
    return quote_line({
        'item_type': 'PRODUCT', 'product_id': product_id, 'treatment_id': None,
        'category_code': None, 'qty': Decimal(qty), 'discount': discount or DiscountSpec.none(),
    })


# ── 1. record_line ────────────────────────────────────────────────

def test_record_line_stores_breakdown_verbatim(client):
    ids = seed_catalog()
    quote = quote_line({
        'item_type': 'TREATMENT', 'product_id': None, 'treatment_id': ids['treatment'],
        'category_code': None, 'qty': Decimal('3'), 'discount': DiscountSpec.percent('15'),
    })
    line = record_line(db.session, quote)
    db.session.commit()
    line_id = line.id

    db.session.expire_all()
    stored = db.session.get(TransactionLine, line_id)
    assert stored.breakdown == quote.breakdown
    assert stored.line_subtotal == Decimal('99.99')
    assert stored.line_discount == Decimal('15.00')
    assert stored.line_total == Decimal('84.99')
    assert stored.cost_total == Decimal('30.00')
    assert stored.profit == Decimal('54.99')
    assert stored.discount_type == 'PERCENT'
    assert stored.discount_value == Decimal('15.00')
    assert stored.name == 'Facial Basic'


def test_record_line_without_discount_stores_null_type(client):
    ids = seed_catalog()
    line = record_line(db.session, product_quote(ids['product'], qty='2'))
    db.session.commit()
    assert line.discount_type is None
    assert line.discount_value == Decimal('0.00')
    assert line.category_id == ids['pasien']
    assert line.line_total == Decimal('100.00')


def test_loss_making_line_is_recorded(client):
    ids = seed_catalog()
    line = record_line(db.session, product_quote(ids['product'], discount=DiscountSpec.nominal('80.00')))
    db.session.commit()
    assert line.line_discount == Decimal('50.00')
    assert line.line_total == Decimal('0.00')
    assert line.profit == Decimal('-20.00')


def test_snapshot_cannot_be_modified(client):
    ids = seed_catalog()
    line = record_line(db.session, product_quote(ids['product']))
    db.session.commit()

    line.line_total = Decimal('1.00')
    with pytest.raises(SnapshotImmutableError):
        db.session.commit()
    db.session.rollback()

    assert db.session.get(TransactionLine, line.id).line_total == Decimal('50.00')


def test_snapshot_cannot_be_bulk_updated(client):
    ids = seed_catalog()
    line = record_line(db.session, product_quote(ids['product']))
    db.session.commit()
    line_id = line.id

    with pytest.raises(SnapshotImmutableError):
        TransactionLine.query.filter_by(id=line_id).update({'line_total': Decimal('1.00')})
    db.session.rollback()

    with pytest.raises(SnapshotImmutableError):
        db.session.execute(update(TransactionLine).values(profit=Decimal('0.00')))
    db.session.rollback()

    db.session.expire_all()
    stored = db.session.get(TransactionLine, line_id)
    assert stored.line_total == Decimal('50.00')
    assert stored.profit == Decimal('30.00')


def test_snapshot_survives_price_change(client):
    """Reports read the snapshot; repricing the product must not alter it."""
    ids = seed_catalog()
    line = record_line(db.session, product_quote(ids['product']))
    db.session.commit()
    line_id = line.id

    price = ProductPrice.query.filter_by(product_id=ids['product']).first()
    price.price = Decimal('75.00')
    db.session.get(Product, ids['product']).cost_price = Decimal('30.00')
    db.session.commit()

    db.session.expire_all()
    stored = db.session.get(TransactionLine, line_id)
    assert stored.unit_price == Decimal('50.00')
    assert stored.line_total == Decimal('50.00')
    assert stored.profit == Decimal('30.00')


# ── 2. Endpoints ──────────────────────────────────────────────────

def test_record_endpoint_and_read_back(client):
    ids = seed_catalog()
    resp = client.post('/billing/lines', json={
        'item_type': 'PRODUCT', 'product_id': ids['product'], 'qty': 2,
        'discount_type': 'NOMINAL', 'discount_value': '10',
    })
    assert resp.status_code == 201
    created = resp.get_json()
    assert created['subtotal'] == '100.00'
    assert created['line_discount'] == '10.00'
    assert created['line_total'] == '90.00'
    assert created['cost_total'] == '40.00'
    assert created['profit'] == '50.00'

    resp = client.get(f'/billing/lines/{created["id"]}')
    assert resp.status_code == 200
    body = resp.get_json()
    for field in ('subtotal', 'line_discount', 'line_total', 'cost_total', 'profit'):
        assert Decimal(body[field]) == Decimal(created[field])
    assert TransactionLine.query.count() == 1


def test_record_endpoint_refuses_fully_discounted_line(client):
    ids = seed_catalog()
    resp = client.post('/billing/lines', json={
        'item_type': 'PRODUCT', 'product_id': ids['product'], 'qty': 1,
        'discount_type': 'NOMINAL', 'discount_value': '80',
    })
    assert resp.status_code == 400
    errors = resp.get_json()['errors']
    assert 'discount_value' in errors
    assert 'line_total' in errors
    assert TransactionLine.query.count() == 0


def test_record_endpoint_invalid_input(client):
    resp = client.post('/billing/lines', json={'item_type': 'TREATMENT', 'qty': 'x'})
    assert resp.status_code == 400
    assert set(resp.get_json()['errors']) == {'treatment_id', 'qty'}


def test_record_endpoint_inactive_treatment(client):
    ids = seed_catalog()
    db.session.get(Treatment, ids['treatment']).is_active = False
    db.session.commit()
    resp = client.post('/billing/lines', json={
        'item_type': 'TREATMENT', 'treatment_id': ids['treatment'], 'qty': 1,
    })
    assert resp.status_code == 404
    assert TransactionLine.query.count() == 0


def test_read_missing_line(client):
    resp = client.get('/billing/lines/12345')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}


def test_record_endpoint_rejects_fourth_decimal_place(client):
    ids = seed_catalog()
    resp = client.post('/billing/lines', json={
        'item_type': 'PRODUCT', 'product_id': ids['product'], 'qty': '0.3336',
    })
    assert resp.status_code == 400
    assert 'qty' in resp.get_json()['errors']
    assert TransactionLine.query.count() == 0


# ── 3. CLI ────────────────────────────────────────────────────────

def test_cli_quote(client):
    runner = client.application.test_cli_runner()
    result = runner.invoke(args=['quote', '--price', '33.33', '--qty', '3', '--cost', '10',
                                 '--discount-type', 'PERCENT', '--discount-value', '15'])
    assert result.exit_code == 0
    assert '99.99' in result.output
    assert '84.99' in result.output
    assert '54.99' in result.output


def test_cli_quote_rejects_negative_price(client):
    runner = client.application.test_cli_runner()
    result = runner.invoke(args=['quote', '--price=-5'])
    assert result.exit_code == 1
    assert 'price' in result.output


def test_cli_init_db_seeds_settings(client):
    runner = client.application.test_cli_runner()
    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    db.session.expire_all()
    assert db.session.get(Settings, 1).commission_default_percent == Decimal('10.00')


def test_cli_seed_demo_is_idempotent(client):
    runner = client.application.test_cli_runner()
    for _ in range(2):
        result = runner.invoke(args=['seed-demo'])
        assert result.exit_code == 0, result.output

    db.session.expire_all()
    assert CustomerCategory.query.count() == 3
    assert Product.query.count() == 3
    assert ProductPrice.query.count() == 9
    assert Treatment.query.count() == 3
    assert Settings.query.count() == 1
