"""
Pytest fixtures for the shop backend tests.

Provides the test database, a test client, and a small seeded catalogue:
one ice, one gas and one water product, a cashier, an admin and a customer.
"""

import pytest

from icepos import create_app
from icepos.extensions import db
from icepos.models import IceProduct, GasProduct, WaterProduct, Customer, User
from icepos.models.auth import ROLE_ADMIN, ROLE_CASHIER


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SHOP_NAME': 'ร้านทดสอบ',
        'SHOP_ADDRESS': '1 ถนนทดสอบ',
        'SHOP_PHONE': '02-000-0000',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def cashier(db_session):
    user = User(name="สมชาย", role=ROLE_CASHIER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    user = User(name="เจ้าของร้าน", role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="ป้าแดง", phone="0812345678", points=500)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def ice(db_session):
    """Tube ice, 40 baht a bag."""
    product = IceProduct(
        name="น้ำแข็งหลอด",
        unit="ถุง",
        price_cents=4000,
        cost_cents=2500,
        stock=100,
        low_stock_threshold=10,
        melt_rate_percent=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def gas(db_session):
    """15 kg cylinder: 350 baht gas, 200 baht deposit."""
    product = GasProduct(
        name="แก๊ส 15 กก.",
        unit="ถัง",
        price_cents=35000,
        cost_cents=30000,
        stock=20,
        low_stock_threshold=3,
        deposit_amount_cents=20000,
        empty_stock=5,
        barcode="GAS15",
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def water(db_session):
    product = WaterProduct(
        name="น้ำดื่ม 600 มล.",
        unit="ขวด",
        price_cents=1000,
        cost_cents=600,
        stock=48,
        low_stock_threshold=12,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    """Acting-user header for the cashier."""
    return {'X-User-Id': str(cashier.id)}
