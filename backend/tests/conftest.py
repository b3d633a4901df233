"""
Pytest fixtures for shopledger backend tests.

Provides the test database, a provisioned account and entity factories.
Deferred bookkeeping runs eagerly so its results are visible as soon as an
engine call returns.
"""

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.services import account_service, customer_service, inventory_service, supplier_service


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    # File-backed so deferred tasks get their own connection
    db_path = tmp_path_factory.mktemp("db") / "shopledger-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFERRED_TASKS_EAGER': True,
        'TRANSACTION_RETRY_BACKOFF': 0,
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
def account(db_session):
    """Provisioned account with settings and walk-in customer."""
    return account_service.create_account("Test Shop", "TEST")


@pytest.fixture(scope='function')
def other_account(db_session):
    """Second account for isolation checks."""
    return account_service.create_account("Other Shop", "OTHER")


@pytest.fixture(scope='function')
def make_product(account):
    """Factory: active product with zero cost unless given (no cash movement)."""
    counter = {"n": 0}

    def _make(name=None, *, price=50.0, stock=10, cost_price=0.0, category=None, account_id=None):
        counter["n"] += 1
        payload = {
            "product_code": f"P{counter['n']:03d}",
            "name": name or f"Product {counter['n']}",
            "price": price,
            "stock": stock,
            "cost_price": cost_price,
        }
        if category:
            payload["category"] = category
        return inventory_service.add_product(account_id or account.id, payload)

    return _make


@pytest.fixture(scope='function')
def supplier(account):
    """Supplier with no opening balance."""
    return supplier_service.add_supplier(account.id, {"name": "Acme Wholesale", "phone": "021-5550100"})


@pytest.fixture(scope='function')
def customer(account):
    """Registered (non walk-in) customer."""
    return customer_service.add_customer(account.id, {"name": "Sara Khan", "phone": "0300-1112223"})


@pytest.fixture(scope='function')
def fresh(db_session):
    """Drop cached state so reads see what deferred tasks committed."""
    def _fresh(obj=None):
        db_session.expire_all()
        return obj

    return _fresh
