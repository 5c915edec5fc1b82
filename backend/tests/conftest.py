"""
Pytest fixtures for stockhub backend tests.

Provides the in-memory app, a per-test clean database, locations and a
product factory that seeds stock directly (no ledger records), so each test
counts only the transactions its own operations write.
"""

import itertools

import pytest
from stockhub import create_app
from stockhub.extensions import db
from stockhub.models import InventoryTransaction, Product, ProductLocation, compute_total_quantity
from stockhub.services.location_service import create_location


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUNDLE_SALE_PREFLIGHT': False,
        'BUNDLE_SALE_ATOMIC': False,
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
        # Clear all data but keep schema (Core deletes bypass the ledger guard)
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def warehouse(db_session):
    """Primary warehouse location."""
    return create_location(name="Warehouse", type="warehouse", is_primary=True)


@pytest.fixture(scope='function')
def store(db_session):
    """Secondary retail location."""
    return create_location(name="Retail Store", type="retail")


@pytest.fixture(scope='function')
def annex(db_session):
    """Third location, initially unused by any product."""
    return create_location(name="Annex", type="fulfillment")


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: make_product({location: qty, ...}, sku=..., name=...).

    Writes stock rows and the total directly, bypassing the engine.
    """
    counter = itertools.count(1)

    def _make(stock=None, *, sku=None, name=None):
        n = next(counter)
        product = Product(
            sku=sku or f"SKU-{n:03d}",
            name=name or f"Product {n}",
            total_quantity=0,
            is_bundle=False,
        )
        for location, quantity in (stock or {}).items():
            product.stock_rows.append(ProductLocation(location_id=location.id, quantity=quantity))
        product.total_quantity = compute_total_quantity(product.stock_rows)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def tx_count(db_session):
    """Callable returning the number of ledger rows (optionally for one product)."""
    def _count(product_id=None):
        q = db_session.query(InventoryTransaction)
        if product_id is not None:
            q = q.filter(InventoryTransaction.product_id == product_id)
        return q.count()

    return _count
