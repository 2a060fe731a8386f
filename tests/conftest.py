"""
Pytest configuration and shared fixtures for the laundry API tests.

Every test gets its own SQLite file under pytest's tmp_path, seeded with the
reference data from scripts/seed.py, and the API's engine dependency is
pointed at it.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from laundry import cache
from laundry.db.engine import build_engine, get_engine
from laundry.db.schema import metadata
from laundry.main import app
from laundry.models.customers import CustomerIn
from laundry.models.orders import OrderCreateIn
from laundry.services.customers import create_customer
from laundry.services.orders import create_order
from scripts.seed import seed


@pytest.fixture
def engine(tmp_path):
    """Fresh database with schema and reference data."""
    engine = build_engine(f"sqlite:///{tmp_path / 'laundry_test.sqlite'}")
    metadata.create_all(engine)
    seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def clear_view_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def client(engine):
    """Test client whose requests all run against the test database."""
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer(engine):
    return create_customer(
        engine,
        CustomerIn(name="Ama Mensah", email="ama@example.com", phone="024-555-0101"),
    )


@pytest.fixture
def make_order(engine, customer):
    """
    Factory for orders. Each item dict needs a total; unit price defaults to
    the total, quantity to 1, service type to 'wash'.
    """

    def _make_order(totals=(Decimal("100"),), amount_paid=Decimal("0"), payment_method=None, **extra):
        items = [
            {
                "serviceTypeId": "wash",
                "categoryId": "shirt",
                "quantity": 1,
                "unitPrice": str(total),
                "total": str(total),
            }
            for total in totals
        ]
        payload = OrderCreateIn(
            customerId=customer["id"],
            items=items,
            amountPaid=amount_paid,
            paymentMethod=payment_method,
            **extra,
        )
        return create_order(engine, payload)

    return _make_order


@pytest.fixture
def order(make_order):
    """An order totalling 100 with nothing paid yet."""
    return make_order()


@pytest.fixture
def paid_order(make_order):
    """An order totalling 100, fully paid in cash at creation."""
    return make_order(amount_paid=Decimal("100"), payment_method="cash")
