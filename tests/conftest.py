"""Pytest configuration and fixtures."""
import itertools
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from storefront.api.deps import get_notifier
from storefront.data.database import Database
from storefront.data.models import ProductModel, StoreModel
from storefront.main import create_app
from storefront.utils.settings import JWT_ALGORITHM, JWT_SECRET

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "line1": "12 Analytical St",
    "city": "London",
    "postal_code": "N1 9GU",
    "country": "GB",
}


class FakeNotifier:
    """Records confirmations instead of queueing Celery tasks."""

    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, order_id, order_number):
        self.sent.append((order_id, order_number))


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'storefront.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    # attributes stay loaded after commit, reading them never reopens a transaction
    s = database.SessionLocal(expire_on_commit=False)
    yield s
    s.close()


@pytest.fixture
def store(session):
    store = StoreModel(name="TechHub", subdomain="tech", domain="tech.example.com", currency="USD")
    session.add(store)
    session.commit()
    return store


@pytest.fixture
def other_store(session):
    store = StoreModel(name="Books", subdomain="books", currency="USD")
    session.add(store)
    session.commit()
    return store


@pytest.fixture
def make_product(session, store):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "store_id": store.id,
            "name": f"Product {n}",
            "sku": f"SKU-{n:03d}",
            "price": 1000,
            "inventory_quantity": 10,
            "track_inventory": True,
            "allow_backorders": False,
            "is_active": True,
        }
        fields.update(overrides)
        product = ProductModel(**fields)
        session.add(product)
        session.commit()
        return product

    return _make


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(database, notifier):
    app = create_app(database=database, seed_demo_data=False)
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_token(user_id, expires_in=timedelta(hours=1), secret=JWT_SECRET):
    payload = {"userId": user_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def bearer(user_id, **kwargs):
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}
