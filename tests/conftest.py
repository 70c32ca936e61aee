"""Test fixtures for the storefront service and the offline client."""

import os
import uuid

# must be in place before app.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.api import create_app
from app.client import OfflineStorefront
from app.client.store import LocalStore
from app.data.database import Base, engine_kwargs, get_db
from app.data.models import ProductModel
from app.data.seed import seed

API_URL = "http://testserver"


class FlakySession:
    """requests-like session that routes calls into the TestClient.

    Setting ``offline`` makes every call fail the way a dropped connection
    does, so the client's offline paths run against the real API.
    """

    def __init__(self, client: TestClient):
        self.client = client
        self.offline = False
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url))
        if self.offline:
            raise requests.ConnectionError(f"offline: {method} {url}")
        return self.client.request(method, url, **kwargs)


@pytest.fixture
def session_factory(tmp_path):
    """Sessions bound to a fresh SQLite file with the full schema."""
    url = f"sqlite:///{tmp_path / 'storefront.db'}"
    engine = create_engine(url, **engine_kwargs(url))
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def products(session_factory):
    """Seeded catalog.

    Returns:
        dict: product name -> ProductModel (detached, stock as seeded).
    """
    session = session_factory()
    seed(session)
    rows = {p.name: p for p in session.query(ProductModel).all()}
    session.close()
    return rows


@pytest.fixture
def stock_of(session_factory):
    """Read the current stock of a product with a fresh session."""

    def read(product_id):
        session = session_factory()
        try:
            return session.get(ProductModel, product_id).stock
        finally:
            session.close()

    return read


@pytest.fixture
def set_product(session_factory):
    """Change stock and/or price of a product behind the client's back."""

    def update(product_id, **values):
        session = session_factory()
        try:
            product = session.get(ProductModel, product_id)
            for key, value in values.items():
                setattr(product, key, value)
            session.commit()
        finally:
            session.close()

    return update


@pytest.fixture
def app(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def network(client):
    return FlakySession(client)


@pytest.fixture
def local_store():
    store = LocalStore("sqlite://")
    yield store
    store.close()


@pytest.fixture
def storefront(network, products):
    """Offline client wired to the test API, starting offline."""
    sf = OfflineStorefront(api_url=API_URL, store_url="sqlite://", session=network, retry_attempts=1)
    yield sf
    sf.close()


@pytest.fixture
def order_payload(products):
    """Build a POST /orders body for (product name, quantity) pairs at current prices."""

    def build(*lines, client_action_id=None, email="buyer@example.com"):
        line_items = []
        total = 0.0
        for name, quantity in lines:
            product = products[name]
            line_items.append({"productId": product.id, "quantity": quantity, "price": float(product.price)})
            total += float(product.price) * quantity
        return {
            "clientActionId": client_action_id or str(uuid.uuid4()),
            "lineItems": line_items,
            "totalPrice": round(total, 2),
            "shippingAddress": "1 Main St, Springfield",
            "email": email,
        }

    return build
