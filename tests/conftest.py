import os

import pytest
from fastapi.testclient import TestClient

# Development mode selects the in-memory store and mock payments
os.environ.setdefault("ENV_MODE", "development")

from bistro.core.config import get_settings
from bistro.core.security import create_access_token
from bistro.database import get_store
from bistro.main import app
from bistro.services.payment import MockPaymentService, get_payment_service
from bistro.services.store import MockOrderingStore


ADMIN_UID = "admin-uid"
CUSTOMER_UID = "customer-uid"
OTHER_UID = "other-uid"

SALAD_ID = "64f1a0000000000000000001"
PIZZA_ID = "64f1a0000000000000000002"
LAVA_CAKE_ID = "64f1a0000000000000000003"
SUNDAE_ID = "64f1a0000000000000000004"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store() -> MockOrderingStore:
    """Empty in-memory store injected into every route."""
    return MockOrderingStore()


@pytest.fixture
def client(store):
    """TestClient wired to the fixture store and a zero-latency mock payment service."""
    payments = MockPaymentService(min_latency=0, max_latency=0)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_payment_service] = lambda: payments
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header carrying a fresh credential for a uid."""
    settings = get_settings()

    def _headers(uid: str) -> dict:
        token = create_access_token({"uid": uid}, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def users(store):
    """One admin, one regular customer and a second customer."""
    store.load("users", [
        {"_id": "64f1b0000000000000000001", "uid": ADMIN_UID, "role": "admin", "name": "Ada"},
        {"_id": "64f1b0000000000000000002", "uid": CUSTOMER_UID, "name": "Casey"},
        {"_id": "64f1b0000000000000000003", "uid": OTHER_UID, "name": "Oli"},
    ])
    return store


@pytest.fixture
def menu(store):
    """Four menu items across three categories; one price stored as a string."""
    store.load("menu", [
        {"_id": SALAD_ID, "name": "Caesar Salad", "category": "salad",
         "price": 12, "image": "salad.jpg"},
        {"_id": PIZZA_ID, "name": "Margherita", "category": "pizza",
         "price": "14.5", "image": "pizza.jpg"},
        {"_id": LAVA_CAKE_ID, "name": "Lava Cake", "category": "Dessert",
         "price": 5, "image": "lava.jpg"},
        {"_id": SUNDAE_ID, "name": "Sundae", "category": "frozen-dessert",
         "price": 4, "image": "sundae.jpg"},
    ])
    return store
