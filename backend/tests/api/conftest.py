"""Fixtures for API tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from stockops.api.deps import get_order_feed
from stockops.core.database import get_db
from stockops.main import app


class StubFeed:
    """Order feed that serves canned store data instead of calling the store."""

    def __init__(self):
        self.orders = []
        self.order_statuses = []
        self.products = []

    async def fetch_orders(self, after=None, before=None, status=None):
        return [o for o in self.orders if status is None or o.status == status]

    async def fetch_order(self, order_id):
        return next((o for o in self.orders if o.id == order_id), None)

    async def fetch_raw_materials(self):
        return []

    async def fetch_order_statuses(self):
        return list(self.order_statuses)

    async def fetch_products_with_variations(self):
        return list(self.products)

    async def fetch_variable_products(self):
        return [{**p, "variations": [v["id"] for v in p["variations"]]} for p in self.products]

    async def fetch_product_variations(self, product_id):
        return next((p["variations"] for p in self.products if p["id"] == product_id), [])


@pytest.fixture
def stub_feed():
    return StubFeed()


@pytest.fixture
async def client(session_factory, stub_feed):
    """Create a test client for the FastAPI app backed by the test database."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_order_feed] = lambda: stub_feed
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_headers(client):
    """Get authenticated headers for testing."""
    response = await client.post(
        "/auth/register",
        json={"username": "testuser", "email": "test@example.com", "password": "testpass123"},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
