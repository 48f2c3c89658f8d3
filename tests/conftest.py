"""
Pytest configuration and shared fixtures.

- FakeOrderStore: in-memory order store recording every patch
- sqlite_store / api_store: SqliteOrderStore on a temp file
- mock_gateway_client: routes adapter HTTP calls to an httpx.MockTransport
- api_client: TestClient with store / gateway overrides
"""

import asyncio
import os
import tempfile
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
import structlog
from fastapi.testclient import TestClient

# Settings are read at import time
os.environ["SEPAY_API_KEY"] = ""
os.environ["SEPAY_SECRET_KEY"] = ""
os.environ.setdefault("DB_FILE", os.path.join(tempfile.gettempdir(), "storefront_pay_test.sqlite3"))

from storefront_pay.db import SqliteOrderStore
from storefront_pay.dependencies import get_gateway, get_order_store
from storefront_pay.main import app
from storefront_pay.providers.sepay.adapter import SepayAdapter
from storefront_pay.utils.security import hmac_sha256_hex

WEBHOOK_SECRET = "test-sepay-secret-key"


@pytest.fixture(autouse=True, scope="session")
def _uncached_loggers():
    # lets structlog.testing.capture_logs() see module-level loggers
    structlog.configure(cache_logger_on_first_use=False)


class FakeOrderStore:
    def __init__(self, orders: list[dict[str, Any]] | None = None) -> None:
        self.orders = {o["order_id"]: dict(o) for o in orders or []}
        self.patches: list[tuple[str, dict[str, Any]]] = []

    async def find_order_by_order_id(self, order_id: str) -> dict[str, Any] | None:
        order = self.orders.get(order_id)
        return dict(order) if order else None

    async def patch_order(self, order_id: str, fields: dict[str, Any]) -> None:
        await self.apply_payment_update(order_id, fields)

    async def apply_payment_update(
        self, order_id: str, fields: dict[str, Any], from_payment_statuses=None
    ) -> bool:
        order = self.orders.get(order_id)
        if order is None:
            return False
        if from_payment_statuses is not None and order.get("payment_status", "unpaid") not in from_payment_statuses:
            return False
        self.patches.append((order_id, dict(fields)))
        order.update({k: v for k, v in fields.items() if v is not None})
        return True


def make_order(order_id: str = "ORD-1", **overrides: Any) -> dict[str, Any]:
    order = {
        "order_id": order_id,
        "customer_name": "Nguyen Van A",
        "customer_email": "a@example.com",
        "amount": 250000,
        "status": "pending",
        "payment_status": "unpaid",
        "transaction_id": None,
    }
    order.update(overrides)
    return order


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac_sha256_hex(secret, body)


@pytest.fixture
def webhook_secret() -> str:
    return WEBHOOK_SECRET


@pytest.fixture
def fake_store() -> FakeOrderStore:
    return FakeOrderStore([make_order("ORD-1")])


@pytest_asyncio.fixture
async def sqlite_store(tmp_path) -> SqliteOrderStore:
    store = SqliteOrderStore(str(tmp_path / "orders.sqlite3"))
    await store.init()
    return store


@pytest.fixture
def api_store(tmp_path) -> SqliteOrderStore:
    """Store for TestClient tests, which run outside the pytest-asyncio loop."""
    store = SqliteOrderStore(str(tmp_path / "api_orders.sqlite3"))
    asyncio.run(store.init())
    return store


@pytest.fixture
def mock_gateway_client(monkeypatch) -> Callable[[Callable[[httpx.Request], httpx.Response]], list[httpx.Request]]:
    """Install a handler for outbound gateway calls; returns the list of captured requests."""

    def _install(handler: Callable[[httpx.Request], httpx.Response]) -> list[httpx.Request]:
        seen: list[httpx.Request] = []

        def _recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        def _client(timeout_sec: float = 15) -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.MockTransport(_recording), timeout=timeout_sec)

        monkeypatch.setattr("storefront_pay.providers.sepay.adapter.client", _client)
        return seen

    return _install


@pytest.fixture
def mock_adapter() -> SepayAdapter:
    """Adapter without credentials: always mocks payments."""
    return SepayAdapter(api_key="", secret_key="")


@pytest.fixture
def api_client(api_store, mock_adapter):
    app.dependency_overrides[get_order_store] = lambda: api_store
    app.dependency_overrides[get_gateway] = lambda: mock_adapter
    yield TestClient(app)
    app.dependency_overrides.clear()
