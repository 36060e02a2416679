"""
Pytest configuration and fixtures.

Gateway traffic is served by an in-process fake mounted on
``httpx.MockTransport``; the API is driven through ``httpx.ASGITransport``.
"""
import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from vandar_gateway.api.main import create_app
from vandar_gateway.config import Settings
from vandar_gateway.integrations.vandar_client import VandarClient
from vandar_gateway.storage import MemoryTransactionStore

TEST_API_KEY = "test-api-key"
TEST_BASE_URL = "https://gateway.test"
TEST_CALLBACK_URL = "https://merchant.example.com/callback"

Reply = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeGateway:
    """
    Scripted stand-in for the Vandar API.

    ``replies`` maps ``(method, path)`` to either ``(status_code, body)`` or a
    callable producing the response. A ``str`` body is sent as-is, anything
    else is JSON-encoded. Every request is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.replies: Dict[Tuple[str, str], Reply] = {}
        self.requests: List[httpx.Request] = []

    def reply(self, method: str, path: str, status_code: int, body: Any) -> None:
        self.replies[(method, path)] = (status_code, body)

    def reply_with(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.replies[(method, path)] = handler

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, json={"status": 0, "message": "no such route"})
        if callable(reply):
            return reply(request)

        status_code, body = reply
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        api_key=TEST_API_KEY,
        base_url=TEST_BASE_URL,
        callback_url=TEST_CALLBACK_URL,
        business_name="acme",
        app_name="vandar-gateway-test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def store() -> MemoryTransactionStore:
    return MemoryTransactionStore()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture
async def vandar_client(
    test_settings: Settings,
    store: MemoryTransactionStore,
    gateway: FakeGateway,
) -> AsyncGenerator[VandarClient, Any]:
    """Client wired to the fake gateway."""
    async with httpx.AsyncClient(transport=gateway.transport()) as http_client:
        yield VandarClient(store, settings=test_settings, http_client=http_client)


def make_app_client(app: Any, headers: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers=headers,
    )


@pytest_asyncio.fixture
async def api_client(
    test_settings: Settings,
    vandar_client: VandarClient,
) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """Authenticated HTTP client for the application."""
    app = create_app(settings=test_settings, client=vandar_client)
    async with make_app_client(app, {"Authorization": f"Bearer {TEST_API_KEY}"}) as ac:
        yield ac


@pytest.fixture
def init_success() -> Dict[str, Any]:
    return {"status": 1, "token": "tok_abc123"}


@pytest.fixture
def verify_success() -> Dict[str, Any]:
    return {
        "status": 1,
        "amount": "1000000",
        "realAmount": 990000,
        "transId": 159178352177,
        "factorNumber": "INV-1",
        "mobile": "09123456789",
        "description": "Order 1",
        "cardNumber": "603799******7890",
        "paymentDate": "2024-01-15 14:30:00",
        "cid": "card-hash-xyz",
        "message": "ok",
    }
