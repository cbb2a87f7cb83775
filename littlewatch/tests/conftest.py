"""Shared fixtures: settings, session store, a fake backend and a fake Socket.IO client."""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from socketio.exceptions import ConnectionError as SocketConnectionError

from littlewatch.api.auth import UnauthorizedHandler
from littlewatch.api.client import LittleWatchClient
from littlewatch.config import Settings
from littlewatch.session.store import Session, SessionStore

TEST_USER_ID = "42"
TEST_TOKEN = "test-token"
TEST_SERIAL = "ABC123"
API_BASE_URL = "https://api.test/api"
SOCKET_URL = "https://api.test"

LATEST_VITALS_BODY: dict[str, Any] = {
    "success": True,
    "data": {
        "vitals": {
            "heart_rate": 150,
            "temperature": 37.0,
            "oxygen_saturation": 98,
            "movement_status": "sleeping",
            "timestamp": "2026-02-23T10:00:00Z",
            "is_alert": False,
        },
        "device": {"battery_level": 85, "is_connected": True},
    },
}


# ---------------------------------------------------------------------------
# Fake backend (httpx.MockTransport handler)
# ---------------------------------------------------------------------------


class FakeBackend:
    """Routes requests by (method, path without the /api prefix)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        status: int = 200,
        *,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        self.routes[(method, path)] = handler or (status, body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.removeprefix("/api") == path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path.removeprefix("/api")))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)


# ---------------------------------------------------------------------------
# Fake Socket.IO client
# ---------------------------------------------------------------------------


class FakeSocketClient:
    """Stands in for ``socketio.AsyncClient``; fires ``connect`` synchronously."""

    def __init__(self, fail_connect: bool = False, **options: Any) -> None:
        self.options = options
        self.fail_connect = fail_connect
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.url: str | None = None
        self.transports: list[str] | None = None
        self.connected = False
        self.disconnect_calls = 0

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, transports: list[str] | None = None) -> None:
        if self.fail_connect:
            raise SocketConnectionError("Connection refused by the server")
        self.url = url
        self.transports = transports
        self.connected = True
        await self.fire("connect")

    async def emit(self, event: str, data: Any = None) -> None:
        self.emitted.append((event, data))

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnect_calls += 1

    async def fire(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)


class FakeSocketFactory:
    def __init__(self) -> None:
        self.clients: list[FakeSocketClient] = []
        self.fail_next = False

    @property
    def last(self) -> FakeSocketClient:
        return self.clients[-1]

    def __call__(self, **options: Any) -> FakeSocketClient:
        client = FakeSocketClient(fail_connect=self.fail_next, **options)
        self.clients.append(client)
        return client


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_base_url=API_BASE_URL,
        socket_url=SOCKET_URL,
        session_store_path=tmp_path / "session.json",
        poll_interval_seconds=30.0,
    )


@pytest.fixture
def store(settings: Settings) -> SessionStore:
    return SessionStore(settings.session_store_path)


@pytest.fixture
def session() -> Session:
    return Session(user_id=TEST_USER_ID, auth_token=TEST_TOKEN, device_serial=TEST_SERIAL)


@pytest.fixture
def on_logout() -> MagicMock:
    return MagicMock()


@pytest.fixture
def unauthorized(store: SessionStore, on_logout: MagicMock) -> UnauthorizedHandler:
    return UnauthorizedHandler(store, on_logout=on_logout)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def socket_factory() -> FakeSocketFactory:
    return FakeSocketFactory()


@pytest_asyncio.fixture
async def api(
    settings: Settings,
    store: SessionStore,
    session: Session,
    unauthorized: UnauthorizedHandler,
    backend: FakeBackend,
):
    """Client with a stored session, talking to ``backend``."""
    store.set(session)
    client = LittleWatchClient(
        settings,
        session=session,
        unauthorized=unauthorized,
        transport=httpx.MockTransport(backend),
    )
    yield client
    await client.aclose()
