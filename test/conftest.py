"""
Pytest configuration and fixtures.
"""
from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState

from contact_manager.contacts.models import Contact  # noqa: F401
from contact_manager.main import app
from contact_manager.realtime.manager import get_connection_manager
from contact_manager.realtime.messages import WebSocketMessage
from contact_manager.shared.database import Base, get_db_session


class FakeWebSocket:
    """In-memory stand-in for an accepted Starlette WebSocket."""

    def __init__(self, fail_send: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_send = fail_send
        self.sent: list[str] = []
        self.close_code: int | None = None

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise RuntimeError("transport broken")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def drop(self) -> None:
        """Simulate the peer going away."""
        self.client_state = WebSocketState.DISCONNECTED

    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]


class RecordingNotifier:
    """Notifier that remembers every broadcast."""

    def __init__(self) -> None:
        self.messages: list[WebSocketMessage] = []

    async def broadcast(self, message: WebSocketMessage) -> int:
        self.messages.append(message)
        return 0

    def types(self) -> list[str]:
        return [m.type.value for m in self.messages]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_socket():
    """Factory for fake sockets."""
    return FakeWebSocket


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[Any, None]:
    """Create an isolated in-memory database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
    notifier: RecordingNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_connection_manager] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_csv_content() -> bytes:
    """Valid CSV with the canonical English headers."""
    return (
        "Name,DateOfBirth,Married,Phone,Salary\n"
        "Alice Smith,1990-05-17,true,+14155551234,52000.00\n"
        "Bob Jones,12.04.1985,No,+44 20 7123 4567,\"61000,50\"\n"
        "Carol White,07/21/1978,1,(415) 555-0000,48000\n"
    ).encode("utf-8")
