"""
Pytest Fixtures für Petube Backend Tests

Bietet:
- In-Memory SQLite Datenbank für isolierte Tests
- Registry, Attachment Store und WebSocket Hub
- Steuerbare Uhr für TTL Tests
- FastAPI Clients für API- und WebSocket-Tests
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from models.database import Base
from services.attachment_store import AttachmentStore
from services.database import create_engine_for_url
from services.device_registry import DevicePairingRegistry
from services.partition_actor import ActorNamespace
from services.websocket_hub import WebSocketHub

# ============================================================================
# Database Fixtures
# ============================================================================

# SQLite async engine for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def async_engine():
    """Create async SQLite engine for tests"""
    engine = create_engine_for_url(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """
    Epoch millisecond clock under test control.

    Every reading advances the clock by one millisecond so records created
    one after another get distinct timestamps.
    """

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        current = self.now
        self.now += 1
        return current

    def advance(self, seconds: float):
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def registry(session_factory, clock) -> DevicePairingRegistry:
    return DevicePairingRegistry(session_factory, clock=clock, ttl_seconds=600)


@pytest.fixture
def attachment_store(session_factory) -> AttachmentStore:
    return AttachmentStore(session_factory)


@pytest.fixture
def websocket_hub() -> WebSocketHub:
    return WebSocketHub()


@pytest.fixture
def registry_namespace(session_factory, clock) -> ActorNamespace[DevicePairingRegistry]:
    return ActorNamespace(
        "registry",
        factory=lambda key: DevicePairingRegistry(session_factory, partition_key=key, clock=clock),
    )


@pytest.fixture
def mock_websocket(mock_websocket_factory):
    """Mock WebSocket connection"""
    return mock_websocket_factory()


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest.fixture
async def app_with_test_db(registry_namespace):
    """FastAPI app whose device registry uses the test database"""
    from main import app
    from services.edge_router import get_device_registries

    app.dependency_overrides[get_device_registries] = lambda: registry_namespace

    yield app

    # Cleanup
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_test_db) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for API tests"""
    transport = ASGITransport(app=app_with_test_db)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def stream_client():
    """
    Synchronous client for the stream room WebSocket.

    Runs the app lifespan against the file database from the root conftest
    and gives every test fresh room actors.
    """
    from main import app
    from services.database import AsyncSessionLocal
    from services.edge_router import get_stream_rooms
    from services.stream_room import StreamRoomCoordinator

    hub = WebSocketHub()
    store = AttachmentStore(AsyncSessionLocal)
    rooms = ActorNamespace(
        "room",
        factory=lambda room_id: StreamRoomCoordinator(room_id, hub, store),
    )
    app.dependency_overrides[get_stream_rooms] = lambda: rooms

    with TestClient(app) as client:
        client.rooms = rooms
        client.hub = hub
        yield client

    app.dependency_overrides.clear()
