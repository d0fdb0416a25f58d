"""Test fixtures for the team chat backend."""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ["SESSION_COOKIE_SECURE"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from teamchat.db import Base, get_db
from teamchat.main import app
from teamchat.services import accounts
from teamchat.services.broadcaster import ConnectionManager, get_broadcaster
from teamchat.services.tokens import create_session_token


class RecordingBroadcaster(ConnectionManager):
    """Broadcaster that remembers every publish."""

    def __init__(self):
        super().__init__()
        self.published: list[tuple[str, str, dict]] = []

    async def publish(self, topic, event, payload):
        self.published.append((topic, event, payload))
        return await super().publish(topic, event, payload)

    def events(self, event: str) -> list[tuple[str, dict]]:
        return [(topic, payload) for topic, name, payload in self.published if name == event]


@pytest.fixture
async def engine(tmp_path):
    """Per-test SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker) -> AsyncSession:
    """Get a test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def recorder() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def wired_app(session_maker, recorder):
    """The app wired to the test database and the recording broadcaster."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: recorder
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def make_client(wired_app):
    """Factory for HTTP clients, optionally logged in as a user."""
    clients = []

    def _make(user=None) -> AsyncClient:
        cookies = {"token": create_session_token(user)} if user is not None else None
        client = AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test", cookies=cookies)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest.fixture
async def client(make_client) -> AsyncClient:
    """Anonymous HTTP client."""
    return make_client()


@pytest.fixture
def make_user(session_maker):
    """Factory registering users straight through the accounts service."""

    async def _make(email: str, first_name: str = "Test", last_name: str = "User", password: str = "password123"):
        async with session_maker() as session:
            return await accounts.register_user(session, first_name, last_name, email, password)

    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user("alice@example.com", "Alice", "Anders")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob@example.com", "Bob", "Brown")


@pytest.fixture
async def carol(make_user):
    return await make_user("carol@example.com", "Carol", "Chen")


@pytest.fixture
async def workspace_with_channel(make_client, alice):
    """Alice's workspace with one channel; returns (workspace_id, channel_id)."""
    client = make_client(alice)
    response = await client.post("/workspace", json={"name": "Acme"})
    assert response.status_code == 200
    workspace_id = response.json()["workspace"]["id"]

    response = await client.post("/channel", json={"name": "General", "workspaceId": workspace_id})
    assert response.status_code == 200
    channel_id = response.json()["channel"]["id"]
    return workspace_id, channel_id
