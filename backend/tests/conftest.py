"""Shared test fixtures and configuration."""

import pytest
import os
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["AUTOPLAY"] = "false"
os.environ["DEBUG"] = "true"

from parley.main import app
from parley.db.database import Base
from parley.db.models import Message, Speaker
from parley.core import orchestrator as orchestrator_module
from parley.core import autoplay as autoplay_module
from parley.providers.base import BaseProvider
from parley.providers.factory import clear_providers
from parley.services.session_store import SessionStore
from parley.api.routes.dependencies import get_store, get_provider_factory

from fakes import FakeProvider


@pytest.fixture(autouse=True)
def clear_registries():
    """Reset process-wide registries between tests."""
    orchestrator_module._orchestrators.clear()
    autoplay_module._drivers.clear()
    clear_providers()
    yield
    for driver in list(autoplay_module._drivers.values()):
        driver.stop()
    orchestrator_module._orchestrators.clear()
    autoplay_module._drivers.clear()
    clear_providers()


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def store(session_factory) -> SessionStore:
    """A session store on the test database."""
    return SessionStore(session_factory)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_factory(fake_provider):
    """Provider factory that always hands out the fake provider."""

    def factory(name: str) -> BaseProvider:
        return fake_provider

    return factory


@pytest.fixture
def events():
    """Collected orchestrator events."""
    return []


@pytest.fixture
def event_sink(events):
    async def sink(event_type, data):
        events.append((event_type, data))

    return sink


@pytest.fixture
async def debate(store):
    """An idle session with the default cast."""
    return await store.create_session(topic="Is free will an illusion?", provider="gemini")


@pytest.fixture
def transcript_message():
    """Build an unsaved transcript entry."""

    def make(speaker: Speaker, content: str = "text", is_private: bool = False,
             is_handled: bool = False, is_closing: bool = False, id: Optional[int] = None):
        return Message(
            id=id,
            speaker=speaker,
            content=content,
            is_private=is_private,
            is_handled=is_handled,
            is_closing=is_closing,
        )

    return make


@pytest.fixture
async def client(store, provider_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the store and provider overridden."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_provider_factory] = lambda: provider_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
