"""Shared test fixtures.

Every test gets its own throw-away SQLite database with the schema created
from the ORM metadata. Redis is not required: rate limiting and reward
notifications are skipped when it is not initialized.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["NMQ_CRON_API_KEY"] = "test-cron-key"
os.environ["NMQ_JWT_ALGORITHM"] = "HS256"
os.environ["NMQ_JWT_SECRET"] = "nextmcq-test-secret-0123456789abcdef"
os.environ["NMQ_LOG_FORMAT"] = "console"

from nextmcq.auth.jwt import reset_keys  # noqa: E402
from nextmcq.config import get_settings  # noqa: E402
from nextmcq.database import close_db, get_engine, get_session, init_db  # noqa: E402
from nextmcq.db.base import Base  # noqa: E402
from nextmcq.main import create_app  # noqa: E402


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    """Point the service at a fresh SQLite file."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'rewards.db'}"
    monkeypatch.setenv("NMQ_DATABASE_URL", url)
    get_settings.cache_clear()
    reset_keys()
    yield url
    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def db_engine(database_url: str) -> AsyncGenerator[None, None]:
    """Initialize the engine and create all tables."""
    await init_db(database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for setup and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(db_engine: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app (lifespan not run)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
