"""
Shared fixtures.

Each test gets its own SQLite file so cycles run on real, separate
connections (commit/rollback behave as in production).
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from storysquad.config.settings import Settings
from storysquad.database import init_db


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storysquad_test.db'}", echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Pin tunables so tests don't depend on the caller's environment."""
    monkeypatch.setattr(Settings, "MATCHUPS_PER_SQUAD", 4)
    monkeypatch.setattr(Settings, "FACEOFF_WIN_CREDIT", 10)
    monkeypatch.setattr(Settings, "SQUAD_SIZE", 4)
    monkeypatch.setattr(Settings, "TEAM_SIZE", 2)
