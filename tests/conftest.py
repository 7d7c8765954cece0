"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bugbash.persistence import SqlAlchemyBugBashStore, StoreConfig, init_storage
from tests.helpers.fake_store import FakeStore
from tests.helpers.logs import RecordingLogger

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine with all tables and the cursor seed."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bugbash_test.db'}")
    try:
        await init_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def sql_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlAlchemyBugBashStore:
    """Provide the SQL store with the default point value of 1."""
    return SqlAlchemyBugBashStore(session_factory, StoreConfig())


@pytest.fixture
def fake_store() -> FakeStore:
    """Provide an empty in-memory store."""
    return FakeStore()


@pytest.fixture
def scoring_logs(monkeypatch: pytest.MonkeyPatch) -> RecordingLogger:
    """Capture structured scoring events."""
    recorder = RecordingLogger()
    monkeypatch.setattr("bugbash.scoring.observability.logger", recorder)
    return recorder


@pytest.fixture
def poll_logs(monkeypatch: pytest.MonkeyPatch) -> RecordingLogger:
    """Capture structured poll events."""
    recorder = RecordingLogger()
    monkeypatch.setattr("bugbash.polling.observability.logger", recorder)
    return recorder
