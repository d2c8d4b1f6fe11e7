"""Shared fixtures for dockmap tests."""

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

from dockmap.storage import init_storage
from dockmap.vault import CredentialVault

if typ.TYPE_CHECKING:
    from pathlib import Path

TEST_KEY = b"k" * 32


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine with the dockmap schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dockmap_test.db'}")
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
def vault() -> CredentialVault:
    """Return a vault bound to a fixed test key."""
    return CredentialVault(TEST_KEY)
