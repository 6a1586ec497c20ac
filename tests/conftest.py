"""Shared test fixtures for settings, async database and sessions."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from profile_importer.core.config import Settings
from profile_importer.models.base import Base


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test application settings (no inter-row pause, reports under tmp_path)."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        import_pause_seconds=0,
        report_dir=str(tmp_path / "reports"),
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
