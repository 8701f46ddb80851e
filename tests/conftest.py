"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM rows: import model factories from tests.factories
- For raw GitHub JSON: import payload factories from tests.factories
- For a fake GitHub transport: import from tests.fixtures.fake_github
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from github_sync_db.db.engine import enable_sqlite_foreign_keys
from github_sync_db.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# -----------------------------------------------------------------------------

JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)   # Organization created
JAN_12 = datetime(2024, 1, 12, 16, 0, 0, tzinfo=UTC)  # Repository created
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)  # Issue opened
JAN_16 = datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC)  # Issue updated

# SQLite drops tzinfo, so rows written by factories use naive values
CONNECTED_AT = datetime(2024, 1, 1, 8, 0, 0)

# ISO 8601 strings (for GitHub API mocks)
JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_15_EVENING_ISO = "2024-01-15T16:00:00Z"  # First issue event
JAN_16_ISO = "2024-01-16T14:00:00Z"


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created. The single
    shared connection keeps the in-memory database alive across commits.
    Foreign keys are enforced the same way the application engine does.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create an async session with auto-rollback.

    Sync and lifecycle code commits on its own; anything left pending is
    rolled back after the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()
