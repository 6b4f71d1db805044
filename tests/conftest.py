"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM model tests: import factories from tests.factories
- For Asaas payloads and HTTP mocks: import from tests.fixtures.asaas_responses
- For services that read settings: request the ``asaas_env`` fixture
"""

import asyncio
from datetime import UTC, date, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from asaas_sync.config import RateLimitConfig, SyncConfig, get_settings
from asaas_sync.db.engine import enable_sqlite_savepoints
from asaas_sync.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# -----------------------------------------------------------------------------

TODAY = date(2024, 3, 15)  # Reference date for overdue checks
JAN_10 = date(2024, 1, 10)  # Customer created
FEB_01 = date(2024, 2, 1)  # Paid charge due date
MAR_10 = date(2024, 3, 10)  # Past due date
MAR_20 = date(2024, 3, 20)  # Future due date
APR_10 = date(2024, 4, 10)

NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=UTC)

# ISO strings (for Asaas API mocks)
JAN_10_ISO = "2024-01-10"
FEB_01_ISO = "2024-02-01"
MAR_10_ISO = "2024-03-10"
MAR_20_ISO = "2024-03-20"
APR_10_ISO = "2024-04-10"

TEST_API_KEY = "$aact_test_key"
TEST_API_URL = "https://api-sandbox.asaas.com/v3"


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created and
    savepoints enabled, as in the application engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create an async session with auto-rollback.

    Changes are rolled back after each test to ensure isolation.
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def write_lock() -> asyncio.Lock:
    """Lock shared by every repository of a test session."""
    return asyncio.Lock()


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def sync_config() -> SyncConfig:
    """Sync settings without pauses, small enough to exercise chunking."""
    return SyncConfig(
        page_size=3,
        batch_size=2,
        inter_batch_delay_ms=0,
        inter_page_delay_ms=0,
        commit_batch_size=2,
    )


@pytest.fixture
def rate_limit_config() -> RateLimitConfig:
    """Governor settings that never wait in tests unless a test lowers the budget."""
    return RateLimitConfig(safe_threshold=0, safety_margin_seconds=0)


@pytest.fixture
def asaas_env(monkeypatch):
    """Environment with an API key and instant retries, settings cache cleared."""
    monkeypatch.setenv("ASAAS_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("ASAAS_API_URL", TEST_API_URL)
    monkeypatch.setenv("CLIENT__RETRY_DELAY_MS", "0")
    monkeypatch.setenv("CLIENT__THROTTLE_RETRY_DELAY_MS", "0")
    monkeypatch.setenv("SYNC__INTER_BATCH_DELAY_MS", "0")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
