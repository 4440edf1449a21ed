"""
Shared fixtures for registry tests.

Every test gets its own SQLite database file (aiosqlite) in
tmp_path and a MockClock pinned to a fixed instant.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from core.clock import MockClock
from registry.config import RegistryConfig
from registry.service import ServerRegistry
from storage.database import Database, DatabaseConfig


START_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path):
    """URL of a fresh SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}"


@pytest.fixture
def start_time():
    """Instant at which every test clock starts."""
    return START_TIME


@pytest.fixture
def clock(start_time):
    """Mock clock starting at START_TIME."""
    return MockClock(start_time)


@pytest.fixture
def registry_config(database_url):
    """Five minute active window, thirty minute clean window."""
    return RegistryConfig(
        database=DatabaseConfig(url=database_url),
        active_timeout=timedelta(minutes=5),
        clean_before=timedelta(minutes=30),
    )


@pytest_asyncio.fixture
async def database(registry_config):
    """Database with the server table created."""
    db = Database(registry_config.database)
    await db.create_all_tables()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def registry(database, registry_config, clock):
    """Registry over the test database and mock clock."""
    return ServerRegistry(database, registry_config, clock)
