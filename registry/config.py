"""
Registry - Configuration.

============================================================
WINDOWS
============================================================
- active_timeout: a server whose last heartbeat is younger
  than this is reported by discovery
- clean_before: a server whose last heartbeat is at least this
  old is removed by a sweep

clean_before must be >= active_timeout, otherwise a server
could be reported live and swept in the same instant.

Configuration can be loaded from:
- Default values
- Environment variables
- A .env file (python-dotenv)

============================================================
"""

import logging
import math
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

from storage.database import DatabaseConfig


logger = logging.getLogger(__name__)


DEFAULT_ACTIVE_TIMEOUT_MINUTES = 1
DEFAULT_CLEAN_BEFORE_MINUTES = 10
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./registry.db"


@dataclass
class RegistryConfig:
    """Liveness windows and store settings."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    active_timeout: timedelta = timedelta(minutes=DEFAULT_ACTIVE_TIMEOUT_MINUTES)
    clean_before: timedelta = timedelta(minutes=DEFAULT_CLEAN_BEFORE_MINUTES)

    def __post_init__(self) -> None:
        """Validate windows."""
        if self.active_timeout <= timedelta(0):
            raise ValueError("active_timeout must be positive")
        if self.clean_before <= timedelta(0):
            raise ValueError("clean_before must be positive")
        if self.clean_before < self.active_timeout:
            raise ValueError(
                f"clean_before ({self.clean_before}) must be >= "
                f"active_timeout ({self.active_timeout})"
            )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "RegistryConfig":
        """
        Build configuration from environment variables.

        Variables:
            REGISTRY_DATABASE_URL (falls back to DATABASE_URL)
            REGISTRY_ACTIVE_TIMEOUT_MINUTES
            REGISTRY_CLEAN_BEFORE_MINUTES
            REGISTRY_DB_POOL_SIZE
            REGISTRY_DB_MAX_OVERFLOW
            REGISTRY_SQL_ECHO

        Args:
            env_file: Optional .env path; values already in the
                environment take precedence

        Raises:
            ValueError: Malformed or inconsistent values
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        url = os.getenv("REGISTRY_DATABASE_URL") or os.getenv("DATABASE_URL")
        if not url:
            url = DEFAULT_DATABASE_URL
            logger.warning(f"REGISTRY_DATABASE_URL not set, using default: {url}")

        database = DatabaseConfig(
            url=url,
            pool_size=_env_int("REGISTRY_DB_POOL_SIZE", 10),
            max_overflow=_env_int("REGISTRY_DB_MAX_OVERFLOW", 20),
            echo=_env_bool("REGISTRY_SQL_ECHO", False),
        )

        return cls(
            database=database,
            active_timeout=_env_minutes(
                "REGISTRY_ACTIVE_TIMEOUT_MINUTES", DEFAULT_ACTIVE_TIMEOUT_MINUTES
            ),
            clean_before=_env_minutes(
                "REGISTRY_CLEAN_BEFORE_MINUTES", DEFAULT_CLEAN_BEFORE_MINUTES
            ),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_minutes(name: str, default: float) -> timedelta:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return timedelta(minutes=default)
    try:
        minutes = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(minutes):
        raise ValueError(f"{name} must be finite, got {raw!r}")
    try:
        return timedelta(minutes=minutes)
    except OverflowError:
        raise ValueError(f"{name} is out of range, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
