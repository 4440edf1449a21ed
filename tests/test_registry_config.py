"""
Tests for registry configuration and the data model helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from registry.config import RegistryConfig
from registry.models import (
    ServerRecord,
    parse_server_id,
    server_id,
    validate_endpoint,
)
from storage.repositories.exceptions import ValidationError


ENV_VARS = (
    "REGISTRY_DATABASE_URL",
    "DATABASE_URL",
    "REGISTRY_ACTIVE_TIMEOUT_MINUTES",
    "REGISTRY_CLEAN_BEFORE_MINUTES",
    "REGISTRY_DB_POOL_SIZE",
    "REGISTRY_DB_MAX_OVERFLOW",
    "REGISTRY_SQL_ECHO",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without any registry variables, restored afterwards.

    Each variable is set before being deleted so monkeypatch records its
    original state; values loaded by python-dotenv are then undone too.
    """
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


# ============================================================
# CONFIG TESTS
# ============================================================

class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_defaults(self):
        config = RegistryConfig()

        assert config.active_timeout == timedelta(minutes=1)
        assert config.clean_before == timedelta(minutes=10)
        assert config.clean_before >= config.active_timeout

    def test_clean_before_shorter_than_active_timeout_rejected(self):
        """Test that a sweep window inside the discovery window is refused."""
        with pytest.raises(ValueError, match="clean_before"):
            RegistryConfig(
                active_timeout=timedelta(minutes=10),
                clean_before=timedelta(minutes=5),
            )

    def test_equal_windows_allowed(self):
        config = RegistryConfig(
            active_timeout=timedelta(minutes=5),
            clean_before=timedelta(minutes=5),
        )

        assert config.clean_before == config.active_timeout

    @pytest.mark.parametrize("field", ["active_timeout", "clean_before"])
    def test_non_positive_window_rejected(self, field):
        with pytest.raises(ValueError):
            RegistryConfig(**{field: timedelta(0)})

    def test_from_env(self, clean_env, tmp_path):
        """Test that windows and store settings are read from the environment."""
        clean_env.chdir(tmp_path)
        clean_env.setenv("REGISTRY_DATABASE_URL", "postgresql+asyncpg://u:p@db/registry")
        clean_env.setenv("REGISTRY_ACTIVE_TIMEOUT_MINUTES", "2")
        clean_env.setenv("REGISTRY_CLEAN_BEFORE_MINUTES", "15")
        clean_env.setenv("REGISTRY_DB_POOL_SIZE", "4")
        clean_env.setenv("REGISTRY_SQL_ECHO", "true")

        config = RegistryConfig.from_env()

        assert config.database.url == "postgresql+asyncpg://u:p@db/registry"
        assert config.database.pool_size == 4
        assert config.database.echo is True
        assert config.active_timeout == timedelta(minutes=2)
        assert config.clean_before == timedelta(minutes=15)

    def test_from_env_falls_back_to_database_url(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)
        clean_env.setenv("DATABASE_URL", "sqlite+aiosqlite:///fallback.db")

        config = RegistryConfig.from_env()

        assert config.database.url == "sqlite+aiosqlite:///fallback.db"

    def test_from_env_file(self, clean_env, tmp_path):
        """Test that a .env file supplies missing variables."""
        env_file = tmp_path / "registry.env"
        env_file.write_text(
            "REGISTRY_DATABASE_URL=sqlite+aiosqlite:///from-file.db\n"
            "REGISTRY_ACTIVE_TIMEOUT_MINUTES=3\n"
            "REGISTRY_CLEAN_BEFORE_MINUTES=30\n"
        )

        config = RegistryConfig.from_env(str(env_file))

        assert config.database.url == "sqlite+aiosqlite:///from-file.db"
        assert config.active_timeout == timedelta(minutes=3)

    def test_from_env_malformed_number(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)
        clean_env.setenv("REGISTRY_ACTIVE_TIMEOUT_MINUTES", "soon")

        with pytest.raises(ValueError, match="REGISTRY_ACTIVE_TIMEOUT_MINUTES"):
            RegistryConfig.from_env()

    @pytest.mark.parametrize("value", ["inf", "nan", "1e300"])
    def test_from_env_unrepresentable_window(self, clean_env, tmp_path, value):
        """Test that infinite, NaN and overflowing windows raise ValueError."""
        clean_env.chdir(tmp_path)
        clean_env.setenv("REGISTRY_CLEAN_BEFORE_MINUTES", value)

        with pytest.raises(ValueError, match="REGISTRY_CLEAN_BEFORE_MINUTES"):
            RegistryConfig.from_env()


# ============================================================
# KEY DERIVATION TESTS
# ============================================================

class TestServerId:
    """Tests for id derivation."""

    def test_server_id_format(self):
        assert server_id("10.0.0.1", 8080) == "10.0.0.1_8080"

    def test_parse_round_trip_with_underscore_host(self):
        """Test that a host containing the separator is still recovered."""
        key = server_id("node_a_1", 80)

        assert parse_server_id(key) == ("node_a_1", 80)

    def test_underscore_hosts_do_not_collide(self):
        assert server_id("a_1", 2) != server_id("a", 12)

    @pytest.mark.parametrize("value", ["nohost", "_8080", "host_", "host_port"])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_server_id(value)

    def test_validate_endpoint_accepts_bounds(self):
        validate_endpoint("h", 1, "register")
        validate_endpoint("h", 65535, "register")

    def test_validate_endpoint_reports_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_endpoint("h", 70000, "ping")

        assert exc_info.value.field == "port"
        assert exc_info.value.operation == "ping"


class TestServerRecord:
    """Tests for ServerRecord."""

    def test_to_dict(self):
        at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        record = ServerRecord(host="10.0.0.1", port=8080, init_at=at, active_at=at)

        assert record.to_dict() == {
            "id": "10.0.0.1_8080",
            "host": "10.0.0.1",
            "port": 8080,
            "init_at": "2026-01-01T12:00:00+00:00",
            "active_at": "2026-01-01T12:00:00+00:00",
        }
