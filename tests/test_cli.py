"""
Tests for the registry CLI.

Each test drives main() against a SQLite file in tmp_path.
"""

import json
import logging

import pytest

from registry.cli import create_parser, main


@pytest.fixture(autouse=True)
def restore_root_logging():
    """main() installs its own root handler; put the original ones back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Point the CLI at a fresh database through the environment."""
    for name in ("DATABASE_URL", "REGISTRY_ACTIVE_TIMEOUT_MINUTES", "REGISTRY_CLEAN_BEFORE_MINUTES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REGISTRY_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    assert main(["init-db"]) == 0
    return tmp_path


class TestParser:
    """Tests for argument parsing."""

    def test_endpoint_commands_take_host_and_port(self):
        args = create_parser().parse_args(["register", "10.0.0.1", "8080"])

        assert args.command == "register"
        assert args.host == "10.0.0.1"
        assert args.port == 8080

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_port_must_be_numeric(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["ping", "10.0.0.1", "http"])


class TestCommands:
    """Tests for CLI commands."""

    def test_register_list_unregister(self, cli_env, capsys):
        """Test the lifecycle of one node through the CLI."""
        capsys.readouterr()

        assert main(["register", "10.0.0.1", "8080"]) == 0
        assert main(["list", "--format", "json"]) == 0
        output = capsys.readouterr().out
        listing = json.loads(output[output.index("["):])

        assert [s["id"] for s in listing] == ["10.0.0.1_8080"]

        assert main(["unregister", "10.0.0.1", "8080"]) == 0
        assert main(["list"]) == 0
        assert "0 active server(s)" in capsys.readouterr().out

    def test_ping_unregistered(self, cli_env, capsys):
        capsys.readouterr()

        assert main(["ping", "10.0.0.1", "8080"]) == 0
        assert "is not registered" in capsys.readouterr().out

    def test_clean_reports_count(self, cli_env, capsys):
        capsys.readouterr()

        assert main(["clean"]) == 0
        assert "Removed 0 inactive server(s)" in capsys.readouterr().out

    def test_invalid_port_fails(self, cli_env, capsys):
        """Test that a rejected endpoint exits with status 1."""
        capsys.readouterr()

        assert main(["register", "10.0.0.1", "0"]) == 1
        assert "port" in capsys.readouterr().err

    def test_database_url_override(self, cli_env, tmp_path, capsys):
        """Test that --database-url takes precedence over the environment."""
        other = f"sqlite+aiosqlite:///{tmp_path / 'other.db'}"

        assert main(["--database-url", other, "init-db"]) == 0
        assert main(["--database-url", other, "register", "10.0.0.2", "9000"]) == 0
        capsys.readouterr()
        assert main(["list"]) == 0

        assert "0 active server(s)" in capsys.readouterr().out

    def test_unrepresentable_window_fails(self, cli_env, monkeypatch, capsys):
        """Test that an infinite window is reported instead of crashing."""
        monkeypatch.setenv("REGISTRY_CLEAN_BEFORE_MINUTES", "inf")
        capsys.readouterr()

        assert main(["clean"]) == 1
        assert "REGISTRY_CLEAN_BEFORE_MINUTES" in capsys.readouterr().err
