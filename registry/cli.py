"""
Registry - CLI.

============================================================
RESPONSIBILITY
============================================================
Operations tooling for the liveness registry.

- Creates the schema
- Registers, pings and withdraws endpoints by hand
- Lists live endpoints
- Runs one sweep (schedule it with cron / systemd timers)

============================================================
USAGE
============================================================
python -m registry init-db
python -m registry register 10.0.0.1 8080
python -m registry ping 10.0.0.1 8080
python -m registry list --format json
python -m registry clean
python -m registry --database-url postgresql+asyncpg://... list

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from registry.config import RegistryConfig
from registry.service import ServerRegistry
from storage.database import Database
from storage.repositories.exceptions import RepositoryException


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Set up root logging on stderr.

    Args:
        level: Log level
        log_format: Output format (json or text)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="server-registry",
        description="Server liveness registry operations",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        metavar="PATH",
        help="Load environment variables from this .env file",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="Override REGISTRY_DATABASE_URL",
    )

    logging_group = parser.add_argument_group("Logging Options")
    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="text",
        help="Logging format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the server table")

    for name, help_text in (
        ("register", "Register (or re-register) a server"),
        ("unregister", "Remove a server"),
        ("ping", "Record a heartbeat for a server"),
    ):
        endpoint_parser = subparsers.add_parser(name, help=help_text)
        endpoint_parser.add_argument("host", type=str)
        endpoint_parser.add_argument("port", type=int)

    list_parser = subparsers.add_parser("list", help="List active servers")
    list_parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        dest="output_format",
    )

    subparsers.add_parser("clean", help="Remove servers that stopped heartbeating")

    return parser


def build_config(args: argparse.Namespace) -> RegistryConfig:
    """Build configuration from environment and CLI overrides."""
    config = RegistryConfig.from_env(args.env_file)
    if args.database_url:
        config = replace(config, database=replace(config.database, url=args.database_url))
    return config


# ============================================================
# COMMANDS
# ============================================================

async def run_command(args: argparse.Namespace, config: RegistryConfig) -> None:
    """Execute one subcommand against the configured store."""
    database = Database(config.database)
    registry = ServerRegistry(database, config)

    try:
        if args.command == "init-db":
            await database.create_all_tables()
            print("Server table ready")

        elif args.command == "register":
            await registry.register(args.host, args.port)
            print(f"Registered {args.host}:{args.port}")

        elif args.command == "unregister":
            count = await registry.unregister(args.host, args.port)
            print(f"Unregistered {args.host}:{args.port} ({count} record(s) removed)")

        elif args.command == "ping":
            count = await registry.ping(args.host, args.port)
            if count:
                print(f"Heartbeat recorded for {args.host}:{args.port}")
            else:
                print(f"{args.host}:{args.port} is not registered")

        elif args.command == "list":
            records = await registry.list_active_servers()
            if args.output_format == "json":
                print(json.dumps([r.to_dict() for r in records], indent=2))
            else:
                for r in records:
                    print(f"{r.host}:{r.port}\tinit_at={r.init_at.isoformat()}\tactive_at={r.active_at.isoformat()}")
                print(f"{len(records)} active server(s)")

        elif args.command == "clean":
            count = await registry.clean()
            print(f"Removed {count} inactive server(s)")

    finally:
        await database.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_format)

    try:
        config = build_config(args)
        asyncio.run(run_command(args, config))
    except (RepositoryException, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0
