"""
Registry - Data Model.

============================================================
PURPOSE
============================================================
The domain view of a registered server and the derivation of
its key.

============================================================
KEY DERIVATION
============================================================
id = "{host}_{port}"

The port is an integer and always the last "_"-separated
segment, so splitting on the last "_" recovers (host, port)
even when the host itself contains underscores. Two distinct
endpoints therefore never share an id.

============================================================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Tuple

from core.clock import ensure_utc, to_iso8601
from storage.repositories.exceptions import ValidationError


KEY_SEPARATOR = "_"
MIN_PORT = 1
MAX_PORT = 65535


def server_id(host: str, port: int) -> str:
    """Derive the primary key of an endpoint."""
    return f"{host}{KEY_SEPARATOR}{port}"


def parse_server_id(value: str) -> Tuple[str, int]:
    """
    Recover ``(host, port)`` from a derived key.

    Raises:
        ValueError: If the key has no separator or a non-numeric port
    """
    host, separator, port = value.rpartition(KEY_SEPARATOR)
    if not separator or not host or not port.isdigit():
        raise ValueError(f"Malformed server id: {value!r}")
    return host, int(port)


def validate_endpoint(host: Any, port: Any, operation: str) -> None:
    """
    Reject endpoints that cannot be registered.

    Raises:
        ValidationError: Empty host or port outside 1..65535
    """
    if not isinstance(host, str) or not host.strip():
        raise ValidationError(
            repository_name="ServerRegistry",
            operation=operation,
            field="host",
            reason="must be a non-empty string",
        )
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(
            repository_name="ServerRegistry",
            operation=operation,
            field="port",
            reason=f"must be an integer, got {type(port).__name__}",
        )
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValidationError(
            repository_name="ServerRegistry",
            operation=operation,
            field="port",
            reason=f"must be in {MIN_PORT}..{MAX_PORT}, got {port}",
        )


@dataclass(frozen=True)
class ServerRecord:
    """A registered server as seen by discovery."""
    host: str
    port: int
    init_at: datetime
    active_at: datetime

    @property
    def id(self) -> str:
        return server_id(self.host, self.port)

    @classmethod
    def from_model(cls, model: Any) -> "ServerRecord":
        """Build from a ServerModel row."""
        return cls(
            host=model.host,
            port=model.port,
            init_at=ensure_utc(model.init_at),
            active_at=ensure_utc(model.active_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serialisable dictionary."""
        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "init_at": to_iso8601(self.init_at),
            "active_at": to_iso8601(self.active_at),
        }
