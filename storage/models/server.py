"""
Server ORM Model.

============================================================
PURPOSE
============================================================
Persisted shape of the liveness registry: one row per
announced (host, port) endpoint.

============================================================
TABLE
============================================================
server
- id         "{host}_{port}", primary key
- host       network address / hostname
- port       listening port
- init_at    set on (re-)registration
- active_at  refreshed by every heartbeat

There is no status column: alive / stale / deleted is derived
from active_at at query time.

============================================================
"""

from datetime import datetime

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base


class ServerModel(Base):
    """One registered server endpoint."""

    __tablename__ = "server"

    id: Mapped[str] = mapped_column(
        String(300),
        primary_key=True,
        comment="Derived key {host}_{port}"
    )

    host: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Network address or hostname"
    )

    port: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Listening port"
    )

    init_at: Mapped[datetime] = mapped_column(
        nullable=False,
        comment="Registration timestamp (UTC)"
    )

    active_at: Mapped[datetime] = mapped_column(
        nullable=False,
        comment="Last heartbeat timestamp (UTC)"
    )

    __table_args__ = (
        UniqueConstraint("host", "port", name="uq_server_host_port"),
        Index("ix_server_active_at", "active_at"),
    )

    def __repr__(self) -> str:
        return f"<ServerModel(id={self.id!r}, active_at={self.active_at})>"
