"""
Server Liveness Repository.

============================================================
PURPOSE
============================================================
Store operations behind the server liveness registry. Every
method runs inside the caller's transaction and reports the
number of affected rows; a missing row is a count of 0, never
an error.

============================================================
DATA LIFECYCLE
============================================================
- upsert:                  insert, or reset init_at/active_at
- touch:                   refresh active_at (heartbeat)
- delete_by_id:            explicit withdrawal
- delete_inactive_before:  time-based sweep
- stream_active_since:     lazy read of live endpoints

============================================================
"""

from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage.models.server import ServerModel
from storage.repositories.base import BaseRepository


# Dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ServerRepository(BaseRepository[ServerModel]):
    """
    Repository for server liveness records.

    ============================================================
    MODELS MANAGED
    ============================================================
    - ServerModel: one row per (host, port) endpoint, keyed by
      the derived id

    ============================================================
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ServerModel, "ServerRepository")
        self._table = ServerModel.__table__

    # =========================================================
    # WRITE OPERATIONS
    # =========================================================

    async def upsert(
        self,
        server_id: str,
        host: str,
        port: int,
        now: datetime,
    ) -> int:
        """
        Insert a server or fully reset an existing one.

        On an id conflict both init_at and active_at are overwritten
        with ``now``; the previous init_at is not kept.

        Args:
            server_id: Derived key of the endpoint
            host: Endpoint host
            port: Endpoint port
            now: Registration timestamp

        Returns:
            Rows affected as reported by the store
        """
        make_insert = _UPSERT_INSERTS.get(self.dialect_name)
        if make_insert is None:
            return await self._merge(server_id, host, port, now)

        stmt = make_insert(self._table).values(
            id=server_id,
            host=host,
            port=port,
            init_at=now,
            active_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[self._table.c.id],
            set_={
                "init_at": stmt.excluded.init_at,
                "active_at": stmt.excluded.active_at,
            },
        )
        count = await self._execute_rowcount(stmt, "upsert", {"id": server_id})
        self._logger.debug(f"Upserted server {server_id} ({count} row(s))")
        return count

    async def _merge(
        self,
        server_id: str,
        host: str,
        port: int,
        now: datetime,
    ) -> int:
        """Upsert through the ORM for dialects without ON CONFLICT."""
        try:
            await self._session.merge(ServerModel(
                id=server_id,
                host=host,
                port=port,
                init_at=now,
                active_at=now,
            ))
            await self._session.flush()
        except SQLAlchemyError as e:
            self._handle_db_error(e, "upsert", {"id": server_id})
        self._logger.debug(f"Merged server {server_id}")
        return 1

    async def touch(self, server_id: str, now: datetime) -> int:
        """
        Refresh active_at of an existing server.

        No existence check is made: an unknown id updates 0 rows.
        """
        stmt = (
            update(self._table)
            .where(self._table.c.id == server_id)
            .values(active_at=now)
        )
        return await self._execute_rowcount(stmt, "touch", {"id": server_id})

    async def delete_by_id(self, server_id: str) -> int:
        """Delete a server; deleting an unknown id affects 0 rows."""
        stmt = delete(self._table).where(self._table.c.id == server_id)
        return await self._execute_rowcount(stmt, "delete_by_id", {"id": server_id})

    async def delete_inactive_before(self, threshold: datetime) -> int:
        """
        Delete every server whose last heartbeat is at or before ``threshold``.

        Returns:
            Number of rows removed
        """
        stmt = delete(self._table).where(self._table.c.active_at <= threshold)
        count = await self._execute_rowcount(
            stmt, "delete_inactive_before", {"threshold": threshold.isoformat()}
        )
        if count:
            self._logger.debug(f"Removed {count} server(s) inactive since {threshold}")
        return count

    # =========================================================
    # READ OPERATIONS
    # =========================================================

    async def get_by_id(self, server_id: str) -> Optional[ServerModel]:
        """Get a server by its derived id."""
        stmt = select(ServerModel).where(ServerModel.id == server_id)
        return await self._execute_scalar(stmt, "get_by_id")

    def stream_active_since(self, threshold: datetime) -> AsyncIterator[ServerModel]:
        """
        Lazily iterate servers whose active_at is at or after ``threshold``.

        Rows are ordered by id.
        """
        stmt = (
            select(ServerModel)
            .where(ServerModel.active_at >= threshold)
            .order_by(ServerModel.id)
        )
        return self._stream(stmt, "stream_active_since")

    async def count(self) -> int:
        """Count all stored servers, live or stale."""
        return await self._count()
