"""
Registry - Server Liveness Registry.

============================================================
RESPONSIBILITY
============================================================
The cluster's source of truth about which servers are serving.

- register:            announce an endpoint (full upsert)
- unregister:          withdraw an endpoint (idempotent)
- ping:                heartbeat, refreshes active_at
- find_active_servers: lazy discovery of live endpoints
- clean:               sweep endpoints that stopped heartbeating

============================================================
DESIGN PRINCIPLES
============================================================
- No in-process cache or locks: isolation belongs to the store
- Each operation is one atomic unit of work
- Store failures propagate to the caller, never retried here
- "Not found" is an affected count of 0, not an error
- Status is computed from active_at at read time
- Sweeps are triggered externally; nothing is scheduled here

============================================================
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import ClockProtocol, SystemClock
from registry.config import RegistryConfig
from registry.models import ServerRecord, server_id, validate_endpoint
from storage.database import Database
from storage.repositories.server import ServerRepository


logger = logging.getLogger(__name__)

R = TypeVar("R")


def _log_abandoned_write(task: "asyncio.Future") -> None:
    """Report the outcome of a write whose caller was cancelled."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Write failed after caller was cancelled: {error}", exc_info=error)


class ServerRegistry:
    """
    Liveness registry over a transactional store.

    The database (transaction runner) is injected; the registry
    never creates connections of its own.
    """

    def __init__(
        self,
        database: Database,
        config: Optional[RegistryConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize registry.

        Args:
            database: Transaction runner over the server table
            config: Liveness windows (defaults apply when omitted)
            clock: Time source (system UTC clock when omitted)
        """
        self._database = database
        self._config = config or RegistryConfig()
        self._clock = clock or SystemClock()

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    async def register(self, host: str, port: int) -> int:
        """
        Announce a server.

        Inserts the endpoint with init_at = active_at = now, or
        resets both timestamps when it is already registered.

        Returns:
            Rows affected as reported by the store
        """
        validate_endpoint(host, port, "register")
        key = server_id(host, port)
        now = self._clock.now()

        async def work(session: AsyncSession) -> int:
            return await ServerRepository(session).upsert(key, host, port, now)

        count = await self._write(work)
        logger.info(f"Registered server {key}")
        return count

    async def unregister(self, host: str, port: int) -> int:
        """
        Withdraw a server.

        Returns:
            1 if a record was removed, 0 if none existed
        """
        validate_endpoint(host, port, "unregister")
        key = server_id(host, port)

        async def work(session: AsyncSession) -> int:
            return await ServerRepository(session).delete_by_id(key)

        count = await self._write(work)
        if count:
            logger.info(f"Unregistered server {key}")
        else:
            logger.debug(f"Unregister of unknown server {key} had no effect")
        return count

    async def ping(self, host: str, port: int) -> int:
        """
        Heartbeat: refresh active_at of a registered server.

        An unregistered endpoint is not created; the call affects
        0 records and callers must register first.

        Returns:
            1 if the heartbeat was recorded, 0 otherwise
        """
        validate_endpoint(host, port, "ping")
        key = server_id(host, port)
        now = self._clock.now()

        async def work(session: AsyncSession) -> int:
            return await ServerRepository(session).touch(key, now)

        count = await self._write(work)
        if not count:
            logger.debug(f"Heartbeat from unregistered server {key} ignored")
        return count

    async def clean(self) -> int:
        """
        Sweep servers whose last heartbeat is at least clean_before old.

        Returns:
            Number of records removed
        """
        threshold = self._clock.now() - self._config.clean_before

        async def work(session: AsyncSession) -> int:
            return await ServerRepository(session).delete_inactive_before(threshold)

        count = await self._write(work)
        logger.info(f"Cleaned {count} inactive server(s) (active_at <= {threshold.isoformat()})")
        return count

    async def _write(self, work: Callable[[AsyncSession], Awaitable[R]]) -> R:
        # Shielded: a caller that stops waiting does not interrupt the
        # transaction, which still commits or rolls back on its own.
        task = asyncio.ensure_future(self._database.run_in_transaction(work))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_log_abandoned_write)
            raise

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    async def find_active_servers(self) -> AsyncIterator[ServerRecord]:
        """
        Lazily yield servers whose active_at is within active_timeout.

        Each call runs a fresh read-only query. The iterator is
        one-shot; every record is yielded before it finishes, and it
        ends either by exhaustion or by raising the store failure.
        """
        threshold = self._clock.now() - self._config.active_timeout
        async with self._database.transaction(read_only=True) as session:
            stream = ServerRepository(session).stream_active_since(threshold)
            async with aclosing(stream) as models:
                async for model in models:
                    yield ServerRecord.from_model(model)

    async def list_active_servers(self) -> List[ServerRecord]:
        """Collect find_active_servers() into a list."""
        return [record async for record in self.find_active_servers()]

    async def get_server(self, host: str, port: int) -> Optional[ServerRecord]:
        """Get the stored record of an endpoint, live or stale."""
        validate_endpoint(host, port, "get_server")
        key = server_id(host, port)

        async def work(session: AsyncSession) -> Optional[ServerRecord]:
            model = await ServerRepository(session).get_by_id(key)
            return ServerRecord.from_model(model) if model is not None else None

        return await self._database.run_in_transaction(work, read_only=True)
