"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Manages database connections, sessions and transaction
boundaries for the registry.

- Provides connection pooling
- Runs units of work atomically (read-write or read-only)
- Handles connection lifecycle
- Async by default

============================================================
TRANSACTIONS
============================================================
    async with database.transaction() as session:
        ...                      # commits on success

    async with database.transaction(read_only=True) as session:
        ...                      # never commits

    count = await database.run_in_transaction(work, read_only=False)

Any failure rolls the transaction back and propagates. Raw
SQLAlchemy errors are translated into repository exceptions;
nothing is retried.

============================================================
DATABASE REQUIREMENTS
============================================================
- PostgreSQL (asyncpg) in production
- SQLite (aiosqlite) for development and tests

============================================================
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storage.models import Base
from storage.repositories.exceptions import (
    RepositoryException,
    classify_database_error,
)


logger = logging.getLogger(__name__)

R = TypeVar("R")

COMPONENT_NAME = "Database"


# =============================================================
# CONFIGURATION
# =============================================================

@dataclass
class DatabaseConfig:
    """
    Connection settings.

    Pool settings are ignored for SQLite, whose async driver
    manages its own pool.
    """
    url: str = "sqlite+aiosqlite:///./registry.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout_seconds: int = 30
    pool_recycle_seconds: int = 1800
    echo: bool = False

    def __post_init__(self) -> None:
        """Validate pool settings."""
        if not self.url:
            raise ValueError("database url must not be empty")
        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        if self.max_overflow < 0:
            raise ValueError("max_overflow must be >= 0")

    @property
    def backend_name(self) -> str:
        """Backend part of the URL ("postgresql", "sqlite", ...)."""
        return make_url(self.url).get_backend_name()

    @property
    def safe_url(self) -> str:
        """URL with the password masked, for logging."""
        return make_url(self.url).render_as_string(hide_password=True)


# =============================================================
# DATABASE
# =============================================================

class Database:
    """
    Async engine, session factory and transaction runner.

    The registry depends only on ``transaction`` /
    ``run_in_transaction``; any object offering the same two
    methods can stand in for it.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine = self._create_engine(config)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @staticmethod
    def _create_engine(config: DatabaseConfig) -> AsyncEngine:
        logger.info(f"Creating database engine for: {config.safe_url}")

        options = {"echo": config.echo}
        if config.backend_name != "sqlite":
            options.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout_seconds,
                pool_recycle=config.pool_recycle_seconds,
                pool_pre_ping=True,
            )

        engine = create_async_engine(config.url, **options)

        @event.listens_for(engine.sync_engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            logger.debug("Database connection established")

        return engine

    # ---------------------------------------------------------
    # TRANSACTIONS
    # ---------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, read_only: bool = False) -> AsyncIterator[AsyncSession]:
        """
        Open a unit of work.

        Read-write transactions commit when the block exits cleanly.
        Read-only transactions are always rolled back and, on
        PostgreSQL, are declared READ ONLY to the server.

        Args:
            read_only: Whether the unit of work only reads

        Yields:
            The session bound to the transaction
        """
        session = self._session_factory()
        try:
            if read_only and self._config.backend_name == "postgresql":
                await session.execute(text("SET TRANSACTION READ ONLY"))
            yield session
            if read_only:
                await session.rollback()
            else:
                await session.commit()
                logger.debug("Database transaction committed")
        except RepositoryException:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database transaction failed, rolling back: {e}")
            await session.rollback()
            raise classify_database_error(
                e,
                COMPONENT_NAME,
                "transaction",
                phase="commit",
            ) from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def run_in_transaction(
        self,
        work: Callable[[AsyncSession], Awaitable[R]],
        read_only: bool = False,
    ) -> R:
        """
        Await ``work(session)`` atomically and return its result.

        Args:
            work: Coroutine function receiving the transaction's session
            read_only: Whether the unit of work only reads

        Returns:
            Whatever ``work`` returns
        """
        async with self.transaction(read_only=read_only) as session:
            return await work(session)

    # ---------------------------------------------------------
    # LIFECYCLE
    # ---------------------------------------------------------

    async def verify_connection(self) -> bool:
        """
        Verify the database answers a trivial query.

        Raises:
            StoreUnavailableError: If the connection fails
        """
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            raise classify_database_error(e, COMPONENT_NAME, "verify_connection") from e
        logger.info("Database connection verified successfully")
        return True

    async def create_all_tables(self) -> None:
        """Create the registry tables if they do not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise classify_database_error(e, COMPONENT_NAME, "create_all_tables") from e
        logger.info("Database tables created successfully")

    async def drop_all_tables(self) -> None:
        """Drop the registry tables."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to drop database tables: {e}")
            raise classify_database_error(e, COMPONENT_NAME, "drop_all_tables") from e
        logger.warning("Database tables dropped")

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self._engine.dispose()
        logger.debug("Database engine disposed")
