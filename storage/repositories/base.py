"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Provides common functionality for all repositories including:
- Session management patterns
- Error handling wrappers
- Common statement execution
- Logging setup

============================================================
USAGE
============================================================
All domain repositories inherit from BaseRepository.
The session is injected via the constructor and belongs to a
transaction opened by storage.database.Database; repositories
never commit or roll back themselves.

============================================================
"""

import logging
from abc import ABC
from typing import Any, AsyncIterator, Generic, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage.models.base import Base
from storage.repositories.exceptions import classify_database_error


# Type variable for ORM model
T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base class for all repositories.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    - Wraps database errors in repository exceptions
    - Manages logging for all operations
    - Enforces session handling patterns

    ============================================================
    USAGE
    ============================================================
    class MyRepository(BaseRepository[MyModel]):
        def __init__(self, session: AsyncSession):
            super().__init__(session, MyModel, "MyRepository")

    ============================================================
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: Type[T],
        repository_name: str
    ) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session (injected)
            model_class: The ORM model class this repository manages
            repository_name: Name for logging and error messages
        """
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def dialect_name(self) -> str:
        """Name of the SQL dialect behind the session ("postgresql", "sqlite", ...)."""
        return self._session.get_bind().dialect.name

    # =========================================================
    # PROTECTED HELPER METHODS
    # =========================================================

    def _handle_db_error(
        self,
        error: SQLAlchemyError,
        operation: str,
        context: Optional[dict] = None
    ) -> None:
        """
        Handle database errors by wrapping in repository exceptions.

        Args:
            error: The original exception
            operation: Name of the operation that failed
            context: Additional context for logging

        Raises:
            RepositoryException: Always raises appropriate exception
        """
        context = context or {}
        self._logger.error(
            f"Database error in {operation}: {error}",
            extra={"context": context},
            exc_info=True
        )
        raise classify_database_error(
            error, self._repository_name, operation
        ) from error

    async def _execute(
        self,
        stmt: Any,
        operation: str,
        context: Optional[dict] = None
    ) -> Any:
        """
        Execute a statement and return the raw result.

        Args:
            stmt: SQLAlchemy statement
            operation: Operation name for logging / errors
            context: Additional context for logging

        Returns:
            The SQLAlchemy result object
        """
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation, context)
            raise  # Never reached, but satisfies type checker

    async def _execute_rowcount(
        self,
        stmt: Any,
        operation: str,
        context: Optional[dict] = None
    ) -> int:
        """Execute a DML statement and return the affected row count."""
        result = await self._execute(stmt, operation, context)
        return max(result.rowcount or 0, 0)

    async def _execute_scalar(self, stmt: Any, operation: str = "query_scalar") -> Optional[T]:
        """Execute a select statement and return a single entity or None."""
        result = await self._execute(stmt, operation)
        return result.scalar_one_or_none()

    async def _stream(self, stmt: Any, operation: str = "stream") -> AsyncIterator[T]:
        """
        Lazily iterate the entities of a select statement.

        Rows are fetched from a server-side cursor as the caller
        consumes them; errors at any point are wrapped.
        """
        try:
            result = await self._session.stream(stmt)
            try:
                async for entity in result.scalars():
                    yield entity
            finally:
                await result.close()
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)

    async def _count(self) -> int:
        """Count all entities."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._execute(stmt, "count")
        return result.scalar() or 0
