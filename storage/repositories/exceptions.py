"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
Defines repository-specific exceptions for proper error handling
and propagation. All database errors are caught and wrapped
in these exceptions, keeping the driver error as __cause__.

============================================================
TAXONOMY
============================================================
RepositoryException (base)
├── StoreUnavailableError     connectivity / transaction manager
├── ConstraintViolationError  integrity constraint violated
├── QueryError                statement failed for another reason
├── TransactionError          commit failed
└── ValidationError           rejected before reaching the store

A missing record is NOT an error: delete/update operations
report an affected count of 0 instead.

============================================================
"""

from typing import Optional

from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError as SQLAlchemyIntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as SQLAlchemyTimeoutError,
)


class RepositoryException(Exception):
    """
    Base exception for all repository operations.

    All repository-specific exceptions inherit from this class.
    Callers can catch this for generic error handling.
    """

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return f"[{self.repository_name}] {self.operation}: {self.message}"


class StoreUnavailableError(RepositoryException):
    """
    Raised when the store cannot be reached or the transaction
    manager fails (connection refused, pool timeout, dropped link).
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Store unavailable: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class ConstraintViolationError(RepositoryException):
    """
    Raised when database integrity constraints are violated.

    Writes are upserts, idempotent deletes and updates, so this
    only surfaces when the store itself is inconsistent.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Integrity constraint violated: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class QueryError(RepositoryException):
    """Raised when a statement fails for any other reason."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        query_description: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Query failed ({query_description}): {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={
                "query_description": query_description,
                "original_error": original_error
            }
        )


class TransactionError(RepositoryException):
    """Raised when a commit fails."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        phase: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Transaction {phase} failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"phase": phase, "original_error": original_error}
        )
        self.phase = phase


class ValidationError(RepositoryException):
    """
    Raised when input is rejected before touching the store.

    Use for an empty host or an out-of-range port.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        field: str,
        reason: str
    ) -> None:
        super().__init__(
            message=f"Validation failed for {field}: {reason}",
            repository_name=repository_name,
            operation=operation,
            details={"field": field, "reason": reason}
        )
        self.field = field
        self.reason = reason


_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    SQLAlchemyTimeoutError,
)


def classify_database_error(
    error: SQLAlchemyError,
    repository_name: str,
    operation: str,
    phase: Optional[str] = None,
) -> RepositoryException:
    """
    Map a SQLAlchemy error onto the repository taxonomy.

    Args:
        error: The original SQLAlchemy exception
        repository_name: Component reporting the failure
        operation: Operation that failed
        phase: Transaction phase ("commit") when not inside a statement

    Returns:
        The repository exception to raise (caller chains the cause)
    """
    if isinstance(error, _UNAVAILABLE_ERRORS):
        return StoreUnavailableError(
            repository_name=repository_name,
            operation=operation,
            original_error=str(error)
        )

    if isinstance(error, SQLAlchemyIntegrityError):
        return ConstraintViolationError(
            repository_name=repository_name,
            operation=operation,
            original_error=str(error)
        )

    if phase is not None:
        return TransactionError(
            repository_name=repository_name,
            operation=operation,
            phase=phase,
            original_error=str(error)
        )

    return QueryError(
        repository_name=repository_name,
        operation=operation,
        query_description=operation,
        original_error=str(error)
    )
