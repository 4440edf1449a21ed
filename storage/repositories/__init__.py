"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
The Repository Layer is the ONLY gateway to persistent storage.
All database access MUST go through repository classes.

============================================================
ARCHITECTURE PRINCIPLES
============================================================
1. Session Injection: Sessions are injected, not created internally
2. Explicit Methods: No generic 'execute', clear method names
3. Transactions Belong To The Caller: repositories never commit
4. Exception Handling: All DB errors wrapped in repository exceptions

============================================================
USAGE
============================================================

    from storage.database import Database
    from storage.repositories import ServerRepository

    async def withdraw(database: Database, server_id: str) -> int:
        async with database.transaction() as session:
            return await ServerRepository(session).delete_by_id(server_id)

============================================================
"""

# =============================================================
# EXCEPTIONS
# =============================================================
from storage.repositories.exceptions import (
    RepositoryException,
    StoreUnavailableError,
    ConstraintViolationError,
    QueryError,
    TransactionError,
    ValidationError,
    classify_database_error,
)

# =============================================================
# REPOSITORIES
# =============================================================
from storage.repositories.base import BaseRepository
from storage.repositories.server import ServerRepository


__all__ = [
    # Exceptions
    "RepositoryException",
    "StoreUnavailableError",
    "ConstraintViolationError",
    "QueryError",
    "TransactionError",
    "ValidationError",
    "classify_database_error",
    # Repositories
    "BaseRepository",
    "ServerRepository",
]
