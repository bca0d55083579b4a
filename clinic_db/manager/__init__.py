"""
Async SQLite core of the clinic backend.

Public API:

    from clinic_db.manager import Manager, DatabaseConfig

    manager = Manager(DatabaseConfig.from_env())

    row = await manager.query_one("SELECT * FROM medicines WHERE id = ?", (1,))
    await manager.execute("UPDATE medicines SET stock = stock - 1 WHERE id = ?", (1,))

    async with manager.transaction() as txn:
        await txn.execute("INSERT INTO appointments (patient_id, date) VALUES (?, ?)", (1, "2026-01-05"))

The lower-level pieces (ManagerBase, MigrationRunner, the retry helpers)
are also exported for custom integrations, but the recommended entry
point is `Manager`, built once by `clinic_db.bootstrap`.
"""

from .manager import Manager            # Query executor and transaction coordinator
from .manager_base import ManagerBase    # Connection state machine

from .transaction import Transaction     # Transaction context manager

from .migrations import MigrationRunner

from .config import DatabaseConfig

from .retry import (
    RetryPolicy,
    retry,
    is_busy_error,
)

from .exceptions import (
    DatabaseManagerError,
    ConfigError,
    OpenError,
    MigrationError,
    QueryError,
    BusyError,
    ExhaustedRetriesError,
    TransactionError,
    NotFoundError,
)

from .types import (
    ConnectionState,
    ExecuteResult,
    Statement,
    QueryParams,
    QueryResult,
    Row,
)
DatabaseManager = Manager

__all__ = [
    # Main entry points
    "Manager",
    "DatabaseManager",
    "Transaction",
    "DatabaseConfig",

    # Advanced / extension points
    "ManagerBase",
    "MigrationRunner",
    "RetryPolicy",
    "retry",
    "is_busy_error",

    # Exceptions
    "DatabaseManagerError",
    "ConfigError",
    "OpenError",
    "MigrationError",
    "QueryError",
    "BusyError",
    "ExhaustedRetriesError",
    "TransactionError",
    "NotFoundError",

    # Types
    "ConnectionState",
    "ExecuteResult",
    "Statement",
    "QueryParams",
    "QueryResult",
    "Row",
]
