from .manager import (
    Manager,
    DatabaseManager,
    DatabaseConfig,
    Transaction,
    ConnectionState,
    ExecuteResult,
    Statement,
    DatabaseManagerError,
    OpenError,
    MigrationError,
    QueryError,
    BusyError,
    ExhaustedRetriesError,
    TransactionError,
    NotFoundError,
)
from .execution_async import (
    try_query,
    Fetch,
    FetchAll,
    FetchOne,
    FetchNone,
    ReturnType
)
from .bootstrap import (
    create_manager,
    init_database,
    database
)
from .lifecycle import GracefulShutdown

__all__ = (
    "Manager",
    "DatabaseManager",
    "DatabaseConfig",
    "Transaction",
    "ConnectionState",
    "ExecuteResult",
    "Statement",
    "DatabaseManagerError",
    "OpenError",
    "MigrationError",
    "QueryError",
    "BusyError",
    "ExhaustedRetriesError",
    "TransactionError",
    "NotFoundError",
    "try_query",
    "create_manager",
    "init_database",
    "database",
    "GracefulShutdown",
)
