from typing import Optional


class DatabaseManagerError(Exception):
    """Base exception for the clinic database core."""
    pass

class ConfigError(DatabaseManagerError):
    """Raised when configuration values cannot be parsed."""
    pass

class OpenError(DatabaseManagerError):
    """Raised when the database handle cannot be created."""
    pass

class MigrationError(DatabaseManagerError):
    """Raised when a migration file fails to apply."""

    def __init__(self, message: str, migration: Optional[str] = None) -> None:
        super().__init__(message)
        self.migration = migration

class QueryError(DatabaseManagerError):
    """Raised when the engine reports a failure while running a statement."""

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.sql = sql

class BusyError(QueryError):
    """Raised when the database file is locked by another writer.

    Inside a transaction ``statement_index`` is the position of the statement
    that hit the lock.
    """

    def __init__(self, message: str, sql: Optional[str] = None,
                 statement_index: Optional[int] = None) -> None:
        super().__init__(message, sql)
        self.statement_index = statement_index

class ExhaustedRetriesError(BusyError):
    """Raised when a busy operation is still failing after its retry budget."""

    def __init__(self, message: str, sql: Optional[str] = None, attempts: int = 0) -> None:
        super().__init__(message, sql)
        self.attempts = attempts

class TransactionError(QueryError):
    """Raised when transaction operations fail."""

    def __init__(self, message: str, sql: Optional[str] = None,
                 statement_index: Optional[int] = None) -> None:
        super().__init__(message, sql)
        self.statement_index = statement_index

class NotFoundError(DatabaseManagerError):
    """Raised by higher layers when a lookup yields no row."""
    pass
