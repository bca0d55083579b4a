from __future__ import annotations
from typing import Optional, Type, TYPE_CHECKING
from logging import Logger, getLogger as logging_getLogger
from .types import ExecuteResult, QueryParams, QueryResult, Row
from .exceptions import TransactionError, BusyError
from .retry import is_busy_error
from aiosqlite import Connection as AioConnection, Cursor as AioCursor

if TYPE_CHECKING:
    from .manager_base import ManagerBase


class Transaction:
    """
    A context manager for handling SQLite transactions.

    Statements issued through it share one cursor inside ``BEGIN`` ... ``COMMIT``.
    Any exception leaving the block rolls everything back. The first failing
    statement is raised as TransactionError (BusyError when the file was locked)
    with its position in ``statement_index``.
    """

    def __init__(
        self,
        manager: Optional[ManagerBase] = None,
        autocommit: bool = True,
        logger: Optional[Logger] = None
    ):
        if manager is None:
            raise TransactionError("Transaction requires an existing manager instance.")
        self.manager = manager
        self.autocommit = autocommit
        self.logger = logger or logging_getLogger(__name__)
        self._connection: Optional[AioConnection] = None
        self._cursor: Optional[AioCursor] = None
        self._statement_count = 0

    @property
    def statement_count(self) -> int:
        return self._statement_count

    async def __aenter__(self) -> Transaction:
        """Enter the transaction context."""
        self._connection = await self.manager.get_connection()
        if self._connection is None:
            raise TransactionError("Failed to obtain a database connection")

        # One cursor for every statement of the transaction
        self._cursor = await self._connection.cursor()
        self._statement_count = 0

        try:
            await self._cursor.execute("BEGIN")
            self.logger.debug(f"BEGIN transaction on database: {self.manager.database_path}")
        except Exception as e:
            if self._cursor:
                await self._cursor.close()
                self._cursor = None
            self.logger.error(f"Failed to BEGIN transaction: {e}")
            if is_busy_error(e):
                raise BusyError("Database busy, cannot begin transaction", sql="BEGIN") from e
            raise TransactionError(f"Failed to begin transaction: {e}", sql="BEGIN") from e

        return self

    async def __aexit__(self, exc_type: Optional[Type[BaseException]],
                       exc_val: Optional[BaseException], exc_tb) -> None:
        """Exit the transaction context."""
        if not self._connection:
            self.logger.warning(f"No connection to close for database: {self.manager.database_path}")
            return

        try:
            if exc_type is not None:
                await self._connection.rollback()
                self.logger.error(f"ROLLBACK transaction on database: {self.manager.database_path}")
            elif self.autocommit:
                try:
                    await self._connection.commit()
                except Exception as e:
                    await self._connection.rollback()
                    self.logger.error(f"COMMIT failed, transaction rolled back: {e}")
                    if is_busy_error(e):
                        raise BusyError("Database busy, cannot commit transaction", sql="COMMIT") from e
                    raise TransactionError(f"Failed to commit transaction: {e}", sql="COMMIT") from e
                self.logger.debug(f"COMMIT transaction on database: {self.manager.database_path}")
            else:
                await self._connection.rollback()
                self.logger.info(f"ROLLBACK transaction on database: {self.manager.database_path}")
        except Exception as e:
            self.logger.error(f"Failed to commit/rollback transaction: {e}")
            raise
        finally:
            if self._cursor:
                await self._cursor.close()
                self._cursor = None

    async def _statement(self, query: str, params: QueryParams, return_type: str):
        if self._cursor is None:
            raise TransactionError("Transaction is not active.", sql=query)
        index = self._statement_count
        self._statement_count += 1
        try:
            return await self.manager._run_on_cursor(self._cursor, query, params, return_type)
        except Exception as e:
            self.logger.error(f"Statement {index} failed inside transaction: {e}")
            if is_busy_error(e):
                raise BusyError(f"Database busy at statement {index}", sql=query, statement_index=index) from e
            err = TransactionError(f"Statement {index} failed: {e}", sql=query, statement_index=index)
            raise err from e

    async def execute(self, query: str, params: QueryParams = None) -> ExecuteResult:
        return await self._statement(query, params, "fetchnone")

    async def query_one(self, query: str, params: QueryParams = None) -> Optional[Row]:
        return await self._statement(query, params, "fetchone")

    async def query_all(self, query: str, params: QueryParams = None) -> QueryResult:
        return await self._statement(query, params, "fetchall")
