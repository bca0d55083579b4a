from __future__ import annotations
import asyncio
import sqlite3
from contextlib import asynccontextmanager
from typing import Optional, Iterable, List, Union, AsyncIterator
from .manager_base import ManagerBase
from .transaction import Transaction
from .exceptions import QueryError, ExhaustedRetriesError, TransactionError
from .retry import RetryPolicy, is_busy_error, retry
from .types import ExecuteResult, QueryParams, QueryResult, Row, Statement, StatementLike
from ..execution_async import FetchAll, FetchOne, FetchNone
from ..execution_async.fetch_types import ReturnType


class Manager(ManagerBase):
    """
    The database core used by the repository layer.

    Public API:

        manager = Manager(DatabaseConfig.from_env())

        result = await manager.execute("INSERT INTO patients (name) VALUES (?)", ("Ana",))
        patient = await manager.query_one("SELECT * FROM patients WHERE id = ?", (result.last_insert_id,))
        patients = await manager.query_all("SELECT * FROM patients ORDER BY name")

        await manager.run_transaction([
            ("INSERT INTO appointments (patient_id, date) VALUES (?, ?)", (1, "2026-01-05")),
            ("UPDATE patients SET last_visit = ? WHERE id = ?", ("2026-01-05", 1)),
        ])

        await manager.close()
    """

    @asynccontextmanager
    async def queue(self) -> AsyncIterator[None]:
        """
        Serialize statements and transactions on the shared handle.

        The queue is not reentrant. A task that already holds it (inside
        ``transaction()``) gets a TransactionError instead of waiting on itself.
        """
        task = asyncio.current_task()
        if task is not None and self._queue_owner is task:
            raise TransactionError(
                "The operation queue is held by this task; "
                "run statements through the open transaction object"
            )
        async with self._queue_lock:
            self._queue_owner = task
            try:
                yield
            finally:
                self._queue_owner = None

    def _policy(self, max_retries: Optional[int]) -> RetryPolicy:
        if max_retries is None:
            return self.retry_policy
        return RetryPolicy(max_retries, self.retry_policy.base_delay)

    async def _run(
        self,
        query: str,
        params: QueryParams,
        return_type: ReturnType,
        max_retries: Optional[int],
    ):
        policy = self._policy(max_retries)

        async def attempt():
            async with self.queue():
                conn = await self.get_connection()
                async with conn.cursor() as cursor:
                    return await self._run_on_cursor(cursor, query, params, return_type)

        try:
            return await retry(
                attempt,
                is_busy_error,
                policy.max_attempts,
                policy.delay_for,
                sleep=self._sleep,
                logger=self.logger,
                label=return_type.type,
            )
        except sqlite3.Error as e:
            if is_busy_error(e):
                self.logger.error(f"Database still busy after {policy.max_attempts} attempts: {query}")
                raise ExhaustedRetriesError(
                    f"Database still busy after {policy.max_attempts} attempts",
                    sql=query,
                    attempts=policy.max_attempts,
                ) from e
            raise QueryError(f"Query failed: {e}", sql=query) from e

    async def execute(
        self,
        query: str,
        params: QueryParams = None,
        max_retries: Optional[int] = None,
    ) -> ExecuteResult:
        """
        Run a write statement and report its effect.

        Args:
            query (str): SQL statement.
            params (QueryParams, optional): Sequence or mapping of parameters, or a list of
                them to run the statement once per entry.
            max_retries (int, optional): Busy retries for this call. Defaults to the
                configured policy.

        Returns:
            ExecuteResult: ``last_insert_id`` and ``rows_affected``.

        Raises:
            ExhaustedRetriesError: The database stayed busy for every attempt.
            QueryError: Any other engine error.
        """
        return await self._run(query, params, FetchNone(), max_retries)

    async def query_one(
        self,
        query: str,
        params: QueryParams = None,
        max_retries: Optional[int] = None,
    ) -> Optional[Row]:
        """Return the first matching row, or None when nothing matches."""
        return await self._run(query, params, FetchOne(), max_retries)

    async def query_all(
        self,
        query: str,
        params: QueryParams = None,
        max_retries: Optional[int] = None,
    ) -> QueryResult:
        """Return every matching row, in the order the engine yields them."""
        return await self._run(query, params, FetchAll(), max_retries)

    # Transaction Management
    @asynccontextmanager
    async def transaction(self, autocommit: bool = True) -> AsyncIterator[Transaction]:
        """
        Transaction that holds the operation queue for its whole duration.

        Inside the block, run statements through the yielded Transaction.
        Calling ``execute``, ``query_one``, ``query_all`` or ``run_transaction`` on
        the manager from the same task raises TransactionError. Other tasks wait
        until the transaction ends, so the block must not await them.
        """
        await self.get_connection()
        async with self.queue():
            async with Transaction(self, autocommit=autocommit, logger=self.logger) as txn:
                yield txn

    async def run_transaction(self, statements: Iterable[StatementLike]) -> List[ExecuteResult]:
        """
        Run write statements atomically.

        Statements run in order. The first failure rolls the transaction back,
        skips the remaining statements and is raised as a TransactionError
        (or BusyError) carrying the failing index.

        Returns:
            One ExecuteResult per statement, aligned by index with the input.
        """
        batch = [Statement.coerce(s) for s in statements]
        if not batch:
            return []
        results: List[ExecuteResult] = []
        async with self.transaction() as txn:
            for statement in batch:
                results.append(await txn.execute(statement.sql, statement.params))
        return results
