from __future__ import annotations
from aiosqlite import connect, Connection as AioConnection, Cursor as AioCursor
import asyncio
import os
from .config import DatabaseConfig
from .exceptions import (
    DatabaseManagerError,
    OpenError,
    BusyError,
    ExhaustedRetriesError,
)
from .migrations import MigrationRunner
from .retry import RetryPolicy, is_busy_error, retry
from .types import ConnectionState, QueryParams

from ..execution_async import try_query, resolve_row_factory
from ..execution_async.fetch_types import ReturnType
from ..execution_async.row_factory import RowFactory
from typing import Optional, Union
from logging import Logger, getLogger as logging_getLogger


class ManagerBase:
    """
    Owns the single database handle of the process.

    The handle is opened lazily by the first ``get_connection()`` call. Callers
    arriving while the open sequence is running share the same pending task,
    so the file is opened at most once at a time. The open sequence resolves
    the path, opens the file, applies the configured pragmas and runs pending
    migrations before the manager reports READY.
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        *,
        logger: Optional[Logger] = None,
        row_factory: Union[str, RowFactory, None] = "dict",
        log_queries: bool = False,
        migration_runner: Optional[MigrationRunner] = None,
    ) -> None:

        self.config = config or DatabaseConfig.from_env()
        self.logger = logger or logging_getLogger(__name__)
        self.row_factory = resolve_row_factory(row_factory)
        self.log_queries = log_queries
        self.retry_policy = RetryPolicy(self.config.max_retries, self.config.retry_base_delay)
        self.migration_runner = migration_runner or MigrationRunner(
            self.config.migrations_dir,
            track_applied=self.config.track_migrations,
            logger=self.logger,
        )

        self._state: ConnectionState = ConnectionState.UNINITIALIZED
        self._connection: Optional[AioConnection] = None
        self._pending: Optional[asyncio.Task] = None
        self._database_path: Optional[str] = None
        self._state_lock = asyncio.Lock()
        # Held for every statement and for whole transactions on the shared handle.
        self._queue_lock = asyncio.Lock()
        self._queue_owner: Optional[asyncio.Task] = None
        self._sleep = asyncio.sleep

    # Properties
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def database_path(self) -> Optional[str]:
        """Path of the current (or last attempted) database file."""
        return self._database_path

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            self.logger.info(f"Database state: {self._state.value} -> {state.value}")
        self._state = state

    # Connection Management
    async def get_connection(self) -> AioConnection:
        """
        Return the ready database handle, opening it if needed.

        Raises:
            OpenError: The file could not be opened or configured.
            MigrationError: A migration failed to apply.
            ExhaustedRetriesError: The file stayed busy past ``connect_retries``.
        """
        if self._state is ConnectionState.READY and self._connection is not None:
            return self._connection

        async with self._state_lock:
            if self._state is ConnectionState.READY and self._connection is not None:
                return self._connection
            if self._pending is None:
                self._set_state(ConnectionState.CONNECTING)
                self._pending = asyncio.ensure_future(self._open())
            pending = self._pending

        return await asyncio.shield(pending)

    async def _open(self) -> AioConnection:
        retries = self.config.connect_retries
        max_attempts = None if retries is None else retries + 1
        try:
            conn = await retry(
                self._open_once,
                lambda e: isinstance(e, BusyError),
                max_attempts,
                lambda attempt: self.config.connect_retry_delay,
                sleep=self._sleep,
                logger=self.logger,
                label="database open",
            )
        except BusyError as e:
            self._pending = None
            self._set_state(ConnectionState.FAILED)
            self.logger.error(f"Database still busy after {max_attempts} open attempts")
            raise ExhaustedRetriesError(
                f"Database {self._database_path} still busy after {max_attempts} open attempts",
                attempts=max_attempts or 0,
            ) from e
        except BaseException as e:
            self._pending = None
            self._set_state(ConnectionState.FAILED)
            self.logger.error(f"Error opening database: {e}")
            raise

        self._connection = conn
        self._pending = None
        self._set_state(ConnectionState.READY)
        self.logger.info("Successfully connected to SQLite database")
        return conn

    def _prepare_directory(self, path: str) -> None:
        if path == ":memory:" or path.startswith("file:"):
            return
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

    async def _open_once(self) -> AioConnection:
        """One pass of the open sequence: open, pragmas, migrations."""
        path = self.config.resolve_path()
        self._database_path = path
        self.logger.info("Initializing database connection...")
        self.logger.info(f"Database path: {path}")

        try:
            self._prepare_directory(path)
            conn = await connect(
                path,
                timeout=self.config.busy_timeout_ms / 1000,
                isolation_level=None,
            )
        except Exception as e:
            if is_busy_error(e):
                raise BusyError(f"Database {path} is busy") from e
            raise OpenError(f"Failed to open database at {path}: {e}") from e

        try:
            conn.row_factory = self.row_factory
            await self._apply_pragmas(conn)
            applied = await self.migration_runner.run(conn)
            if applied:
                self.logger.info(f"Applied {len(applied)} migration(s)")
        except BaseException:
            await self._discard(conn)
            raise
        self.logger.info("Database configuration applied")
        return conn

    async def _apply_pragmas(self, conn: AioConnection) -> None:
        for pragma in self.config.pragmas():
            try:
                cursor = await conn.execute(pragma)
                await cursor.close()
            except DatabaseManagerError:
                raise
            except Exception as e:
                if is_busy_error(e):
                    raise BusyError(f"Database busy while applying {pragma!r}", sql=pragma) from e
                raise OpenError(f"Failed to apply {pragma!r}: {e}") from e

    async def _discard(self, conn: AioConnection) -> None:
        try:
            await conn.close()
        except Exception as e:
            self.logger.warning(f"Error closing half-open database handle: {e}")

    async def close(self) -> None:
        """
        Close the database handle if it is open.

        Waits for an in-flight open attempt to settle and for the running
        statement or transaction to finish. Calling it when nothing is open is
        a no-op, so it is safe to call more than once.
        """
        pending = self._pending
        if pending is not None:
            try:
                await asyncio.shield(pending)
            except DatabaseManagerError as e:
                self.logger.info(f"Pending database open failed, nothing to close: {e}")

        if self._state is not ConnectionState.READY or self._connection is None:
            if self._state is ConnectionState.FAILED:
                self._set_state(ConnectionState.UNINITIALIZED)
            return

        async with self._queue_lock:
            conn = self._connection
            if conn is None:
                return
            try:
                await conn.close()
            except Exception as e:
                self.logger.error(f"Error closing database: {e}")
                raise
            self._connection = None
            self._set_state(ConnectionState.UNINITIALIZED)
            self.logger.info("Database connection closed successfully")

    disconnect = close

    # Statement execution on an explicit cursor
    async def _run_on_cursor(
        self,
        cursor: AioCursor,
        query: str,
        params: QueryParams,
        return_type: Union[str, ReturnType],
    ):
        return await try_query(
            cursor,
            query,
            injection_values=params,
            return_type=return_type,
            log=self.log_queries,
            logger=self.logger,
        )
