from __future__ import annotations
import os
import re
from typing import Optional, List, Set
from logging import Logger, getLogger as logging_getLogger
from aiosqlite import Connection as AioConnection
from .exceptions import MigrationError, BusyError
from .retry import is_busy_error

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class MigrationRunner:
    """
    Applies schema files from a directory, in lexicographic filename order.

    File names carry the ordering: ``001_init.sql`` runs before
    ``002_add_column.sql``. With ``track_applied`` enabled each applied name is
    recorded in a ledger table and skipped on later runs, so restarting the
    process against the same database does not re-run old migrations.

    Each file runs inside its own transaction together with its ledger row, so a
    failing file leaves no partial schema behind. Files must not issue their own
    ``BEGIN`` or ``COMMIT``.
    """

    def __init__(
        self,
        directory: Optional[str],
        *,
        extension: str = ".sql",
        track_applied: bool = True,
        ledger_table: str = "schema_migrations",
        logger: Optional[Logger] = None,
    ) -> None:
        if not _IDENTIFIER.match(ledger_table):
            raise ValueError(f"Invalid ledger table name: {ledger_table!r}")
        self.directory = directory
        self.extension = extension
        self.track_applied = track_applied
        self.ledger_table = ledger_table
        self.logger = logger or logging_getLogger(__name__)

    def discover(self) -> List[str]:
        """Return migration file names in apply order. A missing directory yields nothing."""
        if not self.directory or not os.path.isdir(self.directory):
            return []
        return sorted(
            name for name in os.listdir(self.directory)
            if name.endswith(self.extension)
            and os.path.isfile(os.path.join(self.directory, name))
        )

    def _read(self, name: str) -> str:
        with open(os.path.join(self.directory, name), "r", encoding="utf-8") as f:
            return f.read()

    async def _ensure_ledger(self, conn: AioConnection) -> None:
        await conn.execute(
            f"CREATE TABLE IF NOT EXISTS {self.ledger_table} ("
            "name TEXT PRIMARY KEY, "
            "applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )

    async def applied(self, conn: AioConnection) -> Set[str]:
        """Names recorded in the ledger. Empty when tracking is off or nothing ran yet."""
        if not self.track_applied:
            return set()
        await self._ensure_ledger(conn)
        async with conn.execute(f"SELECT name FROM {self.ledger_table}") as cursor:
            rows = await cursor.fetchall()
        return {row["name"] if isinstance(row, dict) else row[0] for row in rows}

    async def pending(self, conn: AioConnection) -> List[str]:
        done = await self.applied(conn)
        return [name for name in self.discover() if name not in done]

    def _script(self, name: str, sql: str) -> str:
        """Wrap a file and its ledger row in one transaction."""
        parts = ["BEGIN;", sql, ";"]
        if self.track_applied:
            quoted = name.replace("'", "''")
            parts.append(f"INSERT INTO {self.ledger_table} (name) VALUES ('{quoted}');")
        parts.append("COMMIT;")
        return "\n".join(parts)

    async def _apply(self, conn: AioConnection, name: str) -> None:
        try:
            sql = self._read(name)
            await conn.executescript(self._script(name, sql))
        except Exception as e:
            if conn.in_transaction:
                await conn.rollback()
            if is_busy_error(e):
                raise BusyError(f"Database busy while applying migration {name}") from e
            self.logger.error(f"Error running migration {name}: {e}")
            raise MigrationError(f"Migration {name} failed: {e}", migration=name) from e

    async def run(self, conn: AioConnection) -> List[str]:
        """
        Apply every pending migration on ``conn``.

        Returns:
            The names applied by this call, in order.

        Raises:
            MigrationError: A file could not be read or its SQL failed.
            BusyError: The database was locked while applying a file.
        """
        if not self.directory or not os.path.isdir(self.directory):
            self.logger.info("No migrations directory found. Skipping migrations.")
            return []

        try:
            names = await self.pending(conn)
        except Exception as e:
            if is_busy_error(e):
                raise BusyError("Database busy while reading the migration ledger") from e
            raise MigrationError(f"Cannot read migration ledger: {e}") from e

        applied = []
        for name in names:
            await self._apply(conn, name)
            self.logger.info(f"Successfully ran migration: {name}")
            applied.append(name)
        return applied
