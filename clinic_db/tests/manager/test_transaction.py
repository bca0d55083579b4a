# clinic_db/tests/manager/test_transaction.py
import sqlite3
import pytest
from unittest.mock import MagicMock, AsyncMock
from ...manager.transaction import Transaction
from ...manager.types import ExecuteResult
from ...manager.exceptions import TransactionError, BusyError


def make_manager():
    mock_manager = MagicMock()
    mock_manager.database_path = "clinic.db"
    mock_conn = AsyncMock()
    mock_cursor = AsyncMock()
    mock_conn.cursor = AsyncMock(return_value=mock_cursor)
    mock_manager.get_connection = AsyncMock(return_value=mock_conn)
    return mock_manager, mock_conn, mock_cursor


class TestTransaction:
    """Tests for Transaction class."""

    def test_init_without_manager_raises(self):
        """Test Transaction raises TransactionError when manager is None."""
        with pytest.raises(TransactionError) as exc_info:
            Transaction(None)
        assert "requires an existing manager instance" in str(exc_info.value)

    def test_init_with_manager(self):
        """Test Transaction initialization with manager."""
        mock_manager = MagicMock()
        txn = Transaction(mock_manager)
        assert txn.autocommit is True
        assert txn.manager is mock_manager
        assert txn.statement_count == 0

    def test_init_with_custom_options(self):
        """Test Transaction initialization with custom options."""
        mock_manager = MagicMock()
        mock_logger = MagicMock()
        txn = Transaction(mock_manager, autocommit=False, logger=mock_logger)
        assert txn.autocommit is False
        assert txn.logger is mock_logger

    @pytest.mark.asyncio
    async def test_aenter_connects_and_begins(self):
        """Test __aenter__ obtains the handle and begins a transaction."""
        mock_manager, mock_conn, mock_cursor = make_manager()

        txn = Transaction(mock_manager)
        result = await txn.__aenter__()

        mock_manager.get_connection.assert_awaited_once_with()
        mock_conn.cursor.assert_awaited_once()
        mock_cursor.execute.assert_awaited_once_with("BEGIN")
        assert result is txn
        assert txn._cursor is mock_cursor

    @pytest.mark.asyncio
    async def test_aenter_raises_if_connection_missing(self):
        """Test __aenter__ raises TransactionError if no handle comes back."""
        mock_manager = MagicMock()
        mock_manager.get_connection = AsyncMock(return_value=None)

        txn = Transaction(mock_manager)
        with pytest.raises(TransactionError) as exc_info:
            await txn.__aenter__()
        assert "Failed to obtain a database connection" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_aenter_raises_if_begin_fails(self):
        """Test __aenter__ raises TransactionError if BEGIN fails."""
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_cursor.execute.side_effect = sqlite3.OperationalError("disk I/O error")

        txn = Transaction(mock_manager)
        with pytest.raises(TransactionError) as exc_info:
            await txn.__aenter__()
        assert "Failed to begin transaction" in str(exc_info.value)
        # Cursor should be closed on failure
        mock_cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aenter_busy_begin_raises_busy_error(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_cursor.execute.side_effect = sqlite3.OperationalError("database is locked")

        txn = Transaction(mock_manager)
        with pytest.raises(BusyError):
            await txn.__aenter__()

    @pytest.mark.asyncio
    async def test_aexit_commits_on_success_with_autocommit(self):
        """Test __aexit__ commits when no exception and autocommit=True."""
        mock_manager, mock_conn, mock_cursor = make_manager()

        txn = Transaction(mock_manager, autocommit=True)
        await txn.__aenter__()
        await txn.__aexit__(None, None, None)

        mock_conn.commit.assert_awaited_once()
        mock_conn.rollback.assert_not_awaited()
        mock_cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aexit_rollback_on_exception(self):
        """Test __aexit__ rolls back when exception occurred."""
        mock_manager, mock_conn, mock_cursor = make_manager()

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        await txn.__aexit__(ValueError, ValueError("test"), None)

        mock_conn.rollback.assert_awaited_once()
        mock_conn.commit.assert_not_awaited()
        mock_cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aexit_rollback_without_autocommit(self):
        """Test __aexit__ rolls back when autocommit=False and no exception."""
        mock_manager, mock_conn, mock_cursor = make_manager()

        txn = Transaction(mock_manager, autocommit=False)
        await txn.__aenter__()
        await txn.__aexit__(None, None, None)

        mock_conn.rollback.assert_awaited_once()
        mock_cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aexit_failed_commit_rolls_back(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_conn.commit.side_effect = sqlite3.OperationalError("disk I/O error")

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        with pytest.raises(TransactionError) as exc_info:
            await txn.__aexit__(None, None, None)

        assert "Failed to commit transaction" in str(exc_info.value)
        mock_conn.rollback.assert_awaited_once()
        mock_cursor.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aexit_logs_warning_if_no_connection(self):
        """Test __aexit__ logs warning if no connection exists."""
        mock_manager = MagicMock()
        mock_logger = MagicMock()
        txn = Transaction(mock_manager, logger=mock_logger)
        txn._connection = None

        await txn.__aexit__(None, None, None)
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_execute_delegates_to_manager(self):
        """Test execute runs on the transaction cursor through the manager."""
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_manager._run_on_cursor = AsyncMock(return_value=ExecuteResult(3, 1))

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        result = await txn.execute("INSERT INTO patients (name) VALUES (?)", ("Ana",))

        assert result == ExecuteResult(3, 1)
        mock_manager._run_on_cursor.assert_awaited_once_with(
            mock_cursor, "INSERT INTO patients (name) VALUES (?)", ("Ana",), "fetchnone"
        )
        assert txn.statement_count == 1

    @pytest.mark.asyncio
    async def test_query_helpers_use_fetch_strategies(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_manager._run_on_cursor = AsyncMock(return_value=None)

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        await txn.query_one("SELECT 1")
        await txn.query_all("SELECT 2")

        strategies = [c.args[3] for c in mock_manager._run_on_cursor.await_args_list]
        assert strategies == ["fetchone", "fetchall"]

    @pytest.mark.asyncio
    async def test_failed_statement_reports_index(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_manager._run_on_cursor = AsyncMock(
            side_effect=[ExecuteResult(1, 1), sqlite3.IntegrityError("NOT NULL constraint failed")]
        )

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        await txn.execute("INSERT A")
        with pytest.raises(TransactionError) as exc_info:
            await txn.execute("INSERT B")

        assert exc_info.value.statement_index == 1
        assert exc_info.value.sql == "INSERT B"
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

    @pytest.mark.asyncio
    async def test_busy_statement_raises_busy_error(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_manager._run_on_cursor = AsyncMock(side_effect=sqlite3.OperationalError("database is locked"))

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        with pytest.raises(BusyError) as exc_info:
            await txn.execute("INSERT A")
        assert exc_info.value.statement_index == 0
        assert exc_info.value.sql == "INSERT A"

    @pytest.mark.asyncio
    async def test_busy_statement_reports_index(self):
        mock_manager, mock_conn, mock_cursor = make_manager()
        mock_manager._run_on_cursor = AsyncMock(side_effect=[
            ExecuteResult(1, 1),
            sqlite3.OperationalError("database is locked"),
        ])

        txn = Transaction(mock_manager)
        await txn.__aenter__()
        await txn.execute("INSERT A")
        with pytest.raises(BusyError) as exc_info:
            await txn.execute("INSERT B")
        assert exc_info.value.statement_index == 1
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    @pytest.mark.asyncio
    async def test_execute_outside_transaction_raises(self):
        txn = Transaction(MagicMock())
        with pytest.raises(TransactionError):
            await txn.execute("INSERT A")
