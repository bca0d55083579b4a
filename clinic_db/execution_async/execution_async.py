from aiosqlite import Cursor
from typing import Optional, List, Union
import logging
from ..utils import is_bulk_params
from ..manager.types import ExecuteResult, QueryParams, Row
from .fetch_types import ReturnType, Fetch


# === Async Execution ===

async def _execute_with_params(cursor: Cursor, query: str, injection_values: QueryParams, log: bool,
                               logger: logging.Logger = logging.getLogger(__name__)) -> None:
    """
    Executes a SQL query with the provided parameters, supporting both single and bulk operations.
    Args:
        cursor (Cursor): The database cursor to execute the query with.
        query (str): The SQL query to execute.
        injection_values: A single parameter set (sequence or mapping) or a list of parameter
            sets for bulk operations.
        log (bool): Whether to log bulk executions.
        logger (logging.Logger, optional): Logger instance to use for logging.
    Notes:
        - A sequence of sequences or a sequence of mappings runs through `executemany`.
    """
    if is_bulk_params(injection_values):
        if log:
            logger.debug(f"Executing bulk operation with {len(injection_values)} records.")
        await cursor.executemany(query, injection_values)
    else:
        await cursor.execute(query, injection_values)

async def try_query(
    cursor: Cursor,
    query: str,
    injection_values: QueryParams = None,
    return_type: Union[str, ReturnType] = "fetchall",
    log: bool = False,
    *,
    logger: logging.Logger = logging.getLogger(__name__),
) -> Union[List[Row], Optional[Row], ExecuteResult]:
    """
    Execute one statement on an aiosqlite cursor and fetch its outcome.

    Args:
        cursor (Cursor): The aiosqlite cursor object to execute the query.
        query (str): The SQL query string to execute.
        injection_values (QueryParams, optional): Values for a parameterized query. A tuple,
            list or mapping for one execution; a list of tuples or mappings for executemany.
        return_type (Union[str, ReturnType], optional): "fetchall", "fetchone" or "fetchnone".
        log (bool, optional): Whether to trace the statement at debug level.
        logger (logging.Logger, optional): Logger instance used for tracing.
    Returns:
        A list of rows, a single row (or None), or an ExecuteResult depending on return_type.
    Raises:
        sqlite3.Error: Any engine error is re-raised to the caller untouched.
    Examples:
        >>> rows = await try_query(cursor, "SELECT * FROM patients")
        >>> patient = await try_query(cursor, "SELECT * FROM patients WHERE id = ?",
        ...                           injection_values=(1,), return_type="fetchone")
        >>> result = await try_query(cursor, "INSERT INTO medicines (name) VALUES (?)",
        ...                          injection_values=("Arnica",), return_type="fetchnone")
    """
    rt = Fetch(return_type)
    if log:
        logger.debug(f"Executing query: {query} | Params: {injection_values or 'None'}")

    try:
        if injection_values is not None:
            await _execute_with_params(cursor, query, injection_values, log, logger)
        else:
            await cursor.execute(query)
        return await rt.collect(cursor)
    except Exception as e:
        logger.debug(f"SQLite error during query {query!r}: {e}")
        raise
