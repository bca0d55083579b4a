"""
Row factory implementations for query results.

Rows come back as dictionaries keyed by column name, which is the shape the
repository layer works with (``row["name"]``). Values are left exactly as
SQLite returns them: patient phone numbers and record codes stored as TEXT
must not be turned into integers.
"""
from typing import Any, Tuple, Callable, Optional, Union
import sqlite3

RowFactory = Callable[[sqlite3.Cursor, Tuple], Any]


def dict_row_factory(cursor: sqlite3.Cursor, row: Tuple) -> dict:
    """
    Row factory that returns rows as dictionaries.

    Args:
        cursor: The SQLite cursor object.
        row: The raw row tuple from SQLite.

    Returns:
        A dictionary mapping column names to values.

    Examples:
        >>> conn.row_factory = dict_row_factory
        >>> cursor = conn.execute("SELECT 1 AS id, 'Arnica' AS name")
        >>> cursor.fetchone()
        {'id': 1, 'name': 'Arnica'}
    """
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def tuple_row_factory(cursor: sqlite3.Cursor, row: Tuple) -> Tuple:
    """Row factory that keeps the raw tuple."""
    return tuple(row)


def resolve_row_factory(row_factory: Union[str, RowFactory, None]) -> Optional[RowFactory]:
    """
    Turn a row factory name into the callable.

    "dict" and "tuple" select the factories above; a callable is used as is;
    None leaves sqlite3's default tuples in place.
    """
    if row_factory is None or callable(row_factory):
        return row_factory
    if row_factory == "dict":
        return dict_row_factory
    if row_factory == "tuple":
        return tuple_row_factory
    raise ValueError(f"Unknown row factory: {row_factory!r}")
