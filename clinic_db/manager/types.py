from __future__ import annotations
from enum import Enum
from typing import Optional, Union, List, Any, Mapping, Sequence, Tuple

# Type aliases
QueryParams = Optional[Union[tuple, list, Mapping[str, Any], List[tuple]]]
Row = Union[dict, tuple]
QueryResult = List[Row]


class ConnectionState(Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class ExecuteResult:
    """Outcome of a single write statement."""
    __slots__ = ("last_insert_id", "rows_affected")

    def __init__(self, last_insert_id: Optional[int], rows_affected: int) -> None:
        self.last_insert_id = last_insert_id
        self.rows_affected = rows_affected

    def __repr__(self):
        return f"ExecuteResult(last_insert_id={self.last_insert_id!r}, rows_affected={self.rows_affected!r})"

    def __eq__(self, other):
        if not isinstance(other, ExecuteResult):
            return False
        return (
            self.last_insert_id == other.last_insert_id and
            self.rows_affected == other.rows_affected
        )

    def __hash__(self):
        return hash((self.last_insert_id, self.rows_affected))

    def to_dict(self) -> dict:
        return {
            "last_insert_id": self.last_insert_id,
            "rows_affected": self.rows_affected,
        }


class Statement:
    """A SQL statement and its parameters, as submitted to a transaction batch."""
    __slots__ = ("sql", "params")

    def __init__(self, sql: str, params: QueryParams = None) -> None:
        if not isinstance(sql, str) or not sql.strip():
            raise ValueError("Statement SQL must be a non-empty string.")
        self.sql = sql
        self.params = params

    @classmethod
    def coerce(cls, value: Union[Statement, str, Sequence, Mapping[str, Any]]) -> Statement:
        """
        Build a Statement from the shapes callers commonly pass around.

        Accepts a Statement, a bare SQL string, a ``(sql, params)`` pair or a
        mapping with ``sql`` and optional ``params`` keys.
        """
        if isinstance(value, Statement):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, Mapping):
            if "sql" not in value:
                raise ValueError("Statement mapping requires a 'sql' key.")
            return cls(value["sql"], value.get("params"))
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise TypeError(f"Cannot build a Statement from {type(value).__name__}")

    def __iter__(self):
        yield self.sql
        yield self.params

    def __repr__(self):
        return f"Statement({self.sql!r}, {self.params!r})"

    def __eq__(self, other):
        if not isinstance(other, Statement):
            return False
        return self.sql == other.sql and self.params == other.params

    def __hash__(self):
        return hash((self.sql, repr(self.params)))


StatementLike = Union[Statement, str, Tuple[str, Any], Mapping[str, Any]]
