from typing import Optional, Union, Dict, Type
from aiosqlite import Cursor
from ..utils import no_underscore_or_space
from ..manager.types import ExecuteResult


# === ReturnType Classes ===

class ReturnType:
    """
    Fetch strategy applied to a cursor once its statement has run.

    Subclasses set ``type`` and implement ``collect``. Two strategies are
    equal when they are the same kind.
    """
    type: str = ""

    async def collect(self, cursor: Cursor):
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, value) -> bool:
        return type(value) is type(self)

    def __hash__(self) -> int:
        return hash(self.type)


class FetchOne(ReturnType):
    """First row, or None when nothing matched."""
    type = "fetchone"

    async def collect(self, cursor: Cursor):
        return await cursor.fetchone()


class FetchAll(ReturnType):
    """Every row as a list, possibly empty."""
    type = "fetchall"

    async def collect(self, cursor: Cursor):
        return list(await cursor.fetchall())


class FetchNone(ReturnType):
    """Write statements: nothing is fetched, the cursor's counters are reported instead."""
    type = "fetchnone"

    async def collect(self, cursor: Cursor) -> ExecuteResult:
        return ExecuteResult(cursor.lastrowid, cursor.rowcount)


_ALIASES: Dict[str, Type[ReturnType]] = {
    "one": FetchOne,
    "fetchone": FetchOne,
    "row": FetchOne,
    "all": FetchAll,
    "fetchall": FetchAll,
    "rows": FetchAll,
    "none": FetchNone,
    "fetchnone": FetchNone,
    "execute": FetchNone,
}


# === Utility Functions ===

def Fetch(arg: Optional[Union[str, ReturnType]] = None) -> ReturnType:
    """
    Resolve a fetch strategy.

    None means FetchAll. Strings are matched case-insensitively with
    underscores and spaces ignored, so "fetch_one" and "FetchOne" both work.
    A ReturnType instance is returned as is.

    Raises:
        ValueError: Unknown strategy name.
        TypeError: Anything that is neither None, str nor ReturnType.
    """
    if arg is None:
        return FetchAll()
    if isinstance(arg, ReturnType):
        return arg
    if isinstance(arg, str):
        strategy = _ALIASES.get(no_underscore_or_space(arg).lower())
        if strategy is None:
            raise ValueError(f"Invalid string argument for Fetch: {arg}")
        return strategy()
    raise TypeError(f"Invalid argument type: {type(arg).__name__}")
