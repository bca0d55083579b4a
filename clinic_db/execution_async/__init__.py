from .execution_async import (
    try_query)
from .fetch_types import (
    ReturnType,
    Fetch,
    FetchAll,
    FetchOne,
    FetchNone
)
from .row_factory import (
    dict_row_factory,
    tuple_row_factory,
    resolve_row_factory
)

__all__ = ("try_query", "Fetch", "FetchAll", "FetchOne", "FetchNone", "ReturnType",
           "dict_row_factory", "tuple_row_factory", "resolve_row_factory")
