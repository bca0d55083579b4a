from typing import Mapping, Sequence


def no_underscore_or_space(s: str) -> str:
    """Strip underscores and spaces, so "fetch_one" and "fetch one" read as "fetchone"."""
    return s.replace("_", "").replace(" ", "")


def is_bulk_params(params) -> bool:
    """
    Tell whether parameters describe several executions (a sequence of rows).

    ``(1, "a")`` and ``{"id": 1}`` are one row; ``[(1, "a"), (2, "b")]`` and
    ``[{"id": 1}, {"id": 2}]`` are bulk. An empty sequence is never bulk.
    """
    if not isinstance(params, (list, tuple)) or not params:
        return False
    first = params[0]
    if isinstance(first, Mapping):
        return all(isinstance(item, Mapping) for item in params)
    return isinstance(first, Sequence) and not isinstance(first, (str, bytes))
