from __future__ import annotations
import asyncio
import sqlite3
from typing import Awaitable, Callable, Optional, TypeVar
from logging import Logger, getLogger as logging_getLogger

T = TypeVar("T")

SQLITE_BUSY = 5
BUSY_MESSAGES = ("database is locked", "database is busy")


def is_busy_error(exc: BaseException) -> bool:
    """
    Check whether an exception is the engine reporting a locked database file.

    Python 3.11+ exposes the primary result code as ``sqlite_errorcode``;
    older interpreters only carry the message.
    """
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    code = getattr(exc, "sqlite_errorcode", None)
    if code is not None and code & 0xFF == SQLITE_BUSY:
        return True
    message = str(exc).lower()
    return any(text in message for text in BUSY_MESSAGES)


class RetryPolicy:
    """
    Bounded linear back-off for busy retries.

    Attempt ``n`` (1-based) that fails waits ``base_delay * n`` seconds before
    attempt ``n + 1``. ``max_retries`` retries mean ``max_retries + 1`` attempts.
    """
    __slots__ = ("max_retries", "base_delay")

    def __init__(self, max_retries: int = 3, base_delay: float = 0.5) -> None:
        if not isinstance(max_retries, int) or max_retries < 0:
            raise ValueError("max_retries must be a non-negative integer")
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        self.max_retries = max_retries
        self.base_delay = base_delay

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    def __repr__(self):
        return f"RetryPolicy(max_retries={self.max_retries}, base_delay={self.base_delay})"


async def retry(
    operation: Callable[[], Awaitable[T]],
    classify: Callable[[BaseException], bool],
    max_attempts: Optional[int],
    backoff: Callable[[int], float],
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    logger: Optional[Logger] = None,
    label: str = "operation",
) -> T:
    """
    Run ``operation`` until it succeeds, a non-retryable error occurs, or attempts run out.

    Args:
        operation: Zero-argument coroutine function performing one attempt.
        classify: Returns True when an exception is worth retrying.
        max_attempts: Total attempts allowed. None retries without bound.
        backoff: Maps the failed attempt number (1-based) to the delay in seconds.
        sleep: Awaitable used for waiting between attempts.
        logger: Logger used to report retries.
        label: Short description of the operation for log messages.

    Returns:
        Whatever the successful attempt returned.

    Raises:
        The last exception raised by ``operation``, unchanged.
    """
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    logger = logger or logging_getLogger(__name__)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not classify(e):
                raise
            if max_attempts is not None and attempt >= max_attempts:
                raise
            delay = backoff(attempt)
            limit = max_attempts - 1 if max_attempts is not None else "unbounded"
            logger.warning(f"Database busy during {label}, retrying in {delay:.2f}s ({attempt}/{limit})")
            await sleep(delay)
