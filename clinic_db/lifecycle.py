from __future__ import annotations
import asyncio
import signal
from typing import Optional, Iterable
from logging import Logger, getLogger as logging_getLogger
from .manager import ManagerBase

DEFAULT_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class GracefulShutdown:
    """
    Closes the database when the process is asked to stop.

    ``shutdown()`` gives ``manager.close()`` at most ``timeout`` seconds. The
    host awaits ``wait()`` and exits with the returned code: 0 when the
    database closed cleanly, 1 when closing failed or ran past the deadline.
    """

    def __init__(
        self,
        manager: ManagerBase,
        timeout: float = 10.0,
        logger: Optional[Logger] = None,
    ) -> None:
        self.manager = manager
        self.timeout = timeout
        self.logger = logger or logging_getLogger(__name__)
        self.exit_code: Optional[int] = None
        self.finished = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def install(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        """Register signal handlers on ``loop`` (the running loop by default)."""
        loop = loop or asyncio.get_running_loop()
        for sig in signals:
            loop.add_signal_handler(sig, self.trigger, sig.name)

    def trigger(self, reason: str) -> asyncio.Task:
        """Start shutting down from synchronous code such as a signal handler."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._shutdown(reason))
        return self._task

    async def shutdown(self, reason: str = "shutdown") -> int:
        """Close the manager once; later calls wait for the first one."""
        return await asyncio.shield(self.trigger(reason))

    async def _shutdown(self, reason: str) -> int:
        self.logger.info(f"Received {reason}. Starting graceful shutdown...")
        try:
            await asyncio.wait_for(self.manager.close(), self.timeout)
        except asyncio.TimeoutError:
            self.logger.error("Could not close connections in time, forcefully shutting down")
            self.exit_code = 1
        except Exception as e:
            self.logger.error(f"Error during shutdown: {e}")
            self.exit_code = 1
        else:
            self.logger.info("Database connection closed")
            self.exit_code = 0
        self.finished.set()
        return self.exit_code

    async def wait(self) -> int:
        await self.finished.wait()
        return self.exit_code
