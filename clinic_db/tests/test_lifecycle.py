# clinic_db/tests/test_lifecycle.py
import signal
import asyncio
import pytest
from unittest.mock import MagicMock, AsyncMock
from ..lifecycle import GracefulShutdown
from ..manager import Manager, ConnectionState


class TestGracefulShutdown:
    """Tests for GracefulShutdown."""

    @pytest.mark.asyncio
    async def test_clean_close_exits_zero(self):
        manager = MagicMock()
        manager.close = AsyncMock()
        handler = GracefulShutdown(manager)
        assert await handler.shutdown("SIGTERM") == 0
        manager.close.assert_awaited_once()
        assert handler.finished.is_set()
        assert await handler.wait() == 0

    @pytest.mark.asyncio
    async def test_close_error_exits_one(self):
        manager = MagicMock()
        manager.close = AsyncMock(side_effect=RuntimeError("disk gone"))
        logger = MagicMock()
        handler = GracefulShutdown(manager, logger=logger)
        assert await handler.shutdown("SIGTERM") == 1
        logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_deadline_forces_exit(self):
        async def hang():
            await asyncio.sleep(10)

        manager = MagicMock()
        manager.close = hang
        handler = GracefulShutdown(manager, timeout=0.01)
        assert await handler.shutdown("SIGINT") == 1

    @pytest.mark.asyncio
    async def test_repeated_shutdown_closes_once(self):
        manager = MagicMock()
        manager.close = AsyncMock()
        handler = GracefulShutdown(manager)
        codes = await asyncio.gather(handler.shutdown("SIGTERM"), handler.shutdown("SIGINT"))
        assert codes == [0, 0]
        manager.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_trigger_schedules_shutdown(self):
        manager = MagicMock()
        manager.close = AsyncMock()
        handler = GracefulShutdown(manager)
        handler.trigger("SIGTERM")
        assert await handler.wait() == 0
        manager.close.assert_awaited_once()

    def test_install_registers_signals(self):
        loop = MagicMock()
        handler = GracefulShutdown(MagicMock())
        handler.install(loop)
        registered = [c.args for c in loop.add_signal_handler.call_args_list]
        assert registered == [
            (signal.SIGTERM, handler.trigger, "SIGTERM"),
            (signal.SIGINT, handler.trigger, "SIGINT"),
        ]

    @pytest.mark.asyncio
    async def test_closes_real_manager(self, make_config):
        manager = Manager(make_config())
        await manager.get_connection()
        handler = GracefulShutdown(manager)
        assert await handler.shutdown() == 0
        assert manager.state is ConnectionState.UNINITIALIZED


def test_handler_built_outside_event_loop():
    manager = MagicMock()
    manager.close = AsyncMock()
    handler = GracefulShutdown(manager)

    async def main():
        waiting = asyncio.ensure_future(handler.wait())
        await asyncio.sleep(0)
        await handler.shutdown("SIGTERM")
        return await waiting

    assert asyncio.run(main()) == 0
