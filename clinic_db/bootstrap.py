"""
Composition root for the database core.

The process builds exactly one Manager here and hands it to whatever needs
the database (repositories, request handlers) instead of importing a
module-level singleton.
"""
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional, AsyncIterator
from logging import Logger, getLogger as logging_getLogger
from .manager import Manager, DatabaseConfig

logger = logging_getLogger(__name__)


def create_manager(
    config: Optional[DatabaseConfig] = None,
    *,
    logger: Optional[Logger] = None,
    **kwargs,
) -> Manager:
    """Build a Manager without opening the database."""
    return Manager(config or DatabaseConfig.from_env(), logger=logger, **kwargs)


async def init_database(
    config: Optional[DatabaseConfig] = None,
    *,
    logger: Optional[Logger] = None,
    **kwargs,
) -> Manager:
    """
    Build a Manager and wait until its database is ready.

    Raises whatever the open sequence raised; the host process decides
    whether that is fatal.
    """
    log = logger or logging_getLogger(__name__)
    manager = create_manager(config, logger=logger, **kwargs)
    try:
        await manager.get_connection()
    except Exception as e:
        log.error(f"Failed to initialize database: {e}")
        raise
    return manager


@asynccontextmanager
async def database(
    config: Optional[DatabaseConfig] = None,
    *,
    logger: Optional[Logger] = None,
    **kwargs,
) -> AsyncIterator[Manager]:
    """Ready Manager for the duration of the block, closed on the way out."""
    manager = await init_database(config, logger=logger, **kwargs)
    try:
        yield manager
    finally:
        await manager.close()
