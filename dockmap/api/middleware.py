"""Falcon lifespan middleware owning the background sync machinery.

Falcon calls ``process_startup`` once the ASGI server starts its event
loop and ``process_shutdown`` when it stops. Storage initialisation, the
scheduler, the sync pool and the shared HTTP client all need that loop,
so they are started and stopped here rather than at import time.

Usage
-----
::

    lifespan = ServiceLifespan(
        engine=engine,
        scheduler=scheduler,
        pool=pool,
        registry=registry,
    )
    app = falcon.asgi.App(middleware=[lifespan])

"""

from __future__ import annotations

import typing as typ

from dockmap.logging import get_logger, log_info
from dockmap.storage import init_storage

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from dockmap.registry import DockerHubClient
    from dockmap.sync import SyncScheduler, SyncTaskPool

__all__ = ["ServiceLifespan"]

logger = get_logger(__name__)


class ServiceLifespan:
    """Start and stop the process-wide collaborators of the API.

    Parameters
    ----------
    engine
        Engine whose schema is created on startup and disposed on shutdown.
    scheduler
        Periodic sweep and retention scheduler; ``None`` disables it.
    pool
        Background sync pool drained on shutdown.
    registry
        Shared registry client closed on shutdown.

    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        scheduler: SyncScheduler | None = None,
        pool: SyncTaskPool | None = None,
        registry: DockerHubClient | None = None,
    ) -> None:
        """Store the collaborators managed across the process lifetime."""
        self._engine = engine
        self._scheduler = scheduler
        self._pool = pool
        self._registry = registry

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create tables and start the scheduler."""
        await init_storage(self._engine)
        if self._scheduler is not None:
            self._scheduler.start()
        log_info(logger, "dockmap started")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop scheduling, drain in-flight syncs and release connections."""
        if self._scheduler is not None:
            self._scheduler.shutdown()
        if self._pool is not None:
            await self._pool.shutdown()
        if self._registry is not None:
            await self._registry.aclose()
        await self._engine.dispose()
        log_info(logger, "dockmap stopped")
