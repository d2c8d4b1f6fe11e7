"""dockmap runtime entrypoint.

``create_app`` is the composition root: it reads configuration, builds the
storage, vault, registry client, sync orchestrator, pool, scheduler and
account service, and hands them to :func:`dockmap.api.app.create_app`.
Granian loads it as a factory, so nothing touches the event loop before the
server starts.

Configuration is driven by environment variables:

- ``DOCKMAP_HOST``: Bind address (default ``0.0.0.0``)
- ``DOCKMAP_PORT``: Listen port (default ``8080``)
- ``DOCKMAP_LOG_LEVEL``: Log level (default ``INFO``)
- ``DOCKMAP_DATABASE_URL``: SQLAlchemy async URL
- ``DOCKMAP_ENCRYPTION_KEY``: 32-byte credential key (required)
- ``DOCKMAP_SYNC_BACKEND``: ``pool`` (default) runs connect-time and manual
  syncs in-process; ``dramatiq`` enqueues them for ``dockmap.sync.actor``
- ``DOCKMAP_BROKER_URL``: Redis URL used by the ``dramatiq`` backend

Run the service directly with ``python -m dockmap.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from dockmap.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

    from dockmap.sync import SyncDispatcher

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid DOCKMAP_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Build the fully wired Falcon ASGI application.

    Raises
    ------
    VaultConfigError
        If the encryption key is missing or malformed.

    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from dockmap.accounts import AccountService
    from dockmap.api.app import AppDependencies
    from dockmap.api.app import create_app as _create_api_app
    from dockmap.api.middleware import ServiceLifespan
    from dockmap.config import AppConfig
    from dockmap.registry import DockerHubClient, RegistryConfig
    from dockmap.storage import AccountStore, ActivityEventStore
    from dockmap.sync import (
        DramatiqSyncDispatcher,
        SchedulerConfig,
        SyncBackend,
        SyncConfig,
        SyncOrchestrator,
        SyncScheduler,
        SyncTaskPool,
    )
    from dockmap.vault import CredentialVault

    config = AppConfig.from_env()
    vault = CredentialVault.from_config(config)
    sync_config = SyncConfig.from_env()

    engine = create_async_engine(config.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    accounts = AccountStore(session_factory)
    events = ActivityEventStore(session_factory)
    registry = DockerHubClient(RegistryConfig.from_env())

    orchestrator = SyncOrchestrator(
        accounts=accounts,
        events=events,
        registry=registry,
        vault=vault,
        config=sync_config,
    )
    pool: SyncTaskPool | None = None
    dispatcher: SyncDispatcher
    if sync_config.backend is SyncBackend.DRAMATIQ:
        from dockmap.sync._broker import ensure_broker_configured

        ensure_broker_configured(sync_config.broker_url)
        dispatcher = DramatiqSyncDispatcher(config.database_url)
    else:
        pool = SyncTaskPool(
            orchestrator.sync_account, concurrency=sync_config.concurrency
        )
        dispatcher = pool
    log_info(logger, "Connect-time syncs use the %s backend", sync_config.backend)

    scheduler = SyncScheduler(
        orchestrator=orchestrator,
        accounts=accounts,
        events=events,
        config=SchedulerConfig.from_env(),
    )
    service = AccountService(
        session_factory, vault=vault, registry=registry, dispatcher=dispatcher
    )
    lifespan = ServiceLifespan(
        engine=engine, scheduler=scheduler, pool=pool, registry=registry
    )
    return _create_api_app(
        AppDependencies(account_service=service, middleware=(lifespan,))
    )


def main() -> None:
    """Start the dockmap server using Granian.

    Reads ``DOCKMAP_HOST``, ``DOCKMAP_PORT``, and ``DOCKMAP_LOG_LEVEL`` from
    the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("DOCKMAP_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("DOCKMAP_PORT", "8080"))
    log_level_str = os.environ.get("DOCKMAP_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid DOCKMAP_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting dockmap on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "dockmap.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
