"""Dramatiq actor running one account sync from a worker process.

Usage
-----
Queue a sync for one account:

>>> sync_account_job.send(
...     database_url="postgresql+asyncpg://...",
...     account_id="550e8400-e29b-41d4-a716-446655440000",
... )

Workers run as ``dramatiq dockmap.sync.actor`` against the Redis broker named
by ``DOCKMAP_BROKER_URL`` and build their vault and registry client from the
other ``DOCKMAP_*`` environment variables. Engines and session factories are
cached per database URL and shared across invocations.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import threading
import typing as typ

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dockmap.config import AppConfig
from dockmap.registry import DockerHubClient, RegistryConfig
from dockmap.storage import AccountStore, ActivityEventStore
from dockmap.vault import CredentialVault

from ._broker import ensure_broker_configured
from .config import SyncConfig
from .orchestrator import SyncOrchestrator

if typ.TYPE_CHECKING:
    from dockmap.registry import RegistryClient

    from .orchestrator import SyncResult

type SessionFactory = async_sessionmaker[AsyncSession]

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_CACHE_LOCK = threading.Lock()


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Return the cached session factory for ``database_url``.

    Thread-safe: Dramatiq runs actors on several worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _SESSION_FACTORY_CACHE:
            engine = _ENGINE_CACHE.get(database_url)
            if engine is None:
                engine = create_async_engine(database_url)
                _ENGINE_CACHE[database_url] = engine
            _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
                engine, expire_on_commit=False
            )
        return _SESSION_FACTORY_CACHE[database_url]


async def _sync_account_async(
    session_factory: SessionFactory,
    account_id: str,
    *,
    registry: RegistryClient | None = None,
    vault: CredentialVault | None = None,
) -> SyncResult:
    """Run one sync with collaborators built for this invocation.

    An owned registry client is closed before returning; injected ones are
    left to the caller.
    """
    owned_client: DockerHubClient | None = None
    if registry is None:
        owned_client = DockerHubClient(RegistryConfig.from_env())
        registry = owned_client
    try:
        orchestrator = SyncOrchestrator(
            accounts=AccountStore(session_factory),
            events=ActivityEventStore(session_factory),
            registry=registry,
            vault=vault or CredentialVault.from_config(AppConfig.from_env()),
            config=SyncConfig.from_env(),
        )
        return await orchestrator.sync_account(account_id)
    finally:
        if owned_client is not None:
            await owned_client.aclose()


ensure_broker_configured()


@dramatiq.actor(max_retries=0)
def sync_account_job(database_url: str, account_id: str) -> dict[str, typ.Any]:
    """Dramatiq actor reconciling one registry account.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL of the account and event store.
    account_id
        Account to reconcile.

    Returns
    -------
    dict[str, Any]
        The :class:`SyncResult` fields.

    Raises
    ------
    SyncAlreadyRunningError
        If the account is already syncing. Not retried.

    """
    session_factory = _get_or_create_session_factory(database_url)
    result = asyncio.run(_sync_account_async(session_factory, account_id))
    return dc.asdict(result)
