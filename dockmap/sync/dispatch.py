"""Hand-off points for connect-time and manual syncs.

:class:`AccountService` only needs somewhere to drop an account id. The
in-process :class:`~dockmap.sync.pool.SyncTaskPool` satisfies that directly;
:class:`DramatiqSyncDispatcher` instead enqueues ``sync_account_job`` so a
separate ``dramatiq dockmap.sync.actor`` worker performs the sync.
"""

from __future__ import annotations

import typing as typ

from dockmap.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import dramatiq

logger = get_logger(__name__)


class SyncDispatcher(typ.Protocol):
    """Anything that accepts an account id for background syncing."""

    def submit(self, account_id: str) -> object:
        """Schedule a sync of ``account_id`` without waiting for it."""
        ...

    async def shutdown(self, *, cancel: bool = False) -> None:
        """Stop accepting work."""
        ...


class DramatiqSyncDispatcher:
    """Send account syncs to Dramatiq workers.

    Parameters
    ----------
    database_url
        Async SQLAlchemy URL the workers open; it travels in each message.
    actor
        Actor to enqueue. Defaults to :func:`dockmap.sync.actor.sync_account_job`,
        which requires the broker to be configured first.

    """

    def __init__(
        self, database_url: str, *, actor: dramatiq.Actor | None = None
    ) -> None:
        """Bind the dispatcher to a database and actor."""
        if actor is None:
            from .actor import sync_account_job

            actor = sync_account_job
        self._database_url = database_url
        self._actor = actor

    def submit(self, account_id: str) -> dramatiq.Message:
        """Enqueue a sync of ``account_id``."""
        message = self._actor.send(
            database_url=self._database_url, account_id=account_id
        )
        log_info(
            logger,
            "Enqueued sync for account %s as message %s",
            account_id,
            message.message_id,
        )
        return message

    async def shutdown(self, *, cancel: bool = False) -> None:
        """Nothing to drain; queued messages belong to the broker."""
