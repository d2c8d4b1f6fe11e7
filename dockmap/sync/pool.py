"""Bounded pool for fire-and-forget account syncs.

Connect and manual-sync requests submit work here and return immediately.
The pool caps how many syncs run at once and is drained or cancelled when
the process shuts down, so no sync outlives its event loop unobserved.
"""

from __future__ import annotations

import asyncio
import typing as typ

from dockmap.errors import DockmapError
from dockmap.logging import get_logger, log_exception, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .orchestrator import SyncResult

logger = get_logger(__name__)

type SyncRunner = typ.Callable[[str], cabc.Awaitable[SyncResult]]


class SyncPoolClosedError(RuntimeError):
    """Raised when work is submitted after :meth:`SyncTaskPool.shutdown`."""

    def __init__(self) -> None:
        """Use a fixed message for logging."""
        super().__init__("sync task pool is shut down")


class SyncTaskPool:
    """Run account syncs in the background with bounded concurrency.

    Parameters
    ----------
    runner
        Coroutine function performing one sync, typically
        :meth:`SyncOrchestrator.sync_account`.
    concurrency
        Maximum number of syncs in flight. Further submissions queue on an
        ``asyncio.Semaphore``.

    """

    def __init__(self, runner: SyncRunner, *, concurrency: int = 4) -> None:
        """Configure the runner and concurrency bound."""
        if concurrency < 1:
            msg = f"concurrency must be positive, got: {concurrency}"
            raise ValueError(msg)
        self._runner = runner
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task[SyncResult | None]] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        """Return the number of submitted syncs not yet finished."""
        return len(self._tasks)

    def submit(self, account_id: str) -> asyncio.Task[SyncResult | None]:
        """Schedule a sync for ``account_id`` without awaiting it.

        Must be called from a running event loop.

        Raises
        ------
        SyncPoolClosedError
            If the pool has been shut down.

        """
        if self._closed:
            raise SyncPoolClosedError
        task = asyncio.create_task(
            self._run(account_id), name=f"dockmap-sync-{account_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, account_id: str) -> SyncResult | None:
        async with self._semaphore:
            try:
                return await self._runner(account_id)
            except DockmapError as exc:
                log_warning(
                    logger,
                    "Background sync for account %s not run: %s",
                    account_id,
                    exc,
                )
            except Exception as exc:  # noqa: BLE001 - background task boundary
                log_exception(
                    logger, f"Background sync for account {account_id} failed", exc
                )
        return None

    async def shutdown(self, *, cancel: bool = False) -> None:
        """Stop accepting work and wait for in-flight syncs.

        Parameters
        ----------
        cancel
            Cancel running syncs instead of draining them. Cancelled syncs
            still release their account's in-progress flag.

        """
        self._closed = True
        tasks = list(self._tasks)
        if not tasks:
            return
        if cancel:
            for task in tasks:
                task.cancel()
        log_info(
            logger,
            "%s %d background sync(s) on shutdown",
            "Cancelling" if cancel else "Draining",
            len(tasks),
        )
        await asyncio.gather(*tasks, return_exceptions=True)
