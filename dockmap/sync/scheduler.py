"""Background reconciliation sweep and retention cleanup.

Two APScheduler jobs run on the process event loop:

- ``reconciliation_sweep`` every ``sweep_interval_hours``: syncs every
  active, auto-refreshing account that is neither mid-sync nor synced within
  the debounce window, one at a time with a pause between accounts.
- ``retention_cleanup`` daily at ``cleanup_hour``:00 UTC: deletes events
  older than the retention horizon.

Both jobs are also callable directly (:meth:`SyncScheduler.run_sweep`,
:meth:`SyncScheduler.run_retention_cleanup`) for tests and operators.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import typing as typ

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dockmap.common.time import utcnow
from dockmap.errors import ConflictError, NotFoundError
from dockmap.logging import get_logger, log_exception, log_info

from .config import SchedulerConfig
from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from dockmap.storage import Account, AccountStore, ActivityEventStore

    from .orchestrator import SyncOrchestrator

logger = get_logger(__name__)

SWEEP_JOB_ID = "reconciliation_sweep"
CLEANUP_JOB_ID = "retention_cleanup"


@dc.dataclass(slots=True)
class SweepResult:
    """Counts from one reconciliation sweep."""

    eligible: int = 0
    synced: int = 0
    failed: int = 0
    skipped_in_progress: int = 0
    skipped_recent: int = 0


class SyncScheduler:
    """Own the APScheduler instance driving periodic syncs.

    Parameters
    ----------
    orchestrator
        Orchestrator used for each account sync.
    accounts
        Store queried for refreshable accounts.
    events
        Store pruned by the retention cleanup.
    config
        Job timing; defaults to :class:`SchedulerConfig`.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        orchestrator: SyncOrchestrator,
        accounts: AccountStore,
        events: ActivityEventStore,
        config: SchedulerConfig | None = None,
        event_logger: SyncEventLogger | None = None,
        clock: typ.Callable[[], dt.datetime] = utcnow,
        sleep: typ.Callable[[float], cabc.Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Store collaborators; jobs are registered by :meth:`start`."""
        self._orchestrator = orchestrator
        self._accounts = accounts
        self._events = events
        self._config = config or SchedulerConfig()
        self._event_logger = event_logger or SyncEventLogger()
        self._clock = clock
        self._sleep = sleep
        self._scheduler = AsyncIOScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        """Return True while the underlying scheduler is started."""
        return self._scheduler.running

    def start(self) -> None:
        """Register both jobs and start the scheduler on the running loop."""
        self._scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(hours=self._config.sweep_interval_hours),
            id=SWEEP_JOB_ID,
            name="Registry reconciliation sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.add_job(
            self.run_retention_cleanup,
            trigger=CronTrigger(hour=self._config.cleanup_hour, minute=0),
            id=CLEANUP_JOB_ID,
            name="Activity retention cleanup",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        log_info(
            logger,
            "Sync scheduler started: sweep every %dh, cleanup daily at %02d:00 UTC",
            self._config.sweep_interval_hours,
            self._config.cleanup_hour,
        )

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log_info(logger, "Sync scheduler stopped")

    def _is_recent(self, account: Account, now: dt.datetime) -> bool:
        return (
            account.last_sync_at is not None
            and now - account.last_sync_at < self._config.debounce
        )

    async def run_sweep(self) -> SweepResult:
        """Sync every due account sequentially.

        A failure for one account is logged and counted; the sweep moves on
        to the next account.
        """
        started = self._clock()
        accounts = await self._accounts.list_refreshable()
        result = SweepResult(eligible=len(accounts))
        attempted = False
        for account in accounts:
            if account.sync_in_progress:
                result.skipped_in_progress += 1
                continue
            if self._is_recent(account, started):
                result.skipped_recent += 1
                continue
            if attempted:
                await self._sleep(self._config.pause_between_accounts_s)
            attempted = True
            await self._sync_one(account, result)

        self._event_logger.log_sweep_completed(result, self._clock() - started)
        return result

    async def _sync_one(self, account: Account, result: SweepResult) -> None:
        try:
            outcome = await self._orchestrator.sync_account(account.id)
        except ConflictError:
            result.skipped_in_progress += 1
            return
        except NotFoundError:
            # Disconnected between listing and sync.
            return
        except Exception as exc:  # noqa: BLE001 - one account must not stop the sweep
            result.failed += 1
            log_exception(logger, f"Sweep sync failed for account {account.id}", exc)
            return
        if outcome.succeeded:
            result.synced += 1
        else:
            result.failed += 1

    async def run_retention_cleanup(self) -> int:
        """Delete events older than ``now - retention``.

        Returns
        -------
        int
            Number of event rows removed.

        """
        cutoff = self._clock() - self._config.retention
        deleted = await self._events.delete_older_than(cutoff)
        self._event_logger.log_cleanup_completed(cutoff=cutoff, deleted=deleted)
        return deleted
