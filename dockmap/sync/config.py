"""Configuration for per-account syncs and the background scheduler.

Usage
-----
Create a configuration with defaults:

>>> SchedulerConfig().sweep_interval_hours
6

Or load from environment variables:

>>> import os
>>> os.environ["DOCKMAP_SYNC_DEBOUNCE_HOURS"] = "2"
>>> SchedulerConfig.from_env().debounce
datetime.timedelta(seconds=7200)

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum

from dockmap.config import env_positive_float, env_positive_int, env_str


class SyncBackend(enum.StrEnum):
    """Where connect-time and manual syncs are executed."""

    POOL = "pool"
    DRAMATIQ = "dramatiq"


@dc.dataclass(frozen=True, slots=True)
class SyncConfig:
    """Bounds applied to a single account sync and where syncs run.

    Attributes
    ----------
    timeout_s
        Wall-clock limit for one reconciliation. Default is 300 seconds.
    concurrency
        Maximum number of syncs the task pool runs at once. Default is 4.
    backend
        ``pool`` runs connect-time and manual syncs in the API process;
        ``dramatiq`` enqueues them for a worker. Default is ``pool``.
    broker_url
        Redis URL of the Dramatiq broker. Only read by the ``dramatiq``
        backend and its workers.

    """

    timeout_s: float = 300.0
    concurrency: int = 4
    backend: SyncBackend = SyncBackend.POOL
    broker_url: str = ""

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Read the ``DOCKMAP_SYNC_*`` variables and ``DOCKMAP_BROKER_URL``.

        Raises
        ------
        ValueError
            If ``DOCKMAP_SYNC_BACKEND`` names an unknown backend, or a
            numeric variable is not positive.

        """
        raw_backend = env_str("DOCKMAP_SYNC_BACKEND", SyncBackend.POOL).lower()
        try:
            backend = SyncBackend(raw_backend)
        except ValueError as exc:
            choices = ", ".join(b.value for b in SyncBackend)
            msg = f"DOCKMAP_SYNC_BACKEND must be one of {choices}, got: {raw_backend!r}"
            raise ValueError(msg) from exc
        return cls(
            timeout_s=env_positive_float("DOCKMAP_SYNC_TIMEOUT_S", 300.0),
            concurrency=env_positive_int("DOCKMAP_SYNC_CONCURRENCY", 4),
            backend=backend,
            broker_url=env_str("DOCKMAP_BROKER_URL", ""),
        )


@dc.dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Timing of the reconciliation sweep and retention cleanup.

    Attributes
    ----------
    sweep_interval_hours
        Hours between reconciliation sweeps. Default is 6.
    debounce_hours
        Accounts synced more recently than this are skipped by the sweep.
        Default is 4.
    pause_between_accounts_s
        Sleep between consecutive syncs within one sweep. Default is 2.
    retention_days
        Events older than this many days are removed. Default is 365.
    cleanup_hour
        UTC hour at which the daily retention cleanup runs. Default is 0.

    """

    sweep_interval_hours: int = 6
    debounce_hours: int = 4
    pause_between_accounts_s: float = 2.0
    retention_days: int = 365
    cleanup_hour: int = 0

    @property
    def debounce(self) -> dt.timedelta:
        """Return the debounce window as a timedelta."""
        return dt.timedelta(hours=self.debounce_hours)

    @property
    def retention(self) -> dt.timedelta:
        """Return the retention horizon as a timedelta."""
        return dt.timedelta(days=self.retention_days)

    @classmethod
    def from_env(cls) -> SchedulerConfig:
        """Create configuration from ``DOCKMAP_*`` environment variables.

        Reads ``DOCKMAP_SWEEP_INTERVAL_HOURS``, ``DOCKMAP_SYNC_DEBOUNCE_HOURS``
        and ``DOCKMAP_RETENTION_DAYS``.

        Raises
        ------
        ValueError
            If any variable is set but is not a positive integer.

        """
        return cls(
            sweep_interval_hours=env_positive_int("DOCKMAP_SWEEP_INTERVAL_HOURS", 6),
            debounce_hours=env_positive_int("DOCKMAP_SYNC_DEBOUNCE_HOURS", 4),
            retention_days=env_positive_int("DOCKMAP_RETENTION_DAYS", 365),
        )
