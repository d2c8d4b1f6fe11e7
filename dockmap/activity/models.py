"""Derived, read-only activity aggregates."""

from __future__ import annotations

import msgspec


class ActivitySummary(msgspec.Struct, kw_only=True, frozen=True):
    """One calendar day of activity.

    Attributes
    ----------
    date
        ISO ``YYYY-MM-DD`` calendar day (UTC).
    total_count
        Sum of all event counts on the day.
    pushes, pulls, builds
        Per-kind breakdown of ``total_count``.
    level
        Intensity bucket 0-4 relative to the busiest day of the window.

    """

    date: str
    total_count: int = 0
    pushes: int = 0
    pulls: int = 0
    builds: int = 0
    level: int = 0


class ActivityTotals(msgspec.Struct, kw_only=True, frozen=True):
    """Window-wide sums."""

    activities: int = 0
    pushes: int = 0
    pulls: int = 0
    builds: int = 0


class ActivitySeries(msgspec.Struct, kw_only=True, frozen=True):
    """Public activity artifact for one registry user."""

    username: str
    days: int
    totals: ActivityTotals
    activity: tuple[ActivitySummary, ...] = ()
