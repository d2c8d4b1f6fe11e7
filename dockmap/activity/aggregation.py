"""Turn stored activity events into a gap-free per-day series.

The intensity scale is relative to the busiest day inside the requested
window, so the same day can land in a different level when the window
length changes.
"""

from __future__ import annotations

import collections
import datetime as dt
import typing as typ

import msgspec

from dockmap.common.time import utc_today
from dockmap.errors import ValidationError

from .models import ActivitySeries, ActivitySummary, ActivityTotals

MIN_DAYS = 1
MAX_DAYS = 365

# (exclusive lower bound on count / max_count, level), highest first.
_LEVEL_THRESHOLDS: tuple[tuple[float, int], ...] = (
    (0.75, 4),
    (0.50, 3),
    (0.25, 2),
)


class EventLike(typ.Protocol):
    """Fields of a stored event that aggregation reads."""

    event_type: str
    event_date: dt.datetime
    count: int


class _DayTally:
    __slots__ = ("builds", "pulls", "pushes")

    def __init__(self) -> None:
        self.pushes = 0
        self.pulls = 0
        self.builds = 0

    @property
    def total(self) -> int:
        return self.pushes + self.pulls + self.builds

    def add(self, event_type: str, count: int) -> None:
        match event_type:
            case "push":
                self.pushes += count
            case "pull":
                self.pulls += count
            case "build":
                self.builds += count
            case _:
                msg = f"unknown activity kind: {event_type!r}"
                raise ValueError(msg)


def calculate_level(count: int, max_count: int) -> int:
    """Map a day's count onto the 0-4 intensity scale.

    Examples
    --------
    >>> calculate_level(10, 10), calculate_level(5, 10), calculate_level(1, 10)
    (4, 2, 1)
    >>> calculate_level(0, 10), calculate_level(3, 0)
    (0, 0)

    """
    if count <= 0 or max_count <= 0:
        return 0
    ratio = count / max_count
    for threshold, level in _LEVEL_THRESHOLDS:
        if ratio > threshold:
            return level
    return 1


def window_for(days: int, *, today: dt.date | None = None) -> tuple[dt.date, dt.date]:
    """Return the ``(start, end)`` calendar days for a ``days``-long lookback.

    The window ends today and starts ``days`` days earlier, both inclusive.

    Raises
    ------
    ValidationError
        If ``days`` is outside 1-365.

    """
    if not MIN_DAYS <= days <= MAX_DAYS:
        raise ValidationError.out_of_range("days", days, MIN_DAYS, MAX_DAYS)
    end = today or utc_today()
    return end - dt.timedelta(days=days), end


def summarize(
    events: typ.Iterable[EventLike],
    window_start: dt.date,
    window_end: dt.date,
) -> list[ActivitySummary]:
    """Aggregate events into exactly one summary per day of the window.

    Parameters
    ----------
    events
        Stored events in any order. Events outside the window are ignored
        and do not influence the intensity scale.
    window_start, window_end
        Inclusive calendar-day bounds.

    Returns
    -------
    list[ActivitySummary]
        ``(window_end - window_start).days + 1`` entries in ascending date
        order; days with no events have zero counts and level 0.

    """
    if window_end < window_start:
        msg = "window end precedes window start"
        raise ValidationError(msg, field="window")

    tallies: dict[dt.date, _DayTally] = collections.defaultdict(_DayTally)
    for event in events:
        day = event.event_date.astimezone(dt.UTC).date()
        if window_start <= day <= window_end:
            tallies[day].add(event.event_type, event.count)

    max_count = max((tally.total for tally in tallies.values()), default=0)

    summaries: list[ActivitySummary] = []
    day = window_start
    while day <= window_end:
        tally = tallies.get(day)
        if tally is None:
            summaries.append(ActivitySummary(date=day.isoformat()))
        else:
            summaries.append(
                ActivitySummary(
                    date=day.isoformat(),
                    total_count=tally.total,
                    pushes=tally.pushes,
                    pulls=tally.pulls,
                    builds=tally.builds,
                    level=calculate_level(tally.total, max_count),
                )
            )
        day += dt.timedelta(days=1)
    return summaries


def build_series(
    username: str, days: int, summaries: typ.Sequence[ActivitySummary]
) -> ActivitySeries:
    """Attach window totals to a summary list."""
    totals = ActivityTotals(
        activities=sum(s.total_count for s in summaries),
        pushes=sum(s.pushes for s in summaries),
        pulls=sum(s.pulls for s in summaries),
        builds=sum(s.builds for s in summaries),
    )
    return ActivitySeries(
        username=username, days=days, totals=totals, activity=tuple(summaries)
    )


def encode_series(series: ActivitySeries) -> bytes:
    """Serialise a series to the public JSON artifact."""
    return msgspec.json.encode(series)
