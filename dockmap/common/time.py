"""Calendar-day helpers shared by storage, aggregation and sync."""

from __future__ import annotations

import datetime as dt

from dockmap.errors import TimezoneAwareRequiredError


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def utc_today() -> dt.date:
    """Return the current calendar day in UTC."""
    return utcnow().date()


def calendar_day(value: dt.datetime) -> dt.datetime:
    """Truncate an aware timestamp to midnight UTC of its UTC calendar day.

    Raises
    ------
    TimezoneAwareRequiredError
        If ``value`` is naive.

    Examples
    --------
    >>> calendar_day(dt.datetime(2024, 1, 3, 23, 59, tzinfo=dt.UTC))
    datetime.datetime(2024, 1, 3, 0, 0, tzinfo=datetime.timezone.utc)

    """
    if value.tzinfo is None:
        raise TimezoneAwareRequiredError("event timestamp")
    as_utc = value.astimezone(dt.UTC)
    return dt.datetime(as_utc.year, as_utc.month, as_utc.day, tzinfo=dt.UTC)


def day_start(day: dt.date) -> dt.datetime:
    """Return midnight UTC for a calendar date."""
    return dt.datetime(day.year, day.month, day.day, tzinfo=dt.UTC)
