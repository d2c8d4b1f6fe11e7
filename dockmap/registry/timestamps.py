"""Parsing for Docker Hub timestamps.

Docker Hub reports times such as ``2026-01-17T08:19:30.340959Z`` but is not
consistent about fraction width or offset notation. Formats are tried in a
fixed priority order; a value matching none of them is an explicit error
rather than a silent ``now()``.
"""

from __future__ import annotations

import datetime as dt
import re
import typing as typ

from .errors import TimestampParseError

# Fractions longer than microseconds are cut to six digits.
_RFC3339_NANO = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"\.(?P<fraction>\d{1,9})"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$"
)


def _micro_utc(value: str) -> dt.datetime:
    return dt.datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=dt.UTC)


def _micro_offset(value: str) -> dt.datetime:
    return dt.datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f%z")


def _rfc3339_nano(value: str) -> dt.datetime:
    match = _RFC3339_NANO.match(value)
    if match is None:
        raise ValueError(value)
    offset = match["offset"].replace("Z", "+00:00")
    fraction = match["fraction"][:6]
    return dt.datetime.strptime(
        f"{match['base']}.{fraction}{offset}", "%Y-%m-%dT%H:%M:%S.%f%z"
    )


def _rfc3339(value: str) -> dt.datetime:
    return dt.datetime.strptime(value, "%Y-%m-%dT%H:%M:%S%z")


_PARSERS: tuple[typ.Callable[[str], dt.datetime], ...] = (
    _micro_utc,
    _micro_offset,
    _rfc3339_nano,
    _rfc3339,
)


def parse_registry_timestamp(value: str) -> dt.datetime:
    """Parse a Docker Hub timestamp into an aware UTC datetime.

    Parameters
    ----------
    value:
        Raw timestamp string from a repository or tag payload.

    Returns
    -------
    datetime.datetime
        The instant, converted to UTC.

    Raises
    ------
    TimestampParseError
        If no known format matches.

    Examples
    --------
    >>> parse_registry_timestamp("2026-01-17T08:19:30.340959Z").isoformat()
    '2026-01-17T08:19:30.340959+00:00'
    >>> parse_registry_timestamp("2024-05-01T23:30:00-02:00").isoformat()
    '2024-05-02T01:30:00+00:00'

    """
    text = value.strip()
    for parser in _PARSERS:
        try:
            parsed = parser(text)
        except ValueError:
            continue
        return parsed.astimezone(dt.UTC)
    raise TimestampParseError(value)
