"""Per-day activity aggregation and JSON encoding."""

from __future__ import annotations

from .aggregation import (
    MAX_DAYS,
    MIN_DAYS,
    build_series,
    calculate_level,
    encode_series,
    summarize,
    window_for,
)
from .models import ActivitySeries, ActivitySummary, ActivityTotals

__all__ = [
    "MAX_DAYS",
    "MIN_DAYS",
    "ActivitySeries",
    "ActivitySummary",
    "ActivityTotals",
    "build_series",
    "calculate_level",
    "encode_series",
    "summarize",
    "window_for",
]
