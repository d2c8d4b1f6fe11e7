"""Account sync orchestration, background pool and scheduler."""

from __future__ import annotations

from .config import SchedulerConfig, SyncBackend, SyncConfig
from .dispatch import DramatiqSyncDispatcher, SyncDispatcher
from .observability import (
    ErrorCategory,
    SyncEventLogger,
    SyncEventType,
    categorize_error,
)
from .orchestrator import (
    AUTH_FAILED,
    REPOSITORIES_FAILED,
    TIMED_OUT,
    UNEXPECTED_FAILURE,
    USER_NOT_FOUND,
    SyncOrchestrator,
    SyncResult,
)
from .pool import SyncPoolClosedError, SyncTaskPool
from .scheduler import SweepResult, SyncScheduler

__all__ = [
    "AUTH_FAILED",
    "REPOSITORIES_FAILED",
    "TIMED_OUT",
    "UNEXPECTED_FAILURE",
    "USER_NOT_FOUND",
    "DramatiqSyncDispatcher",
    "ErrorCategory",
    "SchedulerConfig",
    "SweepResult",
    "SyncBackend",
    "SyncConfig",
    "SyncDispatcher",
    "SyncEventLogger",
    "SyncEventType",
    "SyncOrchestrator",
    "SyncPoolClosedError",
    "SyncResult",
    "SyncScheduler",
    "SyncTaskPool",
    "categorize_error",
]
