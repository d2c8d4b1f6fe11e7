"""Structured log events for account syncs, sweeps and retention cleanup.

Every event is a single ``[event.type] key=value ...`` line so that log
aggregators can parse counts and durations without a metrics backend.
"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from dockmap.errors import AuthError, ConflictError, NotFoundError
from dockmap.logging import get_logger, log_error, log_info, log_warning
from dockmap.registry import RegistryAPIError, RegistryResponseShapeError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .orchestrator import SyncResult
    from .scheduler import SweepResult

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync observability."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_FAILED = "sync.run.failed"
    RESOURCE_SKIPPED = "sync.resource.skipped"
    SWEEP_COMPLETED = "sync.sweep.completed"
    CLEANUP_COMPLETED = "retention.cleanup.completed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (RegistryResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (AuthError, ErrorCategory.AUTHENTICATION),
    (NotFoundError, ErrorCategory.NOT_FOUND),
    (ConflictError, ErrorCategory.CONFLICT),
    (TimeoutError, ErrorCategory.TIMEOUT),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Registry failures with a 5xx status or no status at all (transport
    errors) are transient; other registry statuses are client errors.
    """
    if isinstance(exc, RegistryAPIError):
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync events via femtologging.

    Credentials never appear in these events; only account ids, usernames,
    counts and error classifications do.
    """

    def log_run_started(self, *, account_id: str, username: str) -> None:
        """Log the start of one account sync."""
        log_info(
            logger,
            "[%s] account_id=%s username=%s",
            SyncEventType.RUN_STARTED,
            account_id,
            username,
        )

    def log_run_completed(self, result: SyncResult, duration: dt.timedelta) -> None:
        """Log a sync that finished without a hard failure."""
        log_info(
            logger,
            "[%s] account_id=%s username=%s duration_seconds=%.3f "
            "repositories_processed=%d events_created=%d events_incremented=%d "
            "soft_failures=%d",
            SyncEventType.RUN_COMPLETED,
            result.account_id,
            result.username,
            duration.total_seconds(),
            result.repositories_processed,
            result.events_created,
            result.events_incremented,
            result.soft_failures,
        )

    def log_run_failed(
        self,
        *,
        account_id: str,
        username: str,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a hard sync failure with error categorization."""
        category = categorize_error(error)
        log_error(
            logger,
            "[%s] account_id=%s username=%s duration_seconds=%.3f "
            "error_type=%s error_category=%s error_message=%s",
            SyncEventType.RUN_FAILED,
            account_id,
            username,
            duration.total_seconds(),
            type(error).__name__,
            category,
            str(error),
            exc_info=error,
        )

    def log_resource_skipped(
        self,
        *,
        account_id: str,
        resource: str,
        reason: str,
        error: BaseException | None = None,
    ) -> None:
        """Log a soft failure on one repository or tag."""
        category = categorize_error(error) if error is not None else None
        log_warning(
            logger,
            "[%s] account_id=%s resource=%s reason=%s error_category=%s",
            SyncEventType.RESOURCE_SKIPPED,
            account_id,
            resource,
            reason,
            category,
        )

    def log_sweep_completed(self, result: SweepResult, duration: dt.timedelta) -> None:
        """Log the outcome of one reconciliation sweep."""
        log_info(
            logger,
            "[%s] duration_seconds=%.3f eligible=%d synced=%d failed=%d "
            "skipped_in_progress=%d skipped_recent=%d",
            SyncEventType.SWEEP_COMPLETED,
            duration.total_seconds(),
            result.eligible,
            result.synced,
            result.failed,
            result.skipped_in_progress,
            result.skipped_recent,
        )

    def log_cleanup_completed(self, *, cutoff: dt.datetime, deleted: int) -> None:
        """Log the outcome of a retention cleanup."""
        log_info(
            logger,
            "[%s] cutoff=%s events_deleted=%d",
            SyncEventType.CLEANUP_COMPLETED,
            cutoff.isoformat(),
            deleted,
        )
