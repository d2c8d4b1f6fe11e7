"""Account and activity event persistence."""

from __future__ import annotations

from .accounts import (
    AccountStore,
    delete_accounts,
    find_including_deleted,
    load_live_by_user,
)
from .events import (
    ActivityEventStore,
    EventKey,
    EventUpsertError,
    delete_events_for_accounts,
)
from .models import (
    Account,
    ActivityEvent,
    Base,
    EventType,
    UTCDateTime,
    init_storage,
)

__all__ = [
    "Account",
    "AccountStore",
    "ActivityEvent",
    "ActivityEventStore",
    "Base",
    "EventKey",
    "EventType",
    "EventUpsertError",
    "UTCDateTime",
    "delete_accounts",
    "delete_events_for_accounts",
    "find_including_deleted",
    "init_storage",
    "load_live_by_user",
]
