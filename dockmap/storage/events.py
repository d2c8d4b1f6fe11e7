"""Idempotent persistence of per-day activity observations."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from dockmap.common.time import calendar_day, day_start, utcnow
from dockmap.logging import get_logger, log_debug

from .models import ActivityEvent, EventType

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

type SessionFactory = async_sessionmaker[AsyncSession]


class EventUpsertError(RuntimeError):
    """Raised when an upsert loses a uniqueness race twice in a row."""

    def __init__(self) -> None:
        """Include a deterministic error message for logging."""
        super().__init__("expected existing activity_event after rollback")


@dc.dataclass(frozen=True, slots=True)
class EventKey:
    """Uniqueness key of an :class:`ActivityEvent` row."""

    account_id: str
    event_type: EventType
    event_date: dt.datetime
    repository: str
    tag: str = ""


class ActivityEventStore:
    """Keyed counter store for registry activity.

    Every write truncates its timestamp to the calendar day before keying, so
    two observations of the same repository and tag on the same UTC day land
    on one row with ``count`` incremented.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for event operations."""
        self._session_factory = session_factory

    async def upsert_event(
        self,
        account_id: str,
        event_type: EventType,
        occurred_at: dt.datetime,
        repository: str,
        tag: str = "",
    ) -> bool:
        """Record one observation, returning True when a new row was created.

        The increment is a single ``UPDATE ... SET count = count + 1``; when
        no row matches, a count of one is inserted. A concurrent insert of the
        same key surfaces as an ``IntegrityError`` and is resolved by retrying
        the increment once.

        Raises
        ------
        TimezoneAwareRequiredError
            If ``occurred_at`` is naive.

        """
        key = EventKey(
            account_id=account_id,
            event_type=EventType(event_type),
            event_date=calendar_day(occurred_at),
            repository=repository,
            tag=tag,
        )
        try:
            return await self._upsert_once(key)
        except IntegrityError as exc:
            log_debug(
                logger,
                "Concurrent insert for %s/%s on %s; retrying increment",
                repository,
                tag,
                key.event_date.date().isoformat(),
            )
            async with self._session_factory() as session, session.begin():
                if not await _increment(session, key):
                    raise EventUpsertError from exc
            return False

    async def _upsert_once(self, key: EventKey) -> bool:
        async with self._session_factory() as session, session.begin():
            if await _increment(session, key):
                return False
            session.add(
                ActivityEvent(
                    account_id=key.account_id,
                    event_type=key.event_type.value,
                    event_date=key.event_date,
                    repository=key.repository,
                    tag=key.tag,
                    count=1,
                )
            )
        return True

    async def delete_older_than(self, cutoff: dt.datetime) -> int:
        """Remove events whose calendar day precedes ``cutoff``."""
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(ActivityEvent)
                .where(ActivityEvent.event_date < cutoff)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0

    async def delete_for_account(self, account_id: str) -> int:
        """Remove every event owned by ``account_id``."""
        async with self._session_factory() as session, session.begin():
            return await delete_events_for_accounts(session, [account_id])

    async def events_in_window(
        self, account_id: str, start: dt.date, end: dt.date
    ) -> list[ActivityEvent]:
        """Return events for ``account_id`` on days ``start`` to ``end`` inclusive."""
        stmt = (
            select(ActivityEvent)
            .where(
                ActivityEvent.account_id == account_id,
                ActivityEvent.event_date >= day_start(start),
                ActivityEvent.event_date < day_start(end + dt.timedelta(days=1)),
            )
            .order_by(ActivityEvent.event_date, ActivityEvent.id)
        )
        async with self._session_factory() as session:
            return list((await session.scalars(stmt)).all())


async def _increment(session: AsyncSession, key: EventKey) -> bool:
    result = await session.execute(
        update(ActivityEvent)
        .where(
            ActivityEvent.account_id == key.account_id,
            ActivityEvent.event_type == key.event_type.value,
            ActivityEvent.event_date == key.event_date,
            ActivityEvent.repository == key.repository,
            ActivityEvent.tag == key.tag,
        )
        .values(count=ActivityEvent.count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


async def delete_events_for_accounts(
    session: AsyncSession, account_ids: cabc.Collection[str]
) -> int:
    """Delete events for ``account_ids`` inside the caller's transaction."""
    if not account_ids:
        return 0
    result = await session.execute(
        delete(ActivityEvent)
        .where(ActivityEvent.account_id.in_(list(account_ids)))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
