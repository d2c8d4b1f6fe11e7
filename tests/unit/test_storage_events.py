"""Unit tests for the idempotent activity event store."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy import func, select

from dockmap.errors import TimezoneAwareRequiredError
from dockmap.storage import ActivityEvent, ActivityEventStore, EventType
from tests.fakes import add_account

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from dockmap.vault import CredentialVault

MORNING = dt.datetime(2024, 3, 10, 8, 0, tzinfo=dt.UTC)
EVENING = dt.datetime(2024, 3, 10, 22, 45, tzinfo=dt.UTC)


async def _rows(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[ActivityEvent]:
    async with session_factory() as session:
        return list(
            (
                await session.scalars(
                    select(ActivityEvent).order_by(
                        ActivityEvent.event_date, ActivityEvent.repository
                    )
                )
            ).all()
        )


class TestUpsertEvent:
    """Tests for ActivityEventStore.upsert_event."""

    @pytest.mark.asyncio
    async def test_same_day_observations_share_one_row(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Two observations on one UTC day yield one row with count 2."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)

        created = await store.upsert_event(
            account.id, EventType.PUSH, MORNING, "app", "latest"
        )
        incremented = await store.upsert_event(
            account.id, EventType.PUSH, EVENING, "app", "latest"
        )

        rows = await _rows(session_factory)
        assert (created, incremented) == (True, False)
        assert len(rows) == 1
        assert rows[0].count == 2
        assert rows[0].event_date == dt.datetime(2024, 3, 10, tzinfo=dt.UTC)

    @pytest.mark.asyncio
    async def test_key_components_separate_rows(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Tag, repository, kind and day each distinguish rows."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)

        await store.upsert_event(account.id, EventType.PUSH, MORNING, "app")
        await store.upsert_event(account.id, EventType.PUSH, MORNING, "app", "v1")
        await store.upsert_event(account.id, EventType.PUSH, MORNING, "web")
        await store.upsert_event(account.id, EventType.PULL, MORNING, "app")
        await store.upsert_event(
            account.id, EventType.PUSH, MORNING + dt.timedelta(days=1), "app"
        )

        rows = await _rows(session_factory)
        assert len(rows) == 5
        assert all(row.count == 1 for row in rows)

    @pytest.mark.asyncio
    async def test_offset_timestamps_key_on_the_utc_day(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """A late-evening local time lands on the following UTC day."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)
        local = dt.datetime(
            2024, 3, 10, 23, 30, tzinfo=dt.timezone(dt.timedelta(hours=-2))
        )

        await store.upsert_event(account.id, EventType.PUSH, local, "app")

        rows = await _rows(session_factory)
        assert rows[0].event_date == dt.datetime(2024, 3, 11, tzinfo=dt.UTC)

    @pytest.mark.asyncio
    async def test_naive_timestamp_rejected(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Naive datetimes are refused before anything is written."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)

        with pytest.raises(TimezoneAwareRequiredError):
            await store.upsert_event(
                account.id, EventType.PUSH, dt.datetime(2024, 3, 10), "app"
            )
        assert await _rows(session_factory) == []

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Only push, pull and build are recorded."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)

        with pytest.raises(ValueError, match="star"):
            await store.upsert_event(
                account.id,
                typ.cast("EventType", "star"),
                MORNING,
                "app",
            )


class TestWindowAndRetention:
    """Tests for window queries and deletions."""

    @pytest.mark.asyncio
    async def test_events_in_window_is_inclusive(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Both window bounds are included and neighbours are excluded."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)
        for day in (9, 10, 11, 12):
            await store.upsert_event(
                account.id,
                EventType.PUSH,
                dt.datetime(2024, 3, day, 12, tzinfo=dt.UTC),
                "app",
            )

        events = await store.events_in_window(
            account.id, dt.date(2024, 3, 10), dt.date(2024, 3, 11)
        )

        assert [e.event_date.day for e in events] == [10, 11]

    @pytest.mark.asyncio
    async def test_delete_older_than_keeps_cutoff_day(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Rows strictly before the cutoff day are removed."""
        account = await add_account(session_factory, vault)
        store = ActivityEventStore(session_factory)
        for day in (1, 2, 3):
            await store.upsert_event(
                account.id,
                EventType.PUSH,
                dt.datetime(2024, 3, day, 6, tzinfo=dt.UTC),
                "app",
            )

        deleted = await store.delete_older_than(dt.datetime(2024, 3, 2, tzinfo=dt.UTC))

        rows = await _rows(session_factory)
        assert deleted == 1
        assert [row.event_date.day for row in rows] == [2, 3]

    @pytest.mark.asyncio
    async def test_delete_for_account_leaves_others(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
    ) -> None:
        """Deleting one account's events does not touch another's."""
        first = await add_account(session_factory, vault)
        second = await add_account(
            session_factory, vault, user_id="user-2", username="other"
        )
        store = ActivityEventStore(session_factory)
        await store.upsert_event(first.id, EventType.PUSH, MORNING, "app")
        await store.upsert_event(second.id, EventType.PUSH, MORNING, "app")

        assert await store.delete_for_account(first.id) == 1

        async with session_factory() as session:
            remaining = await session.scalar(
                select(func.count()).select_from(ActivityEvent)
            )
        assert remaining == 1
