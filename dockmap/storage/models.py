"""Persistence models for registry accounts and activity events."""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from dockmap.common.time import utcnow
from dockmap.errors import TimezoneAwareRequiredError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class EventType(enum.StrEnum):
    """Kinds of registry activity recorded per calendar day."""

    PUSH = "push"
    PULL = "pull"
    BUILD = "build"


class Base(DeclarativeBase):
    """Declarative base for dockmap tables."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError("stored datetime")
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class Account(Base):
    """A local user's link to one Docker Hub identity.

    ``deleted_at`` marks soft-deleted rows. Normal lookups ignore them, but
    the connect flow inspects them when checking for username conflicts and
    removes them before inserting a fresh row.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_accounts_user"),
        UniqueConstraint("registry_username", name="uq_accounts_registry_username"),
        Index("ix_accounts_refresh", "is_active", "auto_refresh"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64))
    registry_username: Mapped[str] = mapped_column(String(255))
    encrypted_token: Mapped[str] = mapped_column(Text())
    token_iv: Mapped[str] = mapped_column(String(64))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_refresh: Mapped[bool] = mapped_column(Boolean, default=True)
    sync_in_progress: Mapped[bool] = mapped_column(Boolean, default=False)
    last_sync_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    last_sync_error: Mapped[str] = mapped_column(Text(), default="")
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )
    deleted_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )


class ActivityEvent(Base):
    """Per-day count of one kind of activity on one repository or tag.

    ``tag`` is the empty string for repository-level observations.
    """

    __tablename__ = "activity_events"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "event_date",
            "event_type",
            "repository",
            "tag",
            name="uq_activity_events_key",
        ),
        Index("ix_activity_events_account_date", "account_id", "event_date"),
        Index("ix_activity_events_date", "event_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(16))
    event_date: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    repository: Mapped[str] = mapped_column(String(255))
    tag: Mapped[str] = mapped_column(String(255), default="")
    count: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


async def init_storage(engine: AsyncEngine) -> None:
    """Create all dockmap tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
