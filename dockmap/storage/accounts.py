"""Account lookups and the sync status state machine."""

from __future__ import annotations

import typing as typ

from sqlalchemy import ColumnElement, delete, or_, select, update

from dockmap.common.time import utcnow

from .models import Account

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

type SessionFactory = async_sessionmaker[AsyncSession]


def _live() -> ColumnElement[bool]:
    return Account.deleted_at.is_(None)


class AccountStore:
    """Queries over :class:`Account` rows.

    Soft-deleted rows are excluded from every lookup here except
    :func:`find_including_deleted`, which the connect flow uses to detect
    username conflicts.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for account operations."""
        self._session_factory = session_factory

    async def get(self, account_id: str) -> Account | None:
        """Return the live account with ``account_id``."""
        async with self._session_factory() as session:
            return await session.scalar(
                select(Account).where(Account.id == account_id, _live())
            )

    async def get_by_user(self, user_id: str) -> Account | None:
        """Return the live account linked to local ``user_id``."""
        async with self._session_factory() as session:
            return await load_live_by_user(session, user_id)

    async def get_by_username(self, registry_username: str) -> Account | None:
        """Return the live account for a registry username."""
        async with self._session_factory() as session:
            return await session.scalar(
                select(Account).where(
                    Account.registry_username == registry_username, _live()
                )
            )

    async def list_refreshable(self) -> list[Account]:
        """Return live accounts that are active and opted into auto refresh."""
        stmt = (
            select(Account)
            .where(Account.is_active.is_(True), Account.auto_refresh.is_(True), _live())
            .order_by(Account.created_at, Account.id)
        )
        async with self._session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def try_acquire_sync(self, account_id: str) -> bool:
        """Atomically flip ``sync_in_progress`` from false to true.

        The update commits before returning so that a concurrent caller sees
        the flag immediately. Returns False when the account is already
        syncing or does not exist.
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(Account)
                .where(
                    Account.id == account_id,
                    Account.sync_in_progress.is_(False),
                    _live(),
                )
                .values(sync_in_progress=True, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)

    async def release_sync(
        self, account_id: str, *, synced_at: dt.datetime, error_message: str
    ) -> None:
        """Clear the sync flag and record the outcome of the run."""
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    sync_in_progress=False,
                    last_sync_at=synced_at,
                    last_sync_error=error_message,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )


async def find_including_deleted(
    session: AsyncSession, *, user_id: str, registry_username: str
) -> list[Account]:
    """Return every row, soft-deleted or not, for the user or the username."""
    stmt = select(Account).where(
        or_(
            Account.user_id == user_id,
            Account.registry_username == registry_username,
        )
    )
    return list((await session.scalars(stmt)).all())


async def delete_accounts(
    session: AsyncSession, account_ids: cabc.Collection[str]
) -> int:
    """Hard-delete account rows inside the caller's transaction.

    Events are not removed here; pair with
    :func:`dockmap.storage.events.delete_events_for_accounts`.
    """
    if not account_ids:
        return 0
    result = await session.execute(
        delete(Account)
        .where(Account.id.in_(list(account_ids)))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def load_live_by_user(session: AsyncSession, user_id: str) -> Account | None:
    """Return the live account for ``user_id`` within ``session``."""
    return await session.scalar(
        select(Account).where(Account.user_id == user_id, _live())
    )
