"""Core-facing operations on registry accounts and their activity.

:class:`AccountService` is the single entry point used by the HTTP layer.
It owns the connect/disconnect transactions and delegates syncing to the
sync dispatcher and reading to the aggregator and renderer.

Usage
-----
>>> service = AccountService(
...     session_factory,
...     vault=vault,
...     registry=DockerHubClient(),
...     dispatcher=pool,
... )
>>> view = await service.connect_account("user-1", "octo", "dckr_pat_...")
>>> svg = await service.render_image("octo", RenderOptions(days=90))

"""

from __future__ import annotations

import typing as typ

from dockmap.activity import build_series, summarize, window_for
from dockmap.common.time import utc_today
from dockmap.errors import (
    AccountNotFoundError,
    SyncAlreadyRunningError,
    UsernameTakenError,
    ValidationError,
)
from dockmap.logging import get_logger, log_info
from dockmap.rendering import list_themes, render_svg
from dockmap.storage import (
    Account,
    AccountStore,
    ActivityEventStore,
    delete_accounts,
    delete_events_for_accounts,
    find_including_deleted,
    load_live_by_user,
)

from .models import AccountView

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from dockmap.activity import ActivitySeries
    from dockmap.registry import RegistryClient
    from dockmap.rendering import RenderOptions, Theme
    from dockmap.sync import SyncDispatcher
    from dockmap.vault import CredentialVault

logger = get_logger(__name__)

type SessionFactory = async_sessionmaker[AsyncSession]


def _require(value: str, field: str) -> str:
    text = value.strip()
    if not text:
        raise ValidationError.required(field)
    return text


class AccountService:
    """Connect, inspect, sync and render registry accounts.

    Parameters
    ----------
    session_factory
        Async session factory for the account and event tables.
    vault
        Vault sealing tokens on connect.
    registry
        Client validating usernames and tokens on connect.
    dispatcher
        Receives connect-time and manual syncs, either the in-process pool
        or the Dramatiq queue. When
        ``None`` no sync is scheduled, which suits read-only deployments.
    today
        Clock for the end of activity windows.

    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        vault: CredentialVault,
        registry: RegistryClient,
        dispatcher: SyncDispatcher | None = None,
        today: typ.Callable[[], dt.date] = utc_today,
    ) -> None:
        """Configure the service with its collaborators."""
        self._session_factory = session_factory
        self._accounts = AccountStore(session_factory)
        self._events = ActivityEventStore(session_factory)
        self._vault = vault
        self._registry = registry
        self._dispatcher = dispatcher
        self._today = today

    async def connect_account(
        self, user_id: str, username: str, token: str
    ) -> AccountView:
        """Link ``user_id`` to a Docker Hub identity and schedule its first sync.

        Runs in one transaction: a username bound to another user is a
        conflict; otherwise every previous row for this user or username,
        soft-deleted ones included, is removed together with its events
        before the credential is validated, sealed and stored.

        Raises
        ------
        ValidationError
            If any argument is blank.
        UsernameTakenError
            If another local user owns ``username``; nothing is written.
        RegistryUserNotFoundError
            If Docker Hub does not know ``username``.
        RegistryAuthError
            If Docker Hub rejects ``token``.
        RegistryAPIError
            If Docker Hub cannot be reached.

        """
        user_id = _require(user_id, "user_id")
        username = _require(username, "username")
        token = _require(token, "token")

        async with self._session_factory() as session, session.begin():
            previous = await find_including_deleted(
                session, user_id=user_id, registry_username=username
            )
            if any(
                row.registry_username == username and row.user_id != user_id
                for row in previous
            ):
                raise UsernameTakenError(username)

            previous_ids = [row.id for row in previous]
            if previous_ids:
                await delete_events_for_accounts(session, previous_ids)
                await delete_accounts(session, previous_ids)
                await session.flush()

            await self._registry.validate_username(username)
            await self._registry.login(username, token)

            ciphertext, iv = self._vault.encrypt(token)
            account = Account(
                user_id=user_id,
                registry_username=username,
                encrypted_token=ciphertext,
                token_iv=iv,
                is_active=True,
                auto_refresh=True,
                sync_in_progress=False,
                last_sync_error="",
            )
            session.add(account)
            await session.flush()
            view = AccountView.from_account(account)

        log_info(
            logger,
            "Connected registry account %s for user %s (replaced %d row(s))",
            username,
            user_id,
            len(previous_ids),
        )
        if self._dispatcher is not None:
            self._dispatcher.submit(view.id)
        return view

    async def get_account(self, user_id: str) -> AccountView:
        """Return the caller's account.

        Raises
        ------
        AccountNotFoundError
            If ``user_id`` has no connected account.

        """
        account = await self._accounts.get_by_user(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return AccountView.from_account(account)

    async def disconnect_account(self, user_id: str) -> None:
        """Hard-delete the caller's account and all of its events."""
        async with self._session_factory() as session, session.begin():
            account = await load_live_by_user(session, user_id)
            if account is None:
                raise AccountNotFoundError(user_id)
            username = account.registry_username
            deleted_events = await delete_events_for_accounts(session, [account.id])
            await delete_accounts(session, [account.id])
        log_info(
            logger,
            "Disconnected registry account %s (%d event row(s) removed)",
            username,
            deleted_events,
        )

    async def trigger_manual_sync(self, user_id: str) -> AccountView:
        """Queue an immediate sync, bypassing the scheduler's debounce.

        Raises
        ------
        AccountNotFoundError
            If ``user_id`` has no connected account.
        SyncAlreadyRunningError
            If the account is already syncing.

        """
        account = await self._accounts.get_by_user(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        if account.sync_in_progress:
            raise SyncAlreadyRunningError(account.id)
        if self._dispatcher is not None:
            self._dispatcher.submit(account.id)
        return AccountView.from_account(account)

    async def get_activity_series(self, username: str, days: int) -> ActivitySeries:
        """Return the gap-free activity series for ``username``.

        The window ends today (UTC) and starts ``days`` days earlier, so the
        series has ``days + 1`` entries.

        Raises
        ------
        ValidationError
            If ``days`` is outside 1-365.
        AccountNotFoundError
            If no live account has this registry username.

        """
        start, end = window_for(days, today=self._today())
        account = await self._accounts.get_by_username(username)
        if account is None:
            raise AccountNotFoundError(username)
        events = await self._events.events_in_window(account.id, start, end)
        return build_series(username, days, summarize(events, start, end))

    async def render_image(self, username: str, options: RenderOptions) -> bytes:
        """Render the heatmap SVG for ``username`` over ``options.days``."""
        series = await self.get_activity_series(username, options.days)
        return render_svg(series, options, username=username)

    @staticmethod
    def list_themes() -> list[Theme]:
        """Return the built-in themes in display order."""
        return list_themes()
