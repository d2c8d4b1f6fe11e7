"""Unit tests for SyncOrchestrator reconciliation."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy import select

from dockmap.errors import AccountNotFoundError, SyncAlreadyRunningError
from dockmap.registry import RegistryAPIError
from dockmap.storage import AccountStore, ActivityEvent, ActivityEventStore
from dockmap.sync import (
    AUTH_FAILED,
    REPOSITORIES_FAILED,
    TIMED_OUT,
    UNEXPECTED_FAILURE,
    USER_NOT_FOUND,
    SyncConfig,
    SyncOrchestrator,
)
from tests.fakes import FakeRegistry, add_account, repo, tag

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from dockmap.storage import Account
    from dockmap.vault import CredentialVault

PUSHED = "2024-03-10T08:00:00.000000Z"
PUSHED_LATER = "2024-03-10T09:30:00Z"


@pytest.fixture
def registry() -> FakeRegistry:
    """Registry knowing ``octo`` with token ``secret-token``."""
    return FakeRegistry(
        users={"octo"},
        tokens={"octo": "secret-token"},
        repositories={"octo": [repo("app", PUSHED), repo("web", "")]},
        tags={("octo", "app"): [tag("latest", PUSHED_LATER)]},
    )


def _orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    vault: CredentialVault,
    registry: FakeRegistry,
    config: SyncConfig | None = None,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        accounts=AccountStore(session_factory),
        events=ActivityEventStore(session_factory),
        registry=registry,
        vault=vault,
        config=config,
    )


async def _events(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[ActivityEvent]:
    async with session_factory() as session:
        stmt = select(ActivityEvent).order_by(ActivityEvent.repository, ActivityEvent.tag)
        return list((await session.scalars(stmt)).all())


async def _reload(
    session_factory: async_sessionmaker[AsyncSession], account: Account
) -> Account:
    refreshed = await AccountStore(session_factory).get(account.id)
    assert refreshed is not None
    return refreshed


class TestSuccessfulSync:
    """Tests for syncs that complete."""

    @pytest.mark.asyncio
    async def test_records_repository_and_tag_pushes(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """Repository and tag timestamps become push events; blanks are skipped."""
        account = await add_account(session_factory, vault)

        result = await _orchestrator(session_factory, vault, registry).sync_account(
            account.id
        )

        assert result.succeeded
        assert result.username == "octo"
        assert result.repositories_processed == 2
        assert result.events_created == 2
        assert result.soft_failures == 0
        events = await _events(session_factory)
        assert [(e.repository, e.tag, e.event_type, e.count) for e in events] == [
            ("app", "", "push", 1),
            ("app", "latest", "push", 1),
        ]
        refreshed = await _reload(session_factory, account)
        assert refreshed.sync_in_progress is False
        assert refreshed.last_sync_error == ""
        assert refreshed.last_sync_at is not None
        assert ("fetch_repositories", "octo", "jwt-octo") in registry.calls

    @pytest.mark.asyncio
    async def test_resync_increments_existing_rows(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """A second pass over the same data increments counts."""
        account = await add_account(session_factory, vault)
        orchestrator = _orchestrator(session_factory, vault, registry)

        await orchestrator.sync_account(account.id)
        second = await orchestrator.sync_account(account.id)

        assert second.events_created == 0
        assert second.events_incremented == 2
        assert [e.count for e in await _events(session_factory)] == [2, 2]

    @pytest.mark.asyncio
    async def test_duplicate_names_are_observed_once(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """A repository or tag listed twice in one pass counts once."""
        registry.repositories["octo"] = [repo("app", PUSHED), repo("app", PUSHED)]
        registry.tags[("octo", "app")] = [
            tag("latest", PUSHED_LATER),
            tag("latest", PUSHED_LATER),
        ]
        account = await add_account(session_factory, vault)

        result = await _orchestrator(session_factory, vault, registry).sync_account(
            account.id
        )

        assert result.repositories_processed == 1
        assert [e.count for e in await _events(session_factory)] == [1, 1]

    @pytest.mark.asyncio
    async def test_soft_failures_do_not_fail_the_sync(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """Tag listing errors and bad timestamps are counted and skipped."""
        registry.repositories["octo"] = [repo("app", PUSHED), repo("web", "garbage")]
        registry.tag_errors.add("app")
        account = await add_account(session_factory, vault)

        result = await _orchestrator(session_factory, vault, registry).sync_account(
            account.id
        )

        assert result.succeeded
        assert result.soft_failures == 2
        assert result.repositories_processed == 2
        events = await _events(session_factory)
        assert [(e.repository, e.tag) for e in events] == [("app", "")]

    @pytest.mark.asyncio
    async def test_undecryptable_credential_falls_back_to_public_access(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """A corrupt credential validates the username and syncs anonymously."""
        account = await add_account(
            session_factory,
            vault,
            encrypted_token="bm90LXJlYWwtY2lwaGVydGV4dA==",
            token_iv="AAAAAAAAAAAAAAAA",
        )

        result = await _orchestrator(session_factory, vault, registry).sync_account(
            account.id
        )

        assert result.succeeded
        assert ("validate_username", "octo") in registry.calls
        assert not any(call[0] == "login" for call in registry.calls)
        assert ("fetch_repositories", "octo", "") in registry.calls


class TestHardFailures:
    """Tests for syncs that record a failure message."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("configure", "expected"),
        [
            (lambda r: r.tokens.update(octo="rotated"), AUTH_FAILED),
            (lambda r: r.users.clear(), USER_NOT_FOUND),
            (lambda r: setattr(r, "unavailable", True), AUTH_FAILED),
            (
                lambda r: setattr(
                    r,
                    "repositories_error",
                    RegistryAPIError.http_error("repository listing", 500),
                ),
                REPOSITORIES_FAILED,
            ),
        ],
    )
    async def test_failure_messages(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
        configure: typ.Callable[[FakeRegistry], object],
        expected: str,
    ) -> None:
        """Each hard failure leaves a fixed message and releases the flag."""
        configure(registry)
        account = await add_account(session_factory, vault)

        result = await _orchestrator(session_factory, vault, registry).sync_account(
            account.id
        )

        assert result.error_message == expected
        assert not result.succeeded
        refreshed = await _reload(session_factory, account)
        assert refreshed.sync_in_progress is False
        assert refreshed.last_sync_error == expected
        assert await _events(session_factory) == []

    @pytest.mark.asyncio
    async def test_timeout_releases_the_flag(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """A sync exceeding its budget records a timeout and can run again."""
        registry.block = asyncio.Event()
        account = await add_account(session_factory, vault)
        orchestrator = _orchestrator(
            session_factory, vault, registry, SyncConfig(timeout_s=0.05)
        )

        result = await orchestrator.sync_account(account.id)

        assert result.error_message == TIMED_OUT
        refreshed = await _reload(session_factory, account)
        assert refreshed.sync_in_progress is False
        assert refreshed.last_sync_error == TIMED_OUT

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate_after_release(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """Programming errors are re-raised once the flag is cleared."""
        registry.repositories_error = RuntimeError("bug")
        account = await add_account(session_factory, vault)

        with pytest.raises(RuntimeError, match="bug"):
            await _orchestrator(session_factory, vault, registry).sync_account(
                account.id
            )

        refreshed = await _reload(session_factory, account)
        assert refreshed.sync_in_progress is False
        assert refreshed.last_sync_error == UNEXPECTED_FAILURE


class TestSingleFlight:
    """Tests for the per-account mutual exclusion."""

    @pytest.mark.asyncio
    async def test_second_sync_is_rejected_without_side_effects(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """A sync on a busy account raises and never reaches the registry."""
        account = await add_account(session_factory, vault)
        await AccountStore(session_factory).try_acquire_sync(account.id)

        with pytest.raises(SyncAlreadyRunningError):
            await _orchestrator(session_factory, vault, registry).sync_account(
                account.id
            )

        assert registry.calls == []
        assert await _events(session_factory) == []
        refreshed = await _reload(session_factory, account)
        assert refreshed.sync_in_progress is True

    @pytest.mark.asyncio
    async def test_concurrent_syncs_run_once(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """Of two overlapping syncs one runs and the other conflicts."""
        registry.block = asyncio.Event()
        account = await add_account(session_factory, vault)
        orchestrator = _orchestrator(session_factory, vault, registry)

        first = asyncio.create_task(orchestrator.sync_account(account.id))
        while not registry.calls:
            await asyncio.sleep(0.01)
        with pytest.raises(SyncAlreadyRunningError):
            await orchestrator.sync_account(account.id)
        registry.block.set()
        result = await first

        assert result.succeeded
        assert [e.count for e in await _events(session_factory)] == [1, 1]

    @pytest.mark.asyncio
    async def test_unknown_account(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: CredentialVault,
        registry: FakeRegistry,
    ) -> None:
        """Syncing a missing account raises AccountNotFoundError."""
        with pytest.raises(AccountNotFoundError):
            await _orchestrator(session_factory, vault, registry).sync_account(
                "missing"
            )
