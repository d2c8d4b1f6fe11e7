"""Reconcile one registry account against Docker Hub.

A sync moves an account from idle to running and back. Entry is guarded by
an atomic compare-and-set on ``sync_in_progress`` so that at most one sync
runs per account; the flag is released on every exit path, including
timeout and cancellation, after all event writes of the run.

Usage
-----
>>> orchestrator = SyncOrchestrator(
...     accounts=AccountStore(session_factory),
...     events=ActivityEventStore(session_factory),
...     registry=DockerHubClient(),
...     vault=vault,
... )
>>> result = await orchestrator.sync_account(account_id)

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from dockmap.common.time import utcnow
from dockmap.errors import (
    AccountNotFoundError,
    AuthError,
    NotFoundError,
    SyncAlreadyRunningError,
    UpstreamError,
)
from dockmap.logging import get_logger, log_warning
from dockmap.registry import TimestampParseError, parse_registry_timestamp
from dockmap.storage import EventType
from dockmap.vault import CredentialDecryptError

from .config import SyncConfig
from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import datetime as dt

    from dockmap.registry import RegistryClient, RegistryRepository
    from dockmap.storage import Account, AccountStore, ActivityEventStore
    from dockmap.vault import CredentialVault

logger = get_logger(__name__)

AUTH_FAILED = "Authentication failed"
USER_NOT_FOUND = "Registry user not found"
REPOSITORIES_FAILED = "Failed to fetch repositories"
TIMED_OUT = "Sync timed out"
UNEXPECTED_FAILURE = "Unexpected sync failure"


@dc.dataclass(slots=True)
class SyncResult:
    """Outcome of one account sync.

    Attributes
    ----------
    account_id
        Account that was reconciled.
    username
        Registry username of the account.
    repositories_processed
        Repositories visited, including those whose tags failed to load.
    events_created
        Observations that inserted a new event row.
    events_incremented
        Observations that incremented an existing row.
    soft_failures
        Repositories, tags or timestamps skipped after an error.
    error_message
        User-facing failure message; empty when the sync succeeded.

    """

    account_id: str
    username: str = ""
    repositories_processed: int = 0
    events_created: int = 0
    events_incremented: int = 0
    soft_failures: int = 0
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        """Return True when no hard failure was recorded."""
        return not self.error_message


class _HardFailure(Exception):
    """Internal signal that aborts a sync with a fixed user-facing message."""

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class SyncOrchestrator:
    """Drive reconciliation of registry accounts.

    Parameters
    ----------
    accounts
        Store used for the single-flight guard and status updates.
    events
        Idempotent event store receiving observations.
    registry
        Docker Hub client.
    vault
        Vault used to open stored credentials.
    config
        Timeout applied to each sync; defaults to :class:`SyncConfig`.
    event_logger
        Structured event sink; defaults to :class:`SyncEventLogger`.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        accounts: AccountStore,
        events: ActivityEventStore,
        registry: RegistryClient,
        vault: CredentialVault,
        config: SyncConfig | None = None,
        event_logger: SyncEventLogger | None = None,
        clock: typ.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Store collaborators for later syncs."""
        self._accounts = accounts
        self._events = events
        self._registry = registry
        self._vault = vault
        self._config = config or SyncConfig()
        self._event_logger = event_logger or SyncEventLogger()
        self._clock = clock

    async def sync_account(self, account_id: str) -> SyncResult:
        """Run one reconciliation for ``account_id``.

        Returns
        -------
        SyncResult
            Counts for the run. Hard failures (authentication, repository
            listing, timeout) are reported through ``error_message`` and the
            account's ``last_sync_error`` rather than raised.

        Raises
        ------
        SyncAlreadyRunningError
            If another sync holds the account; no event is touched.
        AccountNotFoundError
            If no live account has ``account_id``.

        """
        if not await self._accounts.try_acquire_sync(account_id):
            if await self._accounts.get(account_id) is None:
                raise AccountNotFoundError(account_id)
            raise SyncAlreadyRunningError(account_id)

        result = SyncResult(account_id=account_id)
        error_message = UNEXPECTED_FAILURE
        started = self._clock()
        try:
            account = await self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            result.username = account.registry_username
            self._event_logger.log_run_started(
                account_id=account_id, username=account.registry_username
            )
            async with asyncio.timeout(self._config.timeout_s):
                await self._reconcile(account, result)
        except _HardFailure as failure:
            error_message = failure.message
            self._log_failed(result, failure.cause, started)
        except TimeoutError as exc:
            error_message = TIMED_OUT
            self._log_failed(result, exc, started)
        except Exception as exc:
            self._log_failed(result, exc, started)
            raise
        else:
            error_message = ""
            self._event_logger.log_run_completed(result, self._clock() - started)
        finally:
            result.error_message = error_message
            await asyncio.shield(self._release(account_id, error_message))
        return result

    async def _release(self, account_id: str, error_message: str) -> None:
        await self._accounts.release_sync(
            account_id, synced_at=self._clock(), error_message=error_message
        )

    def _log_failed(
        self, result: SyncResult, error: BaseException, started: dt.datetime
    ) -> None:
        self._event_logger.log_run_failed(
            account_id=result.account_id,
            username=result.username,
            error=error,
            duration=self._clock() - started,
        )

    async def _reconcile(self, account: Account, result: SyncResult) -> None:
        username = account.registry_username
        token = self._open_credential(account)
        bearer = await self._authenticate(username, token)

        try:
            repositories = await self._registry.fetch_repositories(username, bearer)
        except UpstreamError as exc:
            raise _HardFailure(REPOSITORIES_FAILED, exc) from exc

        seen: set[str] = set()
        for repository in repositories:
            if repository.name in seen:
                continue
            seen.add(repository.name)
            await self._reconcile_repository(account, repository, bearer, result)

    async def _reconcile_repository(
        self,
        account: Account,
        repository: RegistryRepository,
        bearer: str | None,
        result: SyncResult,
    ) -> None:
        result.repositories_processed += 1
        await self._observe(
            account, result, repository.name, "", repository.last_updated
        )

        try:
            tags = await self._registry.fetch_tags(
                account.registry_username, repository.name, bearer
            )
        except UpstreamError as exc:
            result.soft_failures += 1
            self._event_logger.log_resource_skipped(
                account_id=account.id,
                resource=repository.name,
                reason="tag listing failed",
                error=exc,
            )
            return

        seen: set[str] = set()
        for tag in tags:
            if tag.name in seen:
                continue
            seen.add(tag.name)
            await self._observe(
                account, result, repository.name, tag.name, tag.tag_last_pushed
            )

    async def _observe(
        self,
        account: Account,
        result: SyncResult,
        repository: str,
        tag: str,
        raw_timestamp: str | None,
    ) -> None:
        """Record one push observation; absent timestamps are skipped."""
        if not raw_timestamp:
            return
        try:
            occurred_at = parse_registry_timestamp(raw_timestamp)
        except TimestampParseError as exc:
            result.soft_failures += 1
            self._event_logger.log_resource_skipped(
                account_id=account.id,
                resource=f"{repository}:{tag}" if tag else repository,
                reason="unparseable timestamp",
                error=exc,
            )
            return
        created = await self._events.upsert_event(
            account.id, EventType.PUSH, occurred_at, repository, tag
        )
        if created:
            result.events_created += 1
        else:
            result.events_incremented += 1

    def _open_credential(self, account: Account) -> str:
        """Decrypt the stored token, degrading to an empty credential."""
        if not account.encrypted_token:
            return ""
        try:
            return self._vault.decrypt(account.encrypted_token, account.token_iv)
        except CredentialDecryptError:
            log_warning(
                logger,
                "Credential for account %s could not be decrypted; "
                "continuing with unauthenticated access",
                account.id,
            )
            return ""

    async def _authenticate(self, username: str, token: str) -> str | None:
        """Return a bearer credential, or None for public access."""
        try:
            if token:
                return await self._registry.login(username, token)
            await self._registry.validate_username(username)
        except NotFoundError as exc:
            raise _HardFailure(USER_NOT_FOUND, exc) from exc
        except (AuthError, UpstreamError) as exc:
            raise _HardFailure(AUTH_FAILED, exc) from exc
        return None
