"""Caller-facing views of registry accounts."""

from __future__ import annotations

import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from dockmap.storage import Account


class AccountView(msgspec.Struct, kw_only=True, frozen=True):
    """Account state safe to return to its owner.

    The encrypted credential and its nonce are never included. The username
    is encoded as ``docker_username``.
    """

    id: str
    registry_username: str = msgspec.field(name="docker_username")
    is_active: bool
    auto_refresh: bool
    sync_in_progress: bool
    last_sync_at: str | None
    last_sync_error: str
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> AccountView:
        """Project a stored account onto the public view."""
        return cls(
            id=account.id,
            registry_username=account.registry_username,
            is_active=account.is_active,
            auto_refresh=account.auto_refresh,
            sync_in_progress=account.sync_in_progress,
            last_sync_at=(
                account.last_sync_at.isoformat()
                if account.last_sync_at is not None
                else None
            ),
            last_sync_error=account.last_sync_error,
            created_at=account.created_at.isoformat(),
        )
