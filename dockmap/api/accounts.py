"""Authenticated endpoints managing the caller's Docker Hub account.

The caller is identified by the ``X-User-Id`` header, which an upstream
authentication proxy is expected to set. Requests without it are rejected
with 401 before touching the service.

Routes
------
``POST /api/docker/connect``
    Body ``{"docker_username": ..., "access_token": ...}``.
``GET /api/docker/account``
    The caller's account, without credential material.
``DELETE /api/docker/disconnect``
    Remove the account and all of its activity.
``POST /api/docker/sync``
    Queue an immediate sync.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from dockmap.errors import ValidationError

from .errors import MissingUserError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from dockmap.accounts import AccountService, AccountView

__all__ = [
    "USER_HEADER",
    "AccountResource",
    "ConnectResource",
    "DisconnectResource",
    "SyncResource",
]

USER_HEADER = "X-User-Id"


def _user_id(req: Request) -> str:
    user_id = (req.get_header(USER_HEADER) or "").strip()
    if not user_id:
        raise MissingUserError(USER_HEADER)
    return user_id


def _account_media(view: AccountView) -> dict[str, typ.Any]:
    return msgspec.to_builtins(view)


def _body_field(body: dict[str, typ.Any], field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError.required(field)
    return value


class ConnectResource:
    """Link the caller to a Docker Hub account."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service."""
        self._service = service

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /api/docker/connect.

        Raises
        ------
        ValidationError
            If the body is not an object or a field is missing.
        UsernameTakenError
            If another user already owns the username.
        RegistryAuthError
            If Docker Hub rejects the token.

        """
        user_id = _user_id(req)
        body = await req.get_media()
        if not isinstance(body, dict):
            msg = "request body must be a JSON object"
            raise ValidationError(msg)
        view = await self._service.connect_account(
            user_id,
            _body_field(body, "docker_username"),
            _body_field(body, "access_token"),
        )
        resp.media = {
            "message": "Docker account connected successfully",
            "account": _account_media(view),
        }
        resp.status = HTTPStatus.OK


class AccountResource:
    """Return the caller's account."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service."""
        self._service = service

    async def on_get(self, req: Request, resp: Response) -> None:
        """Handle GET /api/docker/account."""
        view = await self._service.get_account(_user_id(req))
        resp.media = {"account": _account_media(view)}
        resp.status = HTTPStatus.OK


class DisconnectResource:
    """Remove the caller's account."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service."""
        self._service = service

    async def on_delete(self, req: Request, resp: Response) -> None:
        """Handle DELETE /api/docker/disconnect."""
        await self._service.disconnect_account(_user_id(req))
        resp.media = {"message": "Docker account disconnected successfully"}
        resp.status = HTTPStatus.OK


class SyncResource:
    """Queue a manual sync of the caller's account."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service."""
        self._service = service

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /api/docker/sync.

        Responds 202 once the sync is queued, or 409 while one is running.
        """
        await self._service.trigger_manual_sync(_user_id(req))
        resp.media = {"message": "Sync started"}
        resp.status = HTTPStatus.ACCEPTED
