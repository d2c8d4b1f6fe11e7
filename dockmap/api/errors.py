"""Falcon error handlers translating domain errors into HTTP responses.

Each handler maps one :mod:`dockmap.errors` category onto a status code and
a ``{"title", "description"}`` JSON body. Anything outside the taxonomy is
left to Falcon and surfaces as a 500.

Usage
-----
Register every handler on a Falcon app::

    from dockmap.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from dockmap.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from falcon.asgi import Request, Response

__all__ = [
    "MissingUserError",
    "handle_auth",
    "handle_conflict",
    "handle_not_found",
    "handle_upstream",
    "handle_validation",
    "register_error_handlers",
]


class MissingUserError(AuthError):
    """Raised when an account endpoint is called without a user identity."""

    def __init__(self, header: str) -> None:
        """Initialise with the name of the missing header."""
        self.header = header
        super().__init__(f"Missing {header} header")


async def handle_validation(
    _req: Request,
    resp: Response,
    ex: ValidationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ValidationError`` to an HTTP 400 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The validation exception containing reason and optional field.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_auth(
    _req: Request,
    resp: Response,
    ex: AuthError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``AuthError`` to an HTTP 401 JSON response."""
    resp.status = falcon.HTTP_401
    resp.media = {"title": "Unauthorized", "description": str(ex)}


async def handle_not_found(
    _req: Request,
    resp: Response,
    ex: NotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``NotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Not found", "description": str(ex)}


async def handle_conflict(
    _req: Request,
    resp: Response,
    ex: ConflictError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ConflictError`` to an HTTP 409 JSON response."""
    resp.status = falcon.HTTP_409
    resp.media = {"title": "Conflict", "description": str(ex)}


async def handle_upstream(
    _req: Request,
    resp: Response,
    ex: UpstreamError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UpstreamError`` to an HTTP 502 JSON response.

    The description is the error's own message, which never carries the
    upstream response body.
    """
    resp.status = falcon.HTTP_502
    resp.media = {"title": "Registry unavailable", "description": str(ex)}


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Attach every domain error handler to ``app``."""
    app.add_error_handler(ValidationError, handle_validation)
    app.add_error_handler(AuthError, handle_auth)
    app.add_error_handler(NotFoundError, handle_not_found)
    app.add_error_handler(ConflictError, handle_conflict)
    app.add_error_handler(UpstreamError, handle_upstream)
