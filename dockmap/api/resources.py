"""Public, unauthenticated endpoints serving activity images and data.

Routes
------
``GET /api/heatmap/{username}``
    SVG heatmap; a trailing ``.svg`` on the username is ignored.
``GET /api/activity/{username}``
    The same series as JSON; a trailing ``.json`` is ignored.
``GET /api/themes``
    Built-in themes plus a description of the custom palette parameters.

Image and data responses may be cached by intermediaries for two hours,
matching the scheduler's refresh cadence closely enough for embeds.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon

from dockmap.activity import MAX_DAYS, encode_series
from dockmap.errors import ValidationError
from dockmap.rendering import RenderOptions

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from dockmap.accounts import AccountService

__all__ = [
    "CACHE_CONTROL",
    "SVG_CONTENT_TYPE",
    "ActivityResource",
    "HeatmapResource",
    "ThemesResource",
]

CACHE_CONTROL = "public, max-age=7200"
SVG_CONTENT_TYPE = "image/svg+xml"

_CUSTOMIZATION: dict[str, typ.Any] = {
    "description": "You can also create custom themes using query parameters",
    "params": {
        "bg_color": "Background color (hex without #)",
        "text_color": "Text color (hex without #)",
        "color0": "Level 0 (no activity) color",
        "color1": "Level 1 (low) color",
        "color2": "Level 2 (medium) color",
        "color3": "Level 3 (high) color",
        "color4": "Level 4 (max) color",
    },
    "example": (
        "/api/heatmap/username.svg?theme=custom&bg_color=1a1a2e"
        "&color0=16213e&color1=0f3460&color2=533483&color3=e94560&color4=ff6b6b"
    ),
}


def _username(raw: str, suffix: str) -> str:
    username = raw.removesuffix(suffix).strip()
    if not username:
        raise ValidationError.required("username")
    return username


def _query(req: Request) -> dict[str, str]:
    """Flatten query parameters, keeping the first value of repeated keys."""
    flat: dict[str, str] = {}
    for key, value in req.params.items():
        flat[key] = value[0] if isinstance(value, list) else value
    return flat


def _days(params: dict[str, str]) -> int:
    raw = params.get("days", "").strip()
    if not raw:
        return MAX_DAYS
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"must be an integer, got {raw!r}", field="days") from exc


class HeatmapResource:
    """Serve the SVG heatmap for a registry username."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service used to build images."""
        self._service = service

    async def on_get(self, req: Request, resp: Response, *, username: str) -> None:
        """Handle GET /api/heatmap/{username}.

        Raises
        ------
        ValidationError
            For malformed rendering options.
        AccountNotFoundError
            If no live account has this registry username.

        """
        name = _username(username, ".svg")
        options = RenderOptions.from_query(_query(req))
        resp.data = await self._service.render_image(name, options)
        resp.content_type = SVG_CONTENT_TYPE
        resp.set_header("Cache-Control", CACHE_CONTROL)
        resp.status = HTTPStatus.OK


class ActivityResource:
    """Serve the aggregated activity series as JSON."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service used to build series."""
        self._service = service

    async def on_get(self, req: Request, resp: Response, *, username: str) -> None:
        """Handle GET /api/activity/{username}?days=N."""
        name = _username(username, ".json")
        series = await self._service.get_activity_series(name, _days(_query(req)))
        resp.data = encode_series(series)
        resp.content_type = falcon.MEDIA_JSON
        resp.set_header("Cache-Control", CACHE_CONTROL)
        resp.status = HTTPStatus.OK


class ThemesResource:
    """List the built-in themes."""

    def __init__(self, service: AccountService) -> None:
        """Store the account service exposing the theme registry."""
        self._service = service

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /api/themes."""
        resp.media = {
            "themes": [
                {
                    "id": theme.id,
                    "name": theme.name,
                    "bg_color": theme.bg_color,
                    "text_color": theme.text_color,
                    "colors": list(theme.colors),
                }
                for theme in self._service.list_themes()
            ],
            "customization": _CUSTOMIZATION,
        }
        resp.status = HTTPStatus.OK
