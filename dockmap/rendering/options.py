"""Validated render options and their query-string parser."""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from dockmap.activity import MAX_DAYS, MIN_DAYS
from dockmap.errors import ValidationError

from .themes import CUSTOM_THEME, DEFAULT_THEME, THEMES

if typ.TYPE_CHECKING:
    import collections.abc as cabc

MIN_CELL_SIZE = 5
MAX_CELL_SIZE = 20
MIN_RADIUS = 0
MAX_RADIUS = 10
PALETTE_SIZE = 5

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_TRUTHY = frozenset({"true", "1"})


def normalize_color(value: str, *, field: str) -> str:
    """Return ``value`` as ``#rgb`` or ``#rrggbb``, adding the ``#`` if absent.

    Raises
    ------
    ValidationError
        If the value is not a 3 or 6 digit hex colour.

    Examples
    --------
    >>> normalize_color("1a1a2e", field="bg_color")
    '#1a1a2e'

    """
    text = value.strip()
    if not text.startswith("#"):
        text = f"#{text}"
    if _HEX_COLOR.match(text) is None:
        raise ValidationError(f"must be a hex colour, got {value!r}", field=field)
    return text


def _check_range(field: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValidationError.out_of_range(field, value, low, high)


@dc.dataclass(frozen=True, slots=True)
class Palette:
    """Colours resolved for a single render."""

    bg_color: str
    text_color: str
    colors: tuple[str, ...]


@dc.dataclass(frozen=True, slots=True)
class RenderOptions:
    """Bounded configuration for one heatmap image.

    Construction validates every field, so an instance is always renderable.
    Supplying ``custom_colors`` forces ``theme`` to ``custom``.
    """

    theme: str = DEFAULT_THEME
    days: int = MAX_DAYS
    cell_size: int = 11
    radius: int = 2
    hide_legend: bool = False
    hide_total: bool = False
    hide_labels: bool = False
    title: str | None = None
    bg_color: str | None = None
    text_color: str | None = None
    custom_colors: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate bounds, colours and the theme identifier."""
        _check_range("days", self.days, MIN_DAYS, MAX_DAYS)
        _check_range("cell_size", self.cell_size, MIN_CELL_SIZE, MAX_CELL_SIZE)
        _check_range("radius", self.radius, MIN_RADIUS, MAX_RADIUS)
        if self.bg_color is not None:
            object.__setattr__(
                self, "bg_color", normalize_color(self.bg_color, field="bg_color")
            )
        if self.text_color is not None:
            object.__setattr__(
                self,
                "text_color",
                normalize_color(self.text_color, field="text_color"),
            )
        if self.custom_colors is not None:
            if len(self.custom_colors) != PALETTE_SIZE:
                msg = f"expected {PALETTE_SIZE} colours"
                raise ValidationError(msg, field="custom_colors")
            colors = tuple(
                normalize_color(color, field=f"color{index}")
                for index, color in enumerate(self.custom_colors)
            )
            object.__setattr__(self, "custom_colors", colors)
            object.__setattr__(self, "theme", CUSTOM_THEME)
        elif self.theme == CUSTOM_THEME:
            msg = "custom theme requires color0 to color4"
            raise ValidationError(msg, field="theme")
        elif self.theme not in THEMES:
            raise ValidationError(f"unknown theme {self.theme!r}", field="theme")

    def palette(self) -> Palette:
        """Resolve background, text and level colours for this render."""
        base = THEMES.get(self.theme, THEMES[DEFAULT_THEME])
        colors = self.custom_colors or base.colors
        return Palette(
            bg_color=self.bg_color or base.bg_color,
            text_color=self.text_color or base.text_color,
            colors=tuple(colors),
        )

    @classmethod
    def from_query(cls, params: cabc.Mapping[str, str]) -> RenderOptions:
        """Parse HTTP query parameters into validated options.

        Boolean toggles accept ``true`` or ``1``; anything else is false.
        ``color0`` to ``color4`` form a custom palette only when all five are
        present; a partial set is ignored.

        Raises
        ------
        ValidationError
            For non-integer or out-of-range numbers, malformed colours, or an
            unknown theme.

        """
        colors = [params.get(f"color{index}", "").strip() for index in range(5)]
        return cls(
            theme=params.get("theme", "").strip() or DEFAULT_THEME,
            days=_int_param(params, "days", MAX_DAYS),
            cell_size=_int_param(params, "cell_size", 11),
            radius=_int_param(params, "radius", 2),
            hide_legend=_flag(params, "hide_legend"),
            hide_total=_flag(params, "hide_total"),
            hide_labels=_flag(params, "hide_labels"),
            title=params.get("title") or None,
            bg_color=params.get("bg_color", "").strip() or None,
            text_color=params.get("text_color", "").strip() or None,
            custom_colors=tuple(colors) if all(colors) else None,
        )


def _flag(params: cabc.Mapping[str, str], name: str) -> bool:
    return params.get(name, "").strip().lower() in _TRUTHY


def _int_param(params: cabc.Mapping[str, str], name: str, default: int) -> int:
    raw = params.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"must be an integer, got {raw!r}", field=name) from exc
