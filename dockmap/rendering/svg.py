"""Deterministic SVG heatmap renderer.

The output depends only on the series and the options: no clock reads, no
locale lookups, no random identifiers. Identical inputs therefore produce
byte-identical documents, which lets HTTP caches key on the request URL.
"""

from __future__ import annotations

import datetime as dt
import html
import math
import re
import typing as typ

if typ.TYPE_CHECKING:
    from dockmap.activity import ActivitySeries, ActivitySummary

    from .options import Palette, RenderOptions

ROWS = 7
GAP = 3
PADDING = 16
HEADER_HEIGHT = 24
MONTH_LABEL_HEIGHT = 14
WEEKDAY_LABEL_WIDTH = 28
LEGEND_HEIGHT = 26
FONT_FAMILY = "-apple-system,BlinkMacSystemFont,Segoe UI,Helvetica,Arial,sans-serif"

_MONTHS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_LABELLED_ROWS = (1, 3, 5)
# Minimum column distance between two month labels.
_MONTH_LABEL_MIN_COLUMNS = 3
# C0 controls other than tab, LF and CR are not allowed anywhere in XML 1.0.
_XML_FORBIDDEN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _esc(value: str) -> str:
    return html.escape(_XML_FORBIDDEN.sub("", value), quote=True)


def _plural(count: int) -> str:
    return "activity" if count == 1 else "activities"


class _Layout:
    """Pixel geometry derived from the options and series length."""

    def __init__(self, options: RenderOptions, days_rendered: int) -> None:
        self.cell = options.cell_size
        self.step = options.cell_size + GAP
        self.columns = math.ceil(days_rendered / ROWS)
        self.grid_left = PADDING + (0 if options.hide_labels else WEEKDAY_LABEL_WIDTH)
        self.grid_top = (
            PADDING
            + HEADER_HEIGHT
            + (0 if options.hide_labels else MONTH_LABEL_HEIGHT)
        )
        grid_width = max(self.columns * self.step - GAP, 0)
        grid_height = ROWS * self.step - GAP
        self.grid_bottom = self.grid_top + grid_height
        self.width = max(self.grid_left + grid_width + PADDING, 2 * PADDING + 220)
        legend = 0 if options.hide_legend else LEGEND_HEIGHT
        self.height = self.grid_bottom + legend + PADDING

    def cell_origin(self, index: int) -> tuple[int, int]:
        column, row = divmod(index, ROWS)
        return (self.grid_left + column * self.step, self.grid_top + row * self.step)


def _header(
    series: ActivitySeries, options: RenderOptions, palette: Palette, title: str
) -> list[str]:
    baseline = PADDING + 14
    parts = [
        f'<text x="{PADDING}" y="{baseline}" font-size="14" font-weight="600" '
        f'fill="{palette.text_color}">{_esc(title)}</text>'
    ]
    if not options.hide_total:
        total = series.totals.activities
        parts.append(
            f'<text x="{PADDING}" y="{baseline + 14}" font-size="10" '
            f'fill="{palette.text_color}" opacity="0.8">'
            f"{total} {_plural(total)} in the last {series.days} days</text>"
        )
    return parts


def _month_labels(
    activity: typ.Sequence[ActivitySummary], layout: _Layout, palette: Palette
) -> list[str]:
    parts: list[str] = []
    last_month: tuple[int, int] | None = None
    last_column = -_MONTH_LABEL_MIN_COLUMNS
    y = layout.grid_top - 4
    for column in range(layout.columns):
        day = dt.date.fromisoformat(activity[column * ROWS].date)
        month = (day.year, day.month)
        if month == last_month:
            continue
        last_month = month
        if column - last_column < _MONTH_LABEL_MIN_COLUMNS:
            continue
        last_column = column
        x = layout.grid_left + column * layout.step
        parts.append(
            f'<text x="{x}" y="{y}" font-size="9" fill="{palette.text_color}">'
            f"{_MONTHS[day.month - 1]}</text>"
        )
    return parts


def _weekday_labels(
    activity: typ.Sequence[ActivitySummary], layout: _Layout, palette: Palette
) -> list[str]:
    parts: list[str] = []
    for row in _LABELLED_ROWS:
        if row >= len(activity):
            break
        weekday = dt.date.fromisoformat(activity[row].date).weekday()
        y = layout.grid_top + row * layout.step + layout.cell - 1
        parts.append(
            f'<text x="{PADDING}" y="{y}" font-size="9" fill="{palette.text_color}">'
            f"{_WEEKDAYS[weekday]}</text>"
        )
    return parts


def _cells(
    activity: typ.Sequence[ActivitySummary],
    layout: _Layout,
    options: RenderOptions,
    palette: Palette,
) -> list[str]:
    parts: list[str] = []
    for index, summary in enumerate(activity):
        x, y = layout.cell_origin(index)
        fill = palette.colors[summary.level]
        parts.append(
            f'<rect x="{x}" y="{y}" width="{layout.cell}" height="{layout.cell}" '
            f'rx="{options.radius}" ry="{options.radius}" fill="{fill}" '
            f'data-date="{summary.date}" data-level="{summary.level}">'
            f"<title>{summary.total_count} {_plural(summary.total_count)} "
            f"on {summary.date}</title></rect>"
        )
    return parts


def _legend(layout: _Layout, options: RenderOptions, palette: Palette) -> list[str]:
    swatch = 10
    y = layout.grid_bottom + 10
    text_y = y + swatch - 1
    # Right-aligned: "Less" + swatches + "More".
    more_x = layout.width - PADDING - 24
    first_swatch_x = more_x - 4 - len(palette.colors) * (swatch + GAP)
    parts = [
        f'<text x="{first_swatch_x - 28}" y="{text_y}" font-size="9" '
        f'fill="{palette.text_color}">Less</text>'
    ]
    for level, color in enumerate(palette.colors):
        x = first_swatch_x + level * (swatch + GAP)
        parts.append(
            f'<rect x="{x}" y="{y}" width="{swatch}" height="{swatch}" '
            f'rx="{min(options.radius, 2)}" fill="{color}"/>'
        )
    parts.append(
        f'<text x="{more_x}" y="{text_y}" font-size="9" '
        f'fill="{palette.text_color}">More</text>'
    )
    return parts


def render_svg(
    series: ActivitySeries,
    options: RenderOptions,
    *,
    username: str | None = None,
) -> bytes:
    """Render ``series`` as a standalone SVG document.

    Parameters
    ----------
    series
        Gap-free activity series, ascending by date.
    options
        Validated render options; ``options.days`` is informational here, the
        grid covers every entry of ``series.activity``.
    username
        Name shown in the default title. Defaults to ``series.username``.

    Returns
    -------
    bytes
        UTF-8 encoded SVG. Day ``i`` occupies row ``i % 7`` and column
        ``i // 7``.

    """
    palette = options.palette()
    activity = series.activity
    layout = _Layout(options, len(activity))
    name = username if username is not None else series.username
    title = options.title or f"@{name} Docker Activity"

    body: list[str] = [
        f'<rect width="{layout.width}" height="{layout.height}" rx="6" '
        f'fill="{palette.bg_color}"/>',
        *_header(series, options, palette, title),
    ]
    if not options.hide_labels and activity:
        body.extend(_month_labels(activity, layout, palette))
        body.extend(_weekday_labels(activity, layout, palette))
    body.extend(_cells(activity, layout, options, palette))
    if not options.hide_legend:
        body.extend(_legend(layout, options, palette))

    document = "".join(
        [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{layout.width}" '
            f'height="{layout.height}" viewBox="0 0 {layout.width} {layout.height}" '
            f'font-family="{FONT_FAMILY}" role="img" '
            f'aria-label="{_esc(title)}">',
            *body,
            "</svg>",
        ]
    )
    return document.encode("utf-8")
