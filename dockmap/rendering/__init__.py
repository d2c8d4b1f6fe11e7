"""Heatmap themes, render options and the SVG renderer."""

from __future__ import annotations

from .options import Palette, RenderOptions, normalize_color
from .svg import render_svg
from .themes import CUSTOM_THEME, DEFAULT_THEME, THEMES, Theme, list_themes

__all__ = [
    "CUSTOM_THEME",
    "DEFAULT_THEME",
    "THEMES",
    "Palette",
    "RenderOptions",
    "Theme",
    "list_themes",
    "normalize_color",
    "render_svg",
]
