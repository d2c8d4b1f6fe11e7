"""Named heatmap colour themes, in display order."""

from __future__ import annotations

import dataclasses as dc

CUSTOM_THEME = "custom"
DEFAULT_THEME = "github"


@dc.dataclass(frozen=True, slots=True)
class Theme:
    """Palette for one heatmap theme.

    ``colors`` holds the fill for intensity levels 0 to 4.
    """

    id: str
    name: str
    bg_color: str
    text_color: str
    colors: tuple[str, str, str, str, str]


def _theme(
    theme_id: str,
    name: str,
    bg_color: str,
    text_color: str,
    colors: tuple[str, str, str, str, str],
) -> tuple[str, Theme]:
    return theme_id, Theme(theme_id, name, bg_color, text_color, colors)


THEMES: dict[str, Theme] = dict(
    [
        _theme(
            "github",
            "GitHub Dark",
            "#0d1117",
            "#c9d1d9",
            ("#161b22", "#0e4429", "#006d32", "#26a641", "#39d353"),
        ),
        _theme(
            "github-light",
            "GitHub Light",
            "#ffffff",
            "#24292f",
            ("#ebedf0", "#9be9a8", "#40c463", "#30a14e", "#216e39"),
        ),
        _theme(
            "docker",
            "Docker",
            "#0d1117",
            "#c9d1d9",
            ("#1a1d21", "#0063a5", "#0080c9", "#00a1e5", "#00c4ff"),
        ),
        _theme(
            "dracula",
            "Dracula",
            "#282a36",
            "#f8f8f2",
            ("#44475a", "#6272a4", "#8be9fd", "#50fa7b", "#ff79c6"),
        ),
        _theme(
            "nord",
            "Nord",
            "#2e3440",
            "#eceff4",
            ("#3b4252", "#5e81ac", "#81a1c1", "#88c0d0", "#8fbcbb"),
        ),
        _theme(
            "monokai",
            "Monokai",
            "#272822",
            "#f8f8f2",
            ("#3e3d32", "#75715e", "#a6e22e", "#e6db74", "#f92672"),
        ),
        _theme(
            "one-dark",
            "One Dark",
            "#282c34",
            "#abb2bf",
            ("#353b45", "#3e4f6b", "#61afef", "#98c379", "#e5c07b"),
        ),
        _theme(
            "tokyo-night",
            "Tokyo Night",
            "#1a1b26",
            "#c0caf5",
            ("#24283b", "#414868", "#7aa2f7", "#bb9af7", "#ff9e64"),
        ),
        _theme(
            "catppuccin",
            "Catppuccin",
            "#1e1e2e",
            "#cdd6f4",
            ("#313244", "#585b70", "#89b4fa", "#cba6f7", "#f5c2e7"),
        ),
        _theme(
            "ocean",
            "Ocean",
            "#0b1d2a",
            "#d0e7f5",
            ("#13293d", "#1b4965", "#2a6f97", "#61a5c2", "#a9d6e5"),
        ),
        _theme(
            "sunset",
            "Sunset",
            "#1f1123",
            "#fde2e4",
            ("#2d1b33", "#7b2d26", "#c8553d", "#f28f3b", "#ffd5c2"),
        ),
        _theme(
            "forest",
            "Forest",
            "#0f1a12",
            "#dcedc8",
            ("#1b2a1e", "#2d4a2f", "#40704a", "#5a9a5e", "#8bc48a"),
        ),
        _theme(
            "purple",
            "Purple",
            "#1a1025",
            "#e9d5ff",
            ("#2a1b3d", "#44337a", "#6b46c1", "#9f7aea", "#d6bcfa"),
        ),
        _theme(
            "rose",
            "Rose",
            "#1f0f14",
            "#ffe4e6",
            ("#2e1720", "#881337", "#be123c", "#f43f5e", "#fda4af"),
        ),
        _theme(
            "minimal",
            "Minimal",
            "#ffffff",
            "#333333",
            ("#eeeeee", "#c6c6c6", "#9e9e9e", "#616161", "#212121"),
        ),
        _theme(
            "minimal-dark",
            "Minimal Dark",
            "#111111",
            "#dddddd",
            ("#1e1e1e", "#3a3a3a", "#6b6b6b", "#a0a0a0", "#e0e0e0"),
        ),
    ]
)


def list_themes() -> list[Theme]:
    """Return every built-in theme in display order."""
    return list(THEMES.values())
