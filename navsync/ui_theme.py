"""UI theme definitions and selection helpers.

Themes are ANSI palettes for the navigation panel: branch/leaf titles, the
expand markers, load states and the synchronisation toggle line.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by renderers."""

    name: str
    reset: str
    reverse: str
    tree_marker: str
    tree_branch: str
    tree_leaf: str
    tree_loading: str
    tree_error: str
    toggle_on: str
    toggle_off: str


DEFAULT_THEME = UITheme(
    name="default",
    reset="\033[0m",
    reverse="\033[7m",
    tree_marker="\033[38;5;44m",
    tree_branch="\033[1;34m",
    tree_leaf="\033[38;5;252m",
    tree_loading="\033[2;38;5;250m",
    tree_error="\033[1;31m",
    toggle_on="\033[38;5;42m",
    toggle_off="\033[38;5;214m",
)

OCEAN_THEME = UITheme(
    name="ocean",
    reset="\033[0m",
    reverse="\033[7m",
    tree_marker="\033[38;5;39m",
    tree_branch="\033[1;38;5;45m",
    tree_leaf="\033[38;5;153m",
    tree_loading="\033[2;38;5;110m",
    tree_error="\033[38;5;203m",
    toggle_on="\033[38;5;84m",
    toggle_off="\033[38;5;215m",
)

PLAIN_THEME = UITheme(
    name="plain",
    reset="",
    reverse="",
    tree_marker="",
    tree_branch="",
    tree_leaf="",
    tree_loading="",
    tree_error="",
    toggle_on="",
    toggle_off="",
)

_THEMES: dict[str, UITheme] = {
    DEFAULT_THEME.name: DEFAULT_THEME,
    OCEAN_THEME.name: OCEAN_THEME,
}


def available_theme_names() -> tuple[str, ...]:
    """Return selectable non-plain theme names."""
    return tuple(sorted(_THEMES.keys()))


def resolve_theme(name: str | None, *, no_color: bool = False) -> UITheme:
    """Return concrete theme for requested name and color mode.

    Unknown names fall back to the default palette.
    """
    if no_color:
        return PLAIN_THEME
    candidate = (name or "").strip().lower()
    return _THEMES.get(candidate, DEFAULT_THEME)


__all__ = [
    "UITheme",
    "DEFAULT_THEME",
    "OCEAN_THEME",
    "PLAIN_THEME",
    "available_theme_names",
    "resolve_theme",
]
