"""Text rendering for the navigation panel."""

from __future__ import annotations

import re
import unicodedata

from ..ui_theme import DEFAULT_THEME, UITheme
from .rows import ROW_COLLAPSED, ROW_EXPANDED, ROW_FAILED, ROW_LOADING, NavRow

SYNC_ON_MESSAGE = "click to disable panel synchronisation"
SYNC_OFF_MESSAGE = "click to enable panel synchronisation"

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

_MARKERS = {
    ROW_EXPANDED: "▾ ",
    ROW_COLLAPSED: "▸ ",
    ROW_LOADING: "… ",
    ROW_FAILED: "✗ ",
}


def char_display_width(ch: str) -> int:
    """Return terminal column width for one character."""
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Trim a styled line to ``max_cols`` columns, keeping escape sequences."""
    if max_cols <= 0 or not text:
        return ""
    out: list[str] = []
    col = 0
    i = 0
    while i < len(text):
        match = ANSI_ESCAPE_RE.match(text, i) if text[i] == "\x1b" else None
        if match:
            out.append(match.group(0))
            i = match.end()
            continue
        width = char_display_width(text[i])
        if col + width > max_cols:
            break
        out.append(text[i])
        col += width
        i += 1
    return "".join(out)


def selected_with_ansi(text: str, theme: UITheme) -> str:
    """Apply reverse video across a row, surviving embedded resets."""
    if not text:
        return text
    if not theme.reverse or not theme.reset:
        # Plain output has no reverse video; mark the row in text instead.
        return f"> {text}"
    return theme.reverse + text.replace(theme.reset, theme.reset + theme.reverse) + theme.reset


def format_nav_row(row: NavRow, theme: UITheme | None = None) -> str:
    """Render one tree row as ANSI-styled display text."""
    active_theme = theme or DEFAULT_THEME
    reset = active_theme.reset
    indent = "  " * row.depth
    if row.kind == ROW_FAILED:
        marker = f"{active_theme.tree_error}{_MARKERS[ROW_FAILED]}{reset}"
        text = f"{active_theme.tree_branch}{row.node.title}{reset} {active_theme.tree_error}[load failed]{reset}"
    elif row.kind == ROW_LOADING:
        marker = f"{active_theme.tree_loading}{_MARKERS[ROW_LOADING]}{reset}"
        text = f"{active_theme.tree_branch}{row.node.title}{reset}"
    elif row.kind in _MARKERS:
        marker = f"{active_theme.tree_marker}{_MARKERS[row.kind]}{reset}"
        text = f"{active_theme.tree_branch}{row.node.title}{reset}"
    else:
        # Leaves align under their parent's title column.
        marker = "  "
        text = f"{active_theme.tree_leaf}{row.node.title}{reset}"
    line = f"{indent}{marker}{text}"
    return selected_with_ansi(line, active_theme) if row.selected else line


def sync_toggle_label(sync_enabled: bool, theme: UITheme | None = None, messages: tuple[str, str] | None = None) -> str:
    """Render the synchronisation toggle line.

    ``messages`` is ``(on_message, off_message)`` when the site provides its own.
    """
    active_theme = theme or DEFAULT_THEME
    on_message, off_message = messages or (SYNC_ON_MESSAGE, SYNC_OFF_MESSAGE)
    if sync_enabled:
        return f"{active_theme.toggle_on}⇄ {on_message}{active_theme.reset}"
    return f"{active_theme.toggle_off}⇹ {off_message}{active_theme.reset}"


def render_panel_lines(
    rows: list[NavRow],
    sync_enabled: bool,
    width: int,
    theme: UITheme | None = None,
    messages: tuple[str, str] | None = None,
) -> list[str]:
    """Render the toggle line followed by every visible row, clipped to ``width``."""
    active_theme = theme or DEFAULT_THEME
    lines = [sync_toggle_label(sync_enabled, active_theme, messages)]
    lines.extend(format_nav_row(row, active_theme) for row in rows)
    return [clip_ansi_line(line, width) for line in lines]


__all__ = [
    "SYNC_ON_MESSAGE",
    "SYNC_OFF_MESSAGE",
    "clip_ansi_line",
    "selected_with_ansi",
    "format_nav_row",
    "sync_toggle_label",
    "render_panel_lines",
]
