"""Navigation panel: visible rows, text rendering and the panel facade."""

from __future__ import annotations

from .panel import NavPanel
from .rendering import (
    SYNC_OFF_MESSAGE,
    SYNC_ON_MESSAGE,
    clip_ansi_line,
    format_nav_row,
    render_panel_lines,
    sync_toggle_label,
)
from .rows import NavRow, build_nav_rows, row_index_for_path

__all__ = [
    "NavPanel",
    "NavRow",
    "build_nav_rows",
    "row_index_for_path",
    "SYNC_ON_MESSAGE",
    "SYNC_OFF_MESSAGE",
    "clip_ansi_line",
    "format_nav_row",
    "render_panel_lines",
    "sync_toggle_label",
]
