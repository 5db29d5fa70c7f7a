"""Command-line front door for navsync.

Loads a generated documentation directory, replays "page displayed" events,
and prints the synchronized navigation panel or the flat index.
"""

from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path

from .errors import FragmentFormatError
from .runtime.config import load_sync_enabled, load_theme_name, save_sync_enabled, save_theme_name
from .runtime.logging_config import setup_logging
from .tree_pane import NavPanel
from .ui_theme import available_theme_names, resolve_theme


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _default_render_width() -> int:
    term = shutil.get_terminal_size((80, 24))
    return max(1, term.columns)


def _format_path(path: tuple[int, ...] | None) -> str:
    return "-" if path is None else "[" + ",".join(str(item) for item in path) + "]"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render a documentation navigation tree synchronized to displayed pages."
    )
    parser.add_argument("docs_dir", help="Directory containing navtreedata.js and its fragments.")
    parser.add_argument(
        "--page",
        action="append",
        default=[],
        metavar="PAGE",
        help="Page/anchor shown in the viewer; repeat to replay several events in order.",
    )
    parser.add_argument("--no-sync", action="store_true", help="Start with panel synchronisation disabled.")
    parser.add_argument("--expand-all", action="store_true", help="Load every fragment and open every branch.")
    parser.add_argument("--list-index", action="store_true", help="Print the flat index instead of the panel.")
    parser.add_argument(
        "--theme",
        default=None,
        help=f"UI theme name ({', '.join(available_theme_names())}).",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument(
        "--max-cols",
        type=_positive_int,
        default=None,
        help="Column width for panel output (default: terminal width).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log fragment loads and sync transitions.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write debug logs to this rotating file.")
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Remember --theme and the initial sync toggle (--no-sync) for later runs.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments, build the panel, and print it.

    Returns ``0`` when the last replayed page synced (or no page was given)
    and ``1`` when it did not.
    """
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    docs_dir = Path(args.docs_dir)
    if not docs_dir.is_dir():
        raise SystemExit(f"Directory not found: {docs_dir}")

    theme = resolve_theme(args.theme or load_theme_name(), no_color=args.no_color or not sys.stdout.isatty())
    sync_enabled = False if args.no_sync else load_sync_enabled()
    if args.save_defaults:
        save_sync_enabled(not args.no_sync)
        if args.theme:
            save_theme_name(resolve_theme(args.theme).name)
    try:
        panel = NavPanel.from_directory(docs_dir, sync_enabled=sync_enabled, theme=theme)
    except (OSError, FragmentFormatError) as exc:
        raise SystemExit(f"Cannot load navigation data from {docs_dir}: {exc}") from exc

    if args.list_index:
        for entry in panel.index:
            suffix = " (approximate)" if entry.approximate else ""
            sys.stdout.write(f"{_format_path(entry.path)}\t{entry.target}{suffix}\n")
        return 0

    if args.expand_all:
        panel.expand_all()
    for page_id in args.page:
        panel.page_displayed(page_id)

    width = args.max_cols if args.max_cols is not None else _default_render_width()
    for line in panel.render(width):
        sys.stdout.write(line + "\n")

    state = panel.state
    if args.page:
        failure = f" ({state.failure})" if state.failure is not None else ""
        sys.stdout.write(f"status: {state.status.value} selected: {_format_path(state.selected_path)}{failure}\n")
        if state.failure is not None:
            return 1
    return 0
