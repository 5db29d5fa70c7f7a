"""Fragment sources: where deferred subtrees are fetched from."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from ..errors import FragmentFormatError, FragmentLoadFailed
from .fragments import decode_fragment_text, parse_fragment_entries, parse_js_assignments
from .types import TreeNode

logger = logging.getLogger(__name__)

NAVTREE_DATA_FILENAME = "navtreedata.js"
ROOT_FRAGMENT_NAME = "NAVTREE"
FRAGMENT_SUFFIXES: tuple[str, ...] = (".js", ".json")


class FragmentSource(Protocol):
    """Anything that can return parsed nodes for a fragment identifier."""

    def read(self, fragment_id: str) -> tuple[TreeNode, ...]:
        """Return the fragment's nodes or raise ``FragmentLoadFailed``."""
        ...


class MappingFragmentSource:
    """Serve fragments from an in-memory ``{fragment_id: raw_entries}`` map."""

    def __init__(self, fragments: Mapping[str, object]) -> None:
        self._fragments = dict(fragments)

    def read(self, fragment_id: str) -> tuple[TreeNode, ...]:
        if fragment_id not in self._fragments:
            raise FragmentLoadFailed(fragment_id, "no such fragment")
        try:
            return parse_fragment_entries(self._fragments[fragment_id], where=fragment_id)
        except FragmentFormatError as exc:
            raise FragmentLoadFailed(fragment_id, str(exc)) from exc


class DirectoryFragmentSource:
    """Serve fragments from ``<root>/<fragment_id>.js`` (or ``.json``) files."""

    def __init__(self, root: Path, suffixes: tuple[str, ...] = FRAGMENT_SUFFIXES) -> None:
        self.root = root
        self.suffixes = suffixes

    def fragment_path(self, fragment_id: str) -> Path | None:
        """Return the first existing file for ``fragment_id``, if any."""
        if not fragment_id or "/" in fragment_id or "\\" in fragment_id or fragment_id.startswith("."):
            return None
        for suffix in self.suffixes:
            candidate = self.root / f"{fragment_id}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def read(self, fragment_id: str) -> tuple[TreeNode, ...]:
        path = self.fragment_path(fragment_id)
        if path is None:
            raise FragmentLoadFailed(fragment_id, f"no fragment file in {self.root}")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FragmentLoadFailed(fragment_id, str(exc)) from exc
        try:
            raw = decode_fragment_text(text, fragment_id)
            return parse_fragment_entries(raw, where=fragment_id)
        except FragmentFormatError as exc:
            raise FragmentLoadFailed(fragment_id, str(exc)) from exc


def read_navtree_data(directory: Path) -> dict[str, object]:
    """Decode every assignment in ``<directory>/navtreedata.js``.

    Raises ``OSError`` when the file cannot be read and ``FragmentFormatError``
    when it is malformed; both are startup errors rather than sync errors.
    """
    path = directory / NAVTREE_DATA_FILENAME
    text = path.read_text(encoding="utf-8")
    assignments = parse_js_assignments(text)
    if ROOT_FRAGMENT_NAME not in assignments:
        raise FragmentFormatError(f"{path} does not define {ROOT_FRAGMENT_NAME}")
    logger.debug("read %s with variables %s", path, sorted(assignments))
    return assignments


__all__ = [
    "NAVTREE_DATA_FILENAME",
    "ROOT_FRAGMENT_NAME",
    "FRAGMENT_SUFFIXES",
    "FragmentSource",
    "MappingFragmentSource",
    "DirectoryFragmentSource",
    "read_navtree_data",
]
