"""Build flat indexes from generated index chunks or from a tree store.

Generated chunks store paths below the site's single top node: the main page
is ``[]`` and ``[1, 0]`` is the first child of the top node's second child.
``load_flat_index`` turns them into forest paths by prefixing that node.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from ..errors import FragmentFormatError
from ..nav_tree.fragments import parse_js_assignments
from ..nav_tree.sources import read_navtree_data
from ..nav_tree.store import TreeStore
from .index import FlatIndex, IndexEntry

logger = logging.getLogger(__name__)

INDEX_BOUNDARIES_NAME = "NAVTREEINDEX"
TOP_NODE_PATH: tuple[int, ...] = (0,)


def _coerce_path(raw: object) -> tuple[int, ...] | None:
    if not isinstance(raw, list):
        return None
    if not all(isinstance(item, int) and not isinstance(item, bool) and item >= 0 for item in raw):
        return None
    return TOP_NODE_PATH + tuple(raw)


def _coerce_boundaries(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def read_index_chunk(path: Path, chunk_name: str) -> list[IndexEntry]:
    """Read one ``navtreeindex<N>.js`` file into exact entries.

    Malformed individual entries are skipped; an unreadable or malformed file
    raises ``OSError``/``FragmentFormatError``.
    """
    assignments = parse_js_assignments(path.read_text(encoding="utf-8"))
    mapping = assignments.get(chunk_name)
    if not isinstance(mapping, dict):
        raise FragmentFormatError(f"{path} does not define an object named {chunk_name}")
    entries: list[IndexEntry] = []
    for target, raw_path in mapping.items():
        node_path = _coerce_path(raw_path)
        if node_path is None:
            logger.debug("skipping malformed index entry %r in %s", target, path)
            continue
        entries.append(IndexEntry(target=target, path=node_path))
    return entries


def load_flat_index(directory: Path, assignments: Mapping[str, object] | None = None) -> FlatIndex:
    """Load the chunked flat index that sits next to ``navtreedata.js``.

    ``assignments`` are the already decoded ``navtreedata.js`` variables;
    the file is read when they are not given. Missing or malformed chunks
    are logged and skipped; their pages simply become unindexed.
    """
    if assignments is None:
        assignments = read_navtree_data(directory)
    boundaries = _coerce_boundaries(assignments.get(INDEX_BOUNDARIES_NAME))
    entries: list[IndexEntry] = []
    for chunk_number in range(len(boundaries)):
        chunk_name = f"{INDEX_BOUNDARIES_NAME}{chunk_number}"
        chunk_path = directory / f"{chunk_name.lower()}.js"
        try:
            entries.extend(read_index_chunk(chunk_path, chunk_name))
        except (OSError, UnicodeDecodeError, FragmentFormatError) as exc:
            logger.warning("skipping index chunk %s: %s", chunk_path.name, exc)
    return FlatIndex(entries, boundaries=boundaries)


def build_flat_index(store: TreeStore) -> FlatIndex:
    """Build an exact index by expanding every fragment of ``store``."""
    failures = store.resolve_all()
    for failure in failures:
        logger.warning("index build could not expand %s: %s", list(failure.handle.path), failure.error.reason)
    entries = [
        IndexEntry(target=node.target, path=path)
        for path, node in store.iter_materialized()
        if node.target is not None
    ]
    return FlatIndex(entries)


__all__ = ["INDEX_BOUNDARIES_NAME", "TOP_NODE_PATH", "read_index_chunk", "load_flat_index", "build_flat_index"]
