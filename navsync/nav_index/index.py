"""Flat lookup index from displayed page targets to tree node paths."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from ..nav_tree.types import NodePath


@dataclass(frozen=True)
class IndexEntry:
    """One ``target -> path`` mapping.

    Approximate entries point at an enclosing section rather than the page
    itself; the caller must look for the page below that node.
    """

    target: str
    path: NodePath
    approximate: bool = False


@dataclass(frozen=True)
class LookupResult:
    page_id: str
    path: NodePath
    exact: bool
    entry: IndexEntry


def split_anchor(page_id: str) -> tuple[str, str | None]:
    """Split ``page.html#anchor`` into ``("page.html", "anchor")``."""
    page, sep, anchor = page_id.partition("#")
    return page, (anchor if sep else None)


class FlatIndex:
    """Ordered, read-only page index.

    Entries are kept in pre-order of the fully expanded tree, which for node
    paths is plain tuple ordering. Lookups never touch the tree store.
    """

    def __init__(self, entries: Iterable[IndexEntry] = (), boundaries: Sequence[str] = ()) -> None:
        self.entries: tuple[IndexEntry, ...] = tuple(sorted(entries, key=lambda entry: entry.path))
        self.boundaries: tuple[str, ...] = tuple(boundaries)
        self._exact: dict[str, IndexEntry] = {}
        self._approximate: dict[str, IndexEntry] = {}
        self._position: dict[str, int] = {}
        for position, entry in enumerate(self.entries):
            table = self._approximate if entry.approximate else self._exact
            table.setdefault(entry.target, entry)
            if not entry.approximate:
                self._position.setdefault(entry.target, position)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries)

    def __contains__(self, page_id: object) -> bool:
        return isinstance(page_id, str) and page_id in self._exact

    def lookup(self, page_id: str) -> LookupResult | None:
        """Return the best-known path for ``page_id``.

        ``exact`` is ``False`` when the result points at an enclosing node:
        either an approximate entry, or the bare page of an ``#anchor`` id.
        """
        entry = self._exact.get(page_id)
        if entry is not None:
            return LookupResult(page_id=page_id, path=entry.path, exact=True, entry=entry)
        entry = self._approximate.get(page_id)
        if entry is not None:
            return LookupResult(page_id=page_id, path=entry.path, exact=False, entry=entry)

        page, anchor = split_anchor(page_id)
        if anchor is None:
            return None
        entry = self._exact.get(page) or self._approximate.get(page)
        if entry is None:
            return None
        return LookupResult(page_id=page_id, path=entry.path, exact=False, entry=entry)

    def neighbors(self, page_id: str) -> tuple[IndexEntry | None, IndexEntry | None]:
        """Return the exact entries before and after ``page_id`` in tree order."""
        position = self._position.get(page_id)
        if position is None:
            return None, None
        exact_positions = [idx for idx, entry in enumerate(self.entries) if not entry.approximate]
        rank = exact_positions.index(position)
        previous = self.entries[exact_positions[rank - 1]] if rank > 0 else None
        following = self.entries[exact_positions[rank + 1]] if rank + 1 < len(exact_positions) else None
        return previous, following

    def chunk_for(self, page_id: str) -> int | None:
        """Return which index chunk holds ``page_id`` given sorted chunk boundaries.

        Each boundary is the first key stored in its chunk, so the chunk is the
        last boundary not greater than ``page_id``.
        """
        if not self.boundaries:
            return None
        position = bisect_right(self.boundaries, page_id) - 1
        return max(0, position)


__all__ = ["IndexEntry", "LookupResult", "FlatIndex", "split_anchor"]
