"""Flat page index used to find a displayed page inside the navigation tree."""

from __future__ import annotations

from .index import FlatIndex, IndexEntry, LookupResult, split_anchor
from .loading import INDEX_BOUNDARIES_NAME, build_flat_index, load_flat_index, read_index_chunk

__all__ = [
    "FlatIndex",
    "IndexEntry",
    "LookupResult",
    "split_anchor",
    "INDEX_BOUNDARIES_NAME",
    "build_flat_index",
    "load_flat_index",
    "read_index_chunk",
]
