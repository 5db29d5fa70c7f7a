"""Navigation tree model: nodes, fragment decoding, sources and the store.

This package contains non-UI primitives only:
- node/children-slot datatypes and node paths
- the tree fragment codec for JSON and generated JavaScript data files
- fragment sources backed by a directory or an in-memory mapping
- ``TreeStore`` with its lazily filled resolved-fragment cache
"""

from __future__ import annotations

from .fragments import decode_fragment_text, parse_fragment_entries, parse_js_assignments
from .sources import (
    NAVTREE_DATA_FILENAME,
    ROOT_FRAGMENT_NAME,
    DirectoryFragmentSource,
    FragmentSource,
    MappingFragmentSource,
    read_navtree_data,
)
from .store import ChildrenView, TreeStore
from .types import (
    ChildrenSlot,
    DeferredChildren,
    DeferredHandle,
    InlineChildren,
    LoadFailure,
    NodePath,
    ResolveResult,
    TreeNode,
)

__all__ = [
    "NodePath",
    "TreeNode",
    "InlineChildren",
    "DeferredChildren",
    "ChildrenSlot",
    "DeferredHandle",
    "LoadFailure",
    "ResolveResult",
    "ChildrenView",
    "TreeStore",
    "FragmentSource",
    "MappingFragmentSource",
    "DirectoryFragmentSource",
    "NAVTREE_DATA_FILENAME",
    "ROOT_FRAGMENT_NAME",
    "read_navtree_data",
    "decode_fragment_text",
    "parse_fragment_entries",
    "parse_js_assignments",
]
