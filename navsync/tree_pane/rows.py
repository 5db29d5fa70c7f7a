"""Project the tree store plus panel state into visible rows."""

from __future__ import annotations

from dataclasses import dataclass

from ..nav_tree.store import TreeStore
from ..nav_tree.types import LoadFailure, NodePath, TreeNode
from ..runtime.state import SyncState

ROW_LEAF = "leaf"
ROW_COLLAPSED = "collapsed"
ROW_EXPANDED = "expanded"
ROW_LOADING = "loading"
ROW_FAILED = "failed"


@dataclass(frozen=True)
class NavRow:
    """One rendered row in the navigation panel."""

    path: NodePath
    node: TreeNode
    kind: str
    selected: bool = False
    error: str | None = None

    @property
    def depth(self) -> int:
        return len(self.path) - 1


def _row_kind(store: TreeStore, state: SyncState, path: NodePath, node: TreeNode) -> tuple[str, str | None]:
    if node.is_leaf:
        return ROW_LEAF, None
    if path in state.loading_paths:
        return ROW_LOADING, None
    view = store.children_view(path, node)
    if isinstance(view, LoadFailure):
        return ROW_FAILED, view.error.reason
    if isinstance(view, tuple) and path in state.expanded_paths:
        return ROW_EXPANDED, None
    return ROW_COLLAPSED, None


def build_nav_rows(store: TreeStore, state: SyncState) -> list[NavRow]:
    """Return visible rows in pre-order, descending only into open branches."""
    rows: list[NavRow] = []
    pending = [((index,), node) for index, node in reversed(list(enumerate(store.roots)))]
    while pending:
        path, node = pending.pop()
        kind, error = _row_kind(store, state, path, node)
        rows.append(NavRow(path, node, kind, selected=path == state.selected_path, error=error))
        if kind == ROW_EXPANDED:
            nested = store.children_view(path, node)
            if isinstance(nested, tuple):
                pending.extend((path + (index,), child) for index, child in reversed(list(enumerate(nested))))
    return rows


def row_index_for_path(rows: list[NavRow], path: NodePath | None) -> int | None:
    if path is None:
        return None
    for index, row in enumerate(rows):
        if row.path == path:
            return index
    return None


__all__ = [
    "ROW_LEAF",
    "ROW_COLLAPSED",
    "ROW_EXPANDED",
    "ROW_LOADING",
    "ROW_FAILED",
    "NavRow",
    "build_nav_rows",
    "row_index_for_path",
]
