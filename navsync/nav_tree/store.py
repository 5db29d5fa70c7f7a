"""Navigation tree store with a lazily filled resolved-fragment cache.

The forest handed to ``TreeStore`` is never mutated. Subtrees fetched for
deferred nodes are kept in a separate cache keyed by node path, so a node's
effective children are either its inline children, the cached fragment, a
``LoadFailure`` marker, or a ``DeferredHandle`` for a load not yet attempted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path

from ..errors import FragmentLoadFailed
from .fragments import parse_fragment_entries
from .sources import DirectoryFragmentSource, FragmentSource, ROOT_FRAGMENT_NAME, read_navtree_data
from .types import DeferredChildren, DeferredHandle, InlineChildren, LoadFailure, NodePath, ResolveResult, TreeNode

logger = logging.getLogger(__name__)

ChildrenView = tuple[TreeNode, ...] | DeferredHandle | LoadFailure | None


class TreeStore:
    """Hold the navigation forest and materialize deferred subtrees on demand."""

    def __init__(self, roots: tuple[TreeNode, ...], source: FragmentSource) -> None:
        self.roots = tuple(roots)
        self.source = source
        self._resolved: dict[NodePath, tuple[TreeNode, ...]] = {}
        self._failed: dict[NodePath, LoadFailure] = {}
        self._fetch_lock = threading.Lock()
        self.fetch_count = 0

    @classmethod
    def from_directory(cls, directory: Path, assignments: Mapping[str, object] | None = None) -> TreeStore:
        """Build a store from ``navtreedata.js`` plus sibling fragment files.

        Pass ``assignments`` when ``navtreedata.js`` was already decoded.
        """
        if assignments is None:
            assignments = read_navtree_data(directory)
        roots = parse_fragment_entries(assignments[ROOT_FRAGMENT_NAME], where=ROOT_FRAGMENT_NAME)
        return cls(roots, DirectoryFragmentSource(directory))

    def node_at(self, path: NodePath) -> TreeNode | None:
        """Return the node at ``path`` when it is materialized, else ``None``."""
        if not path:
            return None
        siblings: tuple[TreeNode, ...] | None = self.roots
        node: TreeNode | None = None
        for depth, index in enumerate(path):
            if siblings is None or not 0 <= index < len(siblings):
                return None
            node = siblings[index]
            if depth + 1 < len(path):
                view = self.children_view(path[: depth + 1], node)
                siblings = view if isinstance(view, tuple) else None
        return node

    def children_of(self, path: NodePath) -> tuple[TreeNode, ...] | None:
        """Return materialized children at ``path`` or ``None`` if there are none yet."""
        view = self.get_children(path)
        return view if isinstance(view, tuple) else None

    def get_children(self, path: NodePath) -> ChildrenView:
        """Return the children view for the node at ``path``.

        Never triggers a fetch: unresolved deferred slots come back as a
        ``DeferredHandle`` so the caller decides whether to load.
        """
        if not path:
            return self.roots
        node = self.node_at(path)
        if node is None:
            return None
        return self.children_view(path, node)

    def children_view(self, path: NodePath, node: TreeNode) -> ChildrenView:
        """Return the children view for ``node``, already located at ``path``."""
        slot = node.children
        if isinstance(slot, InlineChildren):
            return slot.nodes
        if isinstance(slot, DeferredChildren):
            resolved = self._resolved.get(path)
            if resolved is not None:
                return resolved
            failure = self._failed.get(path)
            if failure is not None:
                return failure
            return DeferredHandle(path=path, fragment_id=slot.fragment_id)
        return None

    def is_materialized(self, path: NodePath) -> bool:
        return path in self._resolved

    @property
    def materialized_paths(self) -> frozenset[NodePath]:
        return frozenset(self._resolved)

    def load_fragment(self, fragment_id: str) -> tuple[TreeNode, ...]:
        """Fetch and parse one fragment without touching the cache.

        Safe to call from a worker thread. Raises ``FragmentLoadFailed``.
        """
        with self._fetch_lock:
            self.fetch_count += 1
        logger.debug("fetching fragment %s", fragment_id)
        try:
            return self.source.read(fragment_id)
        except FragmentLoadFailed:
            raise
        except Exception as exc:
            raise FragmentLoadFailed(fragment_id, f"{type(exc).__name__}: {exc}") from exc

    def install_fragment(self, handle: DeferredHandle, nodes: tuple[TreeNode, ...]) -> tuple[TreeNode, ...]:
        """Store fetched children for ``handle``; an earlier success is kept."""
        existing = self._resolved.get(handle.path)
        if existing is not None:
            return existing
        self._resolved[handle.path] = nodes
        self._failed.pop(handle.path, None)
        return nodes

    def install_failure(self, handle: DeferredHandle, error: FragmentLoadFailed) -> ChildrenView:
        """Mark ``handle`` as failed unless it already resolved."""
        existing = self._resolved.get(handle.path)
        if existing is not None:
            return existing
        failure = LoadFailure(handle=handle, error=error)
        self._failed[handle.path] = failure
        logger.warning("fragment %s for %s failed: %s", handle.fragment_id, list(handle.path), error.reason)
        return failure

    def resolve_deferred(self, handle: DeferredHandle, *, retry: bool = False) -> ResolveResult:
        """Materialize ``handle`` synchronously.

        Already resolved nodes return the cached tuple without fetching. A
        cached failure is returned as-is unless ``retry`` is set.
        """
        resolved = self._resolved.get(handle.path)
        if resolved is not None:
            return ResolveResult(handle=handle, children=resolved)
        failure = self._failed.get(handle.path)
        if failure is not None and not retry:
            return ResolveResult(handle=handle, error=failure.error)

        try:
            nodes = self.load_fragment(handle.fragment_id)
        except FragmentLoadFailed as exc:
            self.install_failure(handle, exc)
            return ResolveResult(handle=handle, error=exc, fetched=True)
        return ResolveResult(handle=handle, children=self.install_fragment(handle, nodes), fetched=True)

    def resolve_path(self, path: NodePath) -> ResolveResult | None:
        """Resolve every deferred ancestor of ``path`` and the node itself.

        Returns the first failed result, or ``None`` when everything on the
        way is materialized.
        """
        for depth in range(1, len(path) + 1):
            view = self.get_children(path[:depth])
            if isinstance(view, (DeferredHandle, LoadFailure)):
                handle = view if isinstance(view, DeferredHandle) else view.handle
                result = self.resolve_deferred(handle)
                if not result.ok:
                    return result
        return None

    def iter_materialized(self, start: NodePath = ()) -> Iterator[tuple[NodePath, TreeNode]]:
        """Walk materialized nodes below ``start`` in pre-order without loading."""
        children = self.get_children(start)
        if not isinstance(children, tuple):
            return
        pending = [(start + (index,), node) for index, node in reversed(list(enumerate(children)))]
        while pending:
            path, node = pending.pop()
            yield path, node
            nested = self.children_view(path, node)
            if isinstance(nested, tuple):
                pending.extend((path + (index,), child) for index, child in reversed(list(enumerate(nested))))

    def resolve_all(self) -> list[LoadFailure]:
        """Fetch every reachable fragment; returns the failures met."""
        failures: list[LoadFailure] = []
        pending = [((index,), node) for index, node in reversed(list(enumerate(self.roots)))]
        while pending:
            path, node = pending.pop()
            view = self.children_view(path, node)
            if isinstance(view, DeferredHandle):
                result = self.resolve_deferred(view)
                view = result.children if result.ok else self.children_view(path, node)
            if isinstance(view, LoadFailure):
                failures.append(view)
                continue
            if isinstance(view, tuple):
                pending.extend((path + (index,), child) for index, child in reversed(list(enumerate(view))))
        return failures


__all__ = ["ChildrenView", "TreeStore"]
