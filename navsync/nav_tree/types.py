"""Datatypes for navigation tree nodes and their children slots."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import FragmentLoadFailed

NodePath = tuple[int, ...]


@dataclass(frozen=True)
class InlineChildren:
    """Children already present in the fragment that declared the node."""

    nodes: tuple["TreeNode", ...]


@dataclass(frozen=True)
class DeferredChildren:
    """Children stored in another fragment that is loaded on first expansion."""

    fragment_id: str


# ``None`` stands for a leaf.
ChildrenSlot = InlineChildren | DeferredChildren | None


@dataclass(frozen=True)
class TreeNode:
    """One titled link in the navigation tree."""

    title: str
    target: str | None
    children: ChildrenSlot = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    @property
    def is_deferred(self) -> bool:
        return isinstance(self.children, DeferredChildren)


@dataclass(frozen=True)
class DeferredHandle:
    """Reference to a not-yet-materialized subtree at ``path``."""

    path: NodePath
    fragment_id: str


@dataclass(frozen=True)
class LoadFailure:
    """Marker left in a children slot after its fragment failed to load."""

    handle: DeferredHandle
    error: FragmentLoadFailed = field(compare=False)


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of resolving one deferred handle.

    ``fetched`` is ``False`` when the answer came from the resolved-fragment
    cache.
    """

    handle: DeferredHandle
    children: tuple[TreeNode, ...] | None = None
    error: FragmentLoadFailed | None = None
    fetched: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.children is not None


__all__ = [
    "NodePath",
    "InlineChildren",
    "DeferredChildren",
    "ChildrenSlot",
    "TreeNode",
    "DeferredHandle",
    "LoadFailure",
    "ResolveResult",
]
