"""Keep the tree panel's selection in step with the page shown in the viewer.

Events are handled one at a time. Every "page displayed" event bumps
``state.generation``; a fragment load started for an older generation still
fills the shared store cache when it completes, but only the resolution of
the latest event may move ``selected_path``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import FragmentLoadFailed, NavError, PathResolutionAmbiguous, TargetNotIndexed
from ..nav_index.index import FlatIndex, LookupResult
from ..nav_tree.store import TreeStore
from ..nav_tree.types import DeferredHandle, LoadFailure, NodePath
from .fragment_prefetch import FragmentLoadResult, InlineFragmentScheduler
from .state import SyncState, SyncStatus

logger = logging.getLogger(__name__)


class FragmentScheduler(Protocol):
    def schedule(self, handle: DeferredHandle, *, generation: int | None = None) -> int: ...

    def drain_results(self) -> list[FragmentLoadResult]: ...


@dataclass
class _Resolution:
    """Progress of the latest page event along its index path."""

    generation: int
    page_id: str
    lookup: LookupResult
    attempted: set[NodePath] = field(default_factory=set)
    awaiting: NodePath | None = None


def _ancestors(path: NodePath) -> list[NodePath]:
    return [path[:depth] for depth in range(1, len(path))]


class SyncController:
    """Sync state machine: Idle, Resolving, Synced and SyncFailed."""

    def __init__(
        self,
        store: TreeStore,
        index: FlatIndex,
        *,
        state: SyncState | None = None,
        scheduler: FragmentScheduler | None = None,
    ) -> None:
        self.store = store
        self.index = index
        self.state = state if state is not None else SyncState()
        self.scheduler = scheduler if scheduler is not None else InlineFragmentScheduler(store.load_fragment)
        self._active: _Resolution | None = None
        self._manual_pending: set[NodePath] = set()

    @property
    def status(self) -> SyncStatus:
        return self.state.status

    @property
    def selected_path(self) -> NodePath | None:
        return self.state.selected_path

    @property
    def expanded_paths(self) -> set[NodePath]:
        return self.state.expanded_paths

    @property
    def sync_enabled(self) -> bool:
        return self.state.sync_enabled

    # Synchronization events

    def page_displayed(self, page_id: str) -> int | None:
        """Start syncing to ``page_id``; returns the event generation.

        Ignored (and not queued) while synchronization is disabled.
        """
        state = self.state
        if not state.sync_enabled:
            logger.debug("sync disabled, ignoring page %s", page_id)
            return None

        state.generation += 1
        state.page_id = page_id
        state.status = SyncStatus.RESOLVING
        state.failure = None
        # The previous page's node is no longer the one shown.
        state.selected_path = None
        state.dirty = True

        lookup = self.index.lookup(page_id)
        if lookup is None:
            self._active = None
            self._fail(TargetNotIndexed(page_id))
            return state.generation

        logger.debug(
            "resolving %s via %s path %s",
            page_id,
            "exact" if lookup.exact else "approximate",
            list(lookup.path),
        )
        resolution = _Resolution(generation=state.generation, page_id=page_id, lookup=lookup)
        self._active = resolution
        self._advance(resolution)
        self.drain()
        return state.generation

    def set_sync_enabled(self, enabled: bool) -> None:
        """Turn synchronization on or off.

        Turning it off drops any resolution in progress and returns to Idle.
        Turning it on waits for the next page event.
        """
        state = self.state
        if state.sync_enabled == enabled:
            return
        state.sync_enabled = enabled
        state.dirty = True
        if not enabled:
            self._active = None
            state.status = SyncStatus.IDLE
        logger.info("panel synchronisation %s", "enabled" if enabled else "disabled")

    def toggle_sync(self) -> bool:
        self.set_sync_enabled(not self.state.sync_enabled)
        return self.state.sync_enabled

    # Manual tree interaction

    def expand_branch(self, path: NodePath) -> bool:
        """Open the branch at ``path``, loading its fragment when needed.

        Returns ``False`` for leaves and unknown paths. A failed branch is
        retried.
        """
        view = self.store.get_children(path)
        if isinstance(view, tuple):
            self.state.expanded_paths.add(path)
            self.state.dirty = True
            return True
        if view is None:
            return False
        handle = view if isinstance(view, DeferredHandle) else view.handle
        self._manual_pending.add(path)
        self._schedule(handle, generation=None)
        self.drain()
        return True

    def collapse_branch(self, path: NodePath) -> None:
        """Close the branch at ``path``; the selection is left untouched."""
        self.state.expanded_paths.discard(path)
        self._manual_pending.discard(path)
        self.state.dirty = True

    def toggle_branch(self, path: NodePath) -> bool:
        if path in self.state.expanded_paths:
            self.collapse_branch(path)
            return False
        return self.expand_branch(path)

    # Completed loads

    def drain(self) -> int:
        """Apply completed fragment loads in arrival order; returns how many."""
        applied = 0
        while True:
            results = self.scheduler.drain_results()
            if not results:
                return applied
            for result in results:
                applied += 1
                self._apply(result)

    def _apply(self, result: FragmentLoadResult) -> None:
        state = self.state
        handle = result.request.handle
        state.loading_paths.discard(handle.path)
        state.dirty = True
        if result.error is None and result.nodes is not None:
            self.store.install_fragment(handle, result.nodes)
        else:
            error = result.error or FragmentLoadFailed(handle.fragment_id, "empty load result")
            self.store.install_failure(handle, error)

        if handle.path in self._manual_pending:
            self._manual_pending.discard(handle.path)
            if isinstance(self.store.get_children(handle.path), tuple):
                state.expanded_paths.add(handle.path)

        resolution = self._active
        if resolution is None or resolution.awaiting != handle.path:
            if result.request.generation is not None and result.request.generation != state.generation:
                logger.debug(
                    "discarding stale load of %s for generation %s (now %s)",
                    handle.fragment_id,
                    result.request.generation,
                    state.generation,
                )
            return
        self._advance(resolution)

    # Resolution

    def _schedule(self, handle: DeferredHandle, generation: int | None) -> None:
        if handle.path in self.state.loading_paths:
            return
        self.state.loading_paths.add(handle.path)
        self.scheduler.schedule(handle, generation=generation)

    def _advance(self, resolution: _Resolution) -> None:
        path = resolution.lookup.path
        chain = _ancestors(path)
        if not resolution.lookup.exact:
            chain.append(path)

        for prefix in chain:
            view = self.store.get_children(prefix)
            if isinstance(view, tuple):
                # Partial progress stays expanded even if a later step fails.
                self.state.expanded_paths.add(prefix)
                continue
            if isinstance(view, (DeferredHandle, LoadFailure)):
                if isinstance(view, LoadFailure) and prefix in resolution.attempted:
                    self._fail(view.error)
                    return
                resolution.attempted.add(prefix)
                resolution.awaiting = prefix
                handle = view if isinstance(view, DeferredHandle) else view.handle
                self._schedule(handle, generation=resolution.generation)
                return
            self._fail(PathResolutionAmbiguous(resolution.page_id, path, "index path runs into a leaf"))
            return

        resolution.awaiting = None
        self._finish(resolution)

    def _finish(self, resolution: _Resolution) -> None:
        page_id = resolution.page_id
        path = resolution.lookup.path
        node = self.store.node_at(path)
        if node is None:
            self._fail(PathResolutionAmbiguous(page_id, path, "index path is not in the tree"))
            return

        resolved: NodePath | None = None
        if resolution.lookup.exact:
            if node.target != page_id:
                self._fail(PathResolutionAmbiguous(page_id, path, f"node links to {node.target!r}"))
                return
            resolved = path
        elif node.target == page_id:
            resolved = path
        else:
            for candidate_path, candidate in self.store.iter_materialized(path):
                if candidate.target == page_id:
                    resolved = candidate_path
                    break
            if resolved is None:
                self._fail(PathResolutionAmbiguous(page_id, path, "no matching node below approximate entry"))
                return

        state = self.state
        state.expanded_paths.update(_ancestors(resolved))
        state.selected_path = resolved
        state.status = SyncStatus.SYNCED
        state.dirty = True
        self._active = None
        logger.debug("synced %s to %s", page_id, list(resolved))

    def _fail(self, error: NavError) -> None:
        state = self.state
        state.status = SyncStatus.SYNC_FAILED
        state.failure = error
        state.selected_path = None
        state.dirty = True
        self._active = None
        logger.info("sync failed: %s", error)


__all__ = ["FragmentScheduler", "SyncController"]
