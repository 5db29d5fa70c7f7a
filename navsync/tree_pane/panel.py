"""Navigation panel: tree store, flat index and sync controller behind one API."""

from __future__ import annotations

import logging
from pathlib import Path

from ..nav_index.index import FlatIndex
from ..nav_index.loading import build_flat_index, load_flat_index
from ..nav_tree.sources import read_navtree_data
from ..nav_tree.store import TreeStore
from ..nav_tree.types import NodePath
from ..runtime.state import SyncState
from ..runtime.sync_controller import FragmentScheduler, SyncController
from ..ui_theme import DEFAULT_THEME, UITheme
from .rendering import SYNC_OFF_MESSAGE, SYNC_ON_MESSAGE, render_panel_lines
from .rows import NavRow, build_nav_rows

logger = logging.getLogger(__name__)


class NavPanel:
    """One open navigation panel instance.

    The panel owns its ``SyncState``; dropping the panel drops the state.
    """

    def __init__(
        self,
        store: TreeStore,
        index: FlatIndex,
        *,
        sync_enabled: bool = True,
        scheduler: FragmentScheduler | None = None,
        theme: UITheme | None = None,
        messages: tuple[str, str] = (SYNC_ON_MESSAGE, SYNC_OFF_MESSAGE),
    ) -> None:
        self.store = store
        self.index = index
        self.theme = theme or DEFAULT_THEME
        self.messages = messages
        self.controller = SyncController(
            store,
            index,
            state=SyncState(sync_enabled=sync_enabled),
            scheduler=scheduler,
        )

    @classmethod
    def from_directory(cls, directory: Path, **kwargs) -> NavPanel:
        """Open a panel on a generated documentation directory.

        Uses the chunked index when the directory ships one and otherwise
        builds an index by expanding the whole tree.
        """
        assignments = read_navtree_data(directory)
        store = TreeStore.from_directory(directory, assignments)
        index = load_flat_index(directory, assignments)
        if not len(index):
            logger.info("no index chunks in %s, building index from tree", directory)
            index = build_flat_index(store)
        on_message = assignments.get("SYNCONMSG")
        off_message = assignments.get("SYNCOFFMSG")
        if isinstance(on_message, str) and isinstance(off_message, str):
            kwargs.setdefault("messages", (on_message, off_message))
        return cls(store, index, **kwargs)

    @property
    def state(self) -> SyncState:
        return self.controller.state

    def page_displayed(self, page_id: str) -> int | None:
        return self.controller.page_displayed(page_id)

    def toggle_sync(self) -> bool:
        return self.controller.toggle_sync()

    def expand(self, path: NodePath) -> bool:
        return self.controller.expand_branch(path)

    def collapse(self, path: NodePath) -> None:
        self.controller.collapse_branch(path)

    def toggle(self, path: NodePath) -> bool:
        return self.controller.toggle_branch(path)

    def expand_all(self) -> None:
        """Materialize every fragment and open every branch."""
        self.store.resolve_all()
        for path, node in self.store.iter_materialized():
            if not node.is_leaf and isinstance(self.store.children_view(path, node), tuple):
                self.state.expanded_paths.add(path)
        self.state.dirty = True

    def activate(self, path: NodePath) -> str | None:
        """Return the target a click on ``path`` should show in the viewer."""
        node = self.store.node_at(path)
        return node.target if node is not None else None

    def poll(self) -> bool:
        """Apply completed background loads; returns whether anything changed."""
        return self.controller.drain() > 0

    def rows(self) -> list[NavRow]:
        return build_nav_rows(self.store, self.state)

    def render(self, width: int) -> list[str]:
        self.state.dirty = False
        return render_panel_lines(self.rows(), self.state.sync_enabled, width, self.theme, self.messages)


__all__ = ["NavPanel"]
