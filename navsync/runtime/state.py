"""Mutable per-panel synchronization state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..errors import NavError
from ..nav_tree.types import NodePath


class SyncStatus(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    SYNCED = "synced"
    SYNC_FAILED = "sync_failed"


@dataclass
class SyncState:
    """State owned by one open panel; discarded when the panel goes away.

    ``expanded_paths`` holds open branches. Synchronization only adds to it;
    a manual collapse removes one entry. ``loading_paths`` are nodes whose
    fragment load is in flight.
    """

    sync_enabled: bool = True
    status: SyncStatus = SyncStatus.IDLE
    expanded_paths: set[NodePath] = field(default_factory=set)
    selected_path: NodePath | None = None
    loading_paths: set[NodePath] = field(default_factory=set)
    generation: int = 0
    page_id: str | None = None
    failure: NavError | None = None
    dirty: bool = True


__all__ = ["SyncStatus", "SyncState"]
