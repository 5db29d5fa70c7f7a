"""Panel runtime: sync state machine, fragment loading, config and logging."""

from __future__ import annotations

from .fragment_prefetch import (
    FragmentLoadRequest,
    FragmentLoadResult,
    FragmentLoadScheduler,
    InlineFragmentScheduler,
)
from .state import SyncState, SyncStatus
from .sync_controller import FragmentScheduler, SyncController

__all__ = [
    "SyncState",
    "SyncStatus",
    "SyncController",
    "FragmentScheduler",
    "FragmentLoadRequest",
    "FragmentLoadResult",
    "FragmentLoadScheduler",
    "InlineFragmentScheduler",
]
