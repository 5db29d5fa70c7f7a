"""Error kinds raised or reported by navigation-tree components.

None of these are fatal: they degrade synchronization for one page while the
tree and the content viewer keep working.
"""

from __future__ import annotations


class NavError(Exception):
    """Base class for navigation tree/index/sync errors."""


class FragmentFormatError(ValueError):
    """Fragment text or decoded data does not follow the tree fragment format."""


class FragmentLoadFailed(NavError):
    """A deferred subtree could not be fetched or parsed."""

    def __init__(self, fragment_id: str, reason: str) -> None:
        super().__init__(f"failed to load fragment {fragment_id!r}: {reason}")
        self.fragment_id = fragment_id
        self.reason = reason


class TargetNotIndexed(NavError):
    """Displayed page has no entry in the flat index."""

    def __init__(self, page_id: str) -> None:
        super().__init__(f"page {page_id!r} is not in the navigation index")
        self.page_id = page_id


class PathResolutionAmbiguous(NavError):
    """Index path could not be confirmed against the tree."""

    def __init__(self, page_id: str, path: tuple[int, ...], reason: str) -> None:
        super().__init__(f"cannot resolve {page_id!r} near {list(path)}: {reason}")
        self.page_id = page_id
        self.path = path
        self.reason = reason


__all__ = [
    "NavError",
    "FragmentFormatError",
    "FragmentLoadFailed",
    "TargetNotIndexed",
    "PathResolutionAmbiguous",
]
