"""Fragment load schedulers feeding completed loads back to the controller."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue

from ..errors import FragmentLoadFailed
from ..nav_tree.types import DeferredHandle, TreeNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FragmentLoadRequest:
    """One fragment load job.

    ``generation`` is the page event that asked for the load, or ``None`` for
    a manual expansion.
    """

    request_id: int
    handle: DeferredHandle
    generation: int | None


@dataclass(frozen=True)
class FragmentLoadResult:
    """Completed fragment load, successful or not."""

    request: FragmentLoadRequest
    nodes: tuple[TreeNode, ...] | None = None
    error: FragmentLoadFailed | None = None


def _run_load(load_fragment: Callable[[str], tuple[TreeNode, ...]], request: FragmentLoadRequest) -> FragmentLoadResult:
    try:
        nodes = load_fragment(request.handle.fragment_id)
    except FragmentLoadFailed as exc:
        return FragmentLoadResult(request=request, error=exc)
    except Exception as exc:
        logger.debug("unexpected error loading %s", request.handle.fragment_id, exc_info=True)
        error = FragmentLoadFailed(request.handle.fragment_id, f"{type(exc).__name__}: {exc}")
        return FragmentLoadResult(request=request, error=error)
    return FragmentLoadResult(request=request, nodes=nodes)


class InlineFragmentScheduler:
    """Load during ``schedule`` and queue the result for the next drain."""

    def __init__(self, load_fragment: Callable[[str], tuple[TreeNode, ...]]) -> None:
        self._load_fragment = load_fragment
        self._next_request_id = 1
        self._results: list[FragmentLoadResult] = []

    def schedule(self, handle: DeferredHandle, *, generation: int | None = None) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        request = FragmentLoadRequest(request_id=request_id, handle=handle, generation=generation)
        self._results.append(_run_load(self._load_fragment, request))
        return request_id

    def drain_results(self) -> list[FragmentLoadResult]:
        out, self._results = self._results, []
        return out


class FragmentLoadScheduler:
    """Single-worker background loader processing requests in arrival order.

    Stale results are still delivered: the fragment is valid data for the
    shared cache even when the page event that asked for it is superseded.
    """

    def __init__(self, load_fragment: Callable[[str], tuple[TreeNode, ...]]) -> None:
        self._load_fragment = load_fragment
        self._lock = threading.Lock()
        self._pending: list[FragmentLoadRequest] = []
        self._running = False
        self._next_request_id = 1
        self._results: Queue[FragmentLoadResult] = Queue()

    def _worker(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._running = False
                    return
                request = self._pending.pop(0)
            self._results.put(_run_load(self._load_fragment, request))

    def schedule(self, handle: DeferredHandle, *, generation: int | None = None) -> int:
        """Queue a load and return its request id."""
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            self._pending.append(FragmentLoadRequest(request_id=request_id, handle=handle, generation=generation))
            if self._running:
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="navsync-fragment-loader",
            daemon=True,
        )
        worker.start()
        return request_id

    def drain_results(self) -> list[FragmentLoadResult]:
        """Drain all completed loads."""
        out: list[FragmentLoadResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out


__all__ = [
    "FragmentLoadRequest",
    "FragmentLoadResult",
    "InlineFragmentScheduler",
    "FragmentLoadScheduler",
]
