"""Tests for fragment load schedulers."""

from __future__ import annotations

import threading
import time
import unittest

from navsync.errors import FragmentLoadFailed
from navsync.nav_tree import DeferredHandle, TreeNode
from navsync.runtime.fragment_prefetch import FragmentLoadScheduler, InlineFragmentScheduler


def _wait_for_results(
    scheduler: FragmentLoadScheduler,
    *,
    expected_count: int,
    timeout_seconds: float = 1.0,
) -> list:
    deadline = time.monotonic() + timeout_seconds
    out: list = []
    while time.monotonic() < deadline:
        out.extend(scheduler.drain_results())
        if len(out) >= expected_count:
            break
        time.sleep(0.01)
    return out


class FragmentLoadSchedulerTests(unittest.TestCase):
    def test_schedule_loads_fragment_in_background(self) -> None:
        calls: list[str] = []

        def load_fragment(fragment_id: str) -> tuple[TreeNode, ...]:
            calls.append(fragment_id)
            return (TreeNode("Child", "child.html"),)

        scheduler = FragmentLoadScheduler(load_fragment)
        request_id = scheduler.schedule(DeferredHandle((1,), "ref_fragment"), generation=3)

        results = _wait_for_results(scheduler, expected_count=1)
        self.assertEqual(calls, ["ref_fragment"])
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].request.request_id, request_id)
        self.assertEqual(results[0].request.generation, 3)
        self.assertEqual(results[0].nodes[0].target, "child.html")
        self.assertIsNone(results[0].error)

    def test_requests_queued_behind_running_load_all_complete_in_order(self) -> None:
        calls: list[str] = []
        first_started = threading.Event()
        allow_first_finish = threading.Event()

        def load_fragment(fragment_id: str) -> tuple[TreeNode, ...]:
            if fragment_id == "first":
                first_started.set()
                allow_first_finish.wait(timeout=1.0)
            calls.append(fragment_id)
            return ()

        scheduler = FragmentLoadScheduler(load_fragment)
        scheduler.schedule(DeferredHandle((0,), "first"), generation=1)
        self.assertTrue(first_started.wait(timeout=1.0))
        scheduler.schedule(DeferredHandle((1,), "second"), generation=2)
        scheduler.schedule(DeferredHandle((2,), "manual"), generation=None)
        allow_first_finish.set()

        results = _wait_for_results(scheduler, expected_count=3)
        self.assertEqual(len(results), 3)
        self.assertListEqual(calls, ["first", "second", "manual"])
        self.assertListEqual([result.request.generation for result in results], [1, 2, None])

    def test_load_errors_become_failed_results(self) -> None:
        def load_fragment(fragment_id: str) -> tuple[TreeNode, ...]:
            if fragment_id == "broken":
                raise FragmentLoadFailed(fragment_id, "parse error")
            raise RuntimeError("disk on fire")

        scheduler = FragmentLoadScheduler(load_fragment)
        scheduler.schedule(DeferredHandle((0,), "broken"))
        scheduler.schedule(DeferredHandle((1,), "crashing"))

        results = _wait_for_results(scheduler, expected_count=2)
        self.assertEqual([result.error.fragment_id for result in results], ["broken", "crashing"])
        self.assertIn("RuntimeError", results[1].error.reason)
        self.assertTrue(all(result.nodes is None for result in results))


class InlineFragmentSchedulerTests(unittest.TestCase):
    def test_results_wait_for_drain(self) -> None:
        scheduler = InlineFragmentScheduler(lambda fragment_id: (TreeNode(fragment_id, None),))

        scheduler.schedule(DeferredHandle((0,), "a"), generation=1)
        scheduler.schedule(DeferredHandle((1,), "b"), generation=1)

        results = scheduler.drain_results()
        self.assertEqual([result.nodes[0].title for result in results], ["a", "b"])
        self.assertEqual(scheduler.drain_results(), [])


if __name__ == "__main__":
    unittest.main()
