"""Tests for the panel synchronization state machine."""

from __future__ import annotations

import time
import unittest

from navsync.errors import FragmentLoadFailed, PathResolutionAmbiguous, TargetNotIndexed
from navsync.nav_index import FlatIndex, IndexEntry
from navsync.nav_tree import MappingFragmentSource, TreeStore, parse_fragment_entries
from navsync.runtime import (
    FragmentLoadRequest,
    FragmentLoadResult,
    FragmentLoadScheduler,
    SyncController,
    SyncStatus,
)

SCENARIO_ROOT = [["Intro", "intro.html", None], ["Reference", "ref.html", "ref_fragment"]]
SCENARIO_FRAGMENTS = {"ref_fragment": [["Class X", "classx.html", None]]}


def _store(root: list, fragments: dict[str, object]) -> TreeStore:
    return TreeStore(parse_fragment_entries(root), MappingFragmentSource(fragments))


class _HeldScheduler:
    """Scheduler whose loads complete only when a test says so."""

    def __init__(self, store: TreeStore) -> None:
        self.store = store
        self.pending: list[FragmentLoadRequest] = []
        self._done: list[FragmentLoadResult] = []

    def schedule(self, handle, *, generation=None) -> int:
        request = FragmentLoadRequest(request_id=len(self.pending) + len(self._done) + 1, handle=handle, generation=generation)
        self.pending.append(request)
        return request.request_id

    def complete(self, fragment_id: str) -> None:
        request = next(item for item in self.pending if item.handle.fragment_id == fragment_id)
        self.pending.remove(request)
        try:
            nodes = self.store.load_fragment(fragment_id)
        except FragmentLoadFailed as exc:
            self._done.append(FragmentLoadResult(request=request, error=exc))
            return
        self._done.append(FragmentLoadResult(request=request, nodes=nodes))

    def drain_results(self) -> list[FragmentLoadResult]:
        out, self._done = self._done, []
        return out


class SyncControllerScenarioTests(unittest.TestCase):
    def test_reference_scenario_loads_one_fragment_and_selects_leaf(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        index = FlatIndex([IndexEntry("intro.html", (0,)), IndexEntry("ref.html", (1,)), IndexEntry("classx.html", (1, 0))])
        controller = SyncController(store, index)

        self.assertEqual(index.lookup("classx.html").path, (1, 0))
        controller.page_displayed("classx.html")

        self.assertEqual(store.fetch_count, 1)
        self.assertEqual(controller.status, SyncStatus.SYNCED)
        self.assertEqual(controller.selected_path, (1, 0))
        self.assertIn((1,), controller.expanded_paths)
        self.assertIsNone(controller.state.failure)

    def test_unindexed_page_fails_without_loading_or_guessing(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(store, FlatIndex([IndexEntry("intro.html", (0,))]))
        controller.page_displayed("intro.html")

        controller.page_displayed("external.html")

        self.assertEqual(controller.status, SyncStatus.SYNC_FAILED)
        self.assertIsInstance(controller.state.failure, TargetNotIndexed)
        self.assertIsNone(controller.selected_path)
        self.assertEqual(store.fetch_count, 0)

    def test_failed_load_keeps_previously_expanded_ancestors(self) -> None:
        root = [["A", "a.html", "frag_a"]]
        fragments = {"frag_a": [["B", "b.html", "frag_b"]]}
        store = _store(root, fragments)
        controller = SyncController(store, FlatIndex([IndexEntry("c.html", (0, 0, 0))]))

        controller.page_displayed("c.html")

        self.assertEqual(controller.status, SyncStatus.SYNC_FAILED)
        self.assertIsInstance(controller.state.failure, FragmentLoadFailed)
        self.assertEqual(controller.state.failure.fragment_id, "frag_b")
        self.assertIn((0,), controller.expanded_paths)
        self.assertTrue(store.is_materialized((0,)))
        self.assertIsNone(controller.selected_path)

    def test_cached_failure_is_retried_on_next_page_event(self) -> None:
        store = _store(SCENARIO_ROOT, {})
        controller = SyncController(store, FlatIndex([IndexEntry("classx.html", (1, 0))]))
        controller.page_displayed("classx.html")
        self.assertEqual(controller.status, SyncStatus.SYNC_FAILED)

        store.source = MappingFragmentSource(SCENARIO_FRAGMENTS)
        controller.page_displayed("classx.html")

        self.assertEqual(controller.status, SyncStatus.SYNCED)
        self.assertEqual(controller.selected_path, (1, 0))
        self.assertEqual(store.fetch_count, 2)

    def test_index_path_into_leaf_is_ambiguous(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(store, FlatIndex([IndexEntry("ghost.html", (0, 3))]))

        controller.page_displayed("ghost.html")

        self.assertIsInstance(controller.state.failure, PathResolutionAmbiguous)
        self.assertIsNone(controller.selected_path)

    def test_exact_entry_pointing_at_other_target_is_not_selected(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(store, FlatIndex([IndexEntry("moved.html", (1, 0))]))

        controller.page_displayed("moved.html")

        self.assertEqual(controller.status, SyncStatus.SYNC_FAILED)
        self.assertIsInstance(controller.state.failure, PathResolutionAmbiguous)
        self.assertIsNone(controller.selected_path)


class SyncControllerApproximateTests(unittest.TestCase):
    def setUp(self) -> None:
        root = [["Guide", "guide.html", "guide_fragment"]]
        fragments = {
            "guide_fragment": [
                ["Install", "guide.html#install", [["Linux", "guide.html#linux", None]]],
                ["Usage", "guide.html#usage", None],
            ]
        }
        self.store = _store(root, fragments)
        self.controller = SyncController(self.store, FlatIndex([IndexEntry("guide.html", (0,))]))

    def test_anchor_is_found_below_enclosing_page(self) -> None:
        self.controller.page_displayed("guide.html#linux")

        self.assertEqual(self.controller.status, SyncStatus.SYNCED)
        self.assertEqual(self.controller.selected_path, (0, 0, 0))
        self.assertTrue({(0,), (0, 0)} <= self.controller.expanded_paths)

    def test_missing_anchor_is_reported_instead_of_guessed(self) -> None:
        self.controller.page_displayed("guide.html#nowhere")

        self.assertEqual(self.controller.status, SyncStatus.SYNC_FAILED)
        self.assertIsInstance(self.controller.state.failure, PathResolutionAmbiguous)
        self.assertIsNone(self.controller.selected_path)
        self.assertIn((0,), self.controller.expanded_paths)


class SyncToggleTests(unittest.TestCase):
    def test_toggle_off_and_on_keeps_selection_and_ignores_events_while_off(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        index = FlatIndex([IndexEntry("intro.html", (0,)), IndexEntry("classx.html", (1, 0))])
        controller = SyncController(store, index)
        controller.page_displayed("intro.html")

        self.assertFalse(controller.toggle_sync())
        self.assertEqual(controller.status, SyncStatus.IDLE)
        self.assertIsNone(controller.page_displayed("classx.html"))
        self.assertTrue(controller.toggle_sync())

        self.assertEqual(controller.selected_path, (0,))
        self.assertEqual(controller.status, SyncStatus.IDLE)
        self.assertEqual(store.fetch_count, 0)

        controller.page_displayed("classx.html")
        self.assertEqual(controller.selected_path, (1, 0))

    def test_disabling_drops_resolution_in_flight(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        scheduler = _HeldScheduler(store)
        controller = SyncController(store, FlatIndex([IndexEntry("classx.html", (1, 0))]), scheduler=scheduler)
        controller.page_displayed("classx.html")

        controller.set_sync_enabled(False)
        scheduler.complete("ref_fragment")
        controller.drain()

        self.assertEqual(controller.status, SyncStatus.IDLE)
        self.assertIsNone(controller.selected_path)
        self.assertTrue(store.is_materialized((1,)))


class SyncOrderingTests(unittest.TestCase):
    def setUp(self) -> None:
        root = [["A", "a.html", "frag_a"], ["B", "b.html", "frag_b"]]
        fragments = {"frag_a": [["A1", "a1.html", None]], "frag_b": [["B1", "b1.html", None]]}
        self.store = _store(root, fragments)
        self.scheduler = _HeldScheduler(self.store)
        index = FlatIndex([IndexEntry("a1.html", (0, 0)), IndexEntry("b1.html", (1, 0))])
        self.controller = SyncController(self.store, index, scheduler=self.scheduler)

    def test_late_result_for_older_page_does_not_overwrite_selection(self) -> None:
        first = self.controller.page_displayed("a1.html")
        second = self.controller.page_displayed("b1.html")
        self.assertLess(first, second)
        self.assertEqual(self.controller.status, SyncStatus.RESOLVING)

        self.scheduler.complete("frag_b")
        self.controller.drain()
        self.assertEqual(self.controller.selected_path, (1, 0))

        self.scheduler.complete("frag_a")
        self.controller.drain()

        self.assertEqual(self.controller.selected_path, (1, 0))
        self.assertEqual(self.controller.status, SyncStatus.SYNCED)
        self.assertTrue(self.store.is_materialized((0,)))

    def test_early_result_for_older_page_is_discarded(self) -> None:
        self.controller.page_displayed("a1.html")
        self.controller.page_displayed("b1.html")

        self.scheduler.complete("frag_a")
        self.controller.drain()
        self.assertEqual(self.controller.status, SyncStatus.RESOLVING)
        self.assertIsNone(self.controller.selected_path)

        self.scheduler.complete("frag_b")
        self.controller.drain()
        self.assertEqual(self.controller.selected_path, (1, 0))

    def test_previous_selection_is_cleared_while_new_page_resolves(self) -> None:
        self.controller.page_displayed("a1.html")
        self.scheduler.complete("frag_a")
        self.controller.drain()
        self.assertEqual(self.controller.selected_path, (0, 0))

        self.controller.page_displayed("b1.html")

        self.assertEqual(self.controller.status, SyncStatus.RESOLVING)
        self.assertIsNone(self.controller.selected_path)

        self.scheduler.complete("frag_b")
        self.controller.drain()
        self.assertEqual(self.controller.selected_path, (1, 0))

    def test_newer_page_waits_on_fragment_already_in_flight(self) -> None:
        self.controller.page_displayed("a1.html")
        self.controller.page_displayed("a1.html")

        self.assertEqual(len(self.scheduler.pending), 1)
        self.scheduler.complete("frag_a")
        self.controller.drain()

        self.assertEqual(self.controller.selected_path, (0, 0))
        self.assertEqual(self.store.fetch_count, 1)


class ManualInteractionTests(unittest.TestCase):
    def test_manual_collapse_of_selected_ancestor_keeps_selection(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(store, FlatIndex([IndexEntry("classx.html", (1, 0))]))
        controller.page_displayed("classx.html")

        controller.collapse_branch((1,))

        self.assertNotIn((1,), controller.expanded_paths)
        self.assertEqual(controller.selected_path, (1, 0))
        self.assertEqual(controller.status, SyncStatus.SYNCED)

    def test_manual_expand_loads_deferred_branch_without_selecting(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(store, FlatIndex())

        self.assertTrue(controller.expand_branch((1,)))
        self.assertFalse(controller.expand_branch((0,)))

        self.assertIn((1,), controller.expanded_paths)
        self.assertIsNone(controller.selected_path)
        self.assertEqual(controller.status, SyncStatus.IDLE)
        self.assertFalse(controller.toggle_branch((1,)))
        self.assertNotIn((1,), controller.expanded_paths)

    def test_manual_expand_of_failed_branch_is_not_opened(self) -> None:
        store = _store(SCENARIO_ROOT, {})
        controller = SyncController(store, FlatIndex())

        controller.expand_branch((1,))

        self.assertNotIn((1,), controller.expanded_paths)
        self.assertEqual(controller.state.loading_paths, set())


class BackgroundLoadTests(unittest.TestCase):
    def test_threaded_scheduler_completes_sync_after_drain(self) -> None:
        store = _store(SCENARIO_ROOT, SCENARIO_FRAGMENTS)
        controller = SyncController(
            store,
            FlatIndex([IndexEntry("classx.html", (1, 0))]),
            scheduler=FragmentLoadScheduler(store.load_fragment),
        )
        controller.page_displayed("classx.html")

        deadline = time.monotonic() + 1.0
        while controller.status == SyncStatus.RESOLVING and time.monotonic() < deadline:
            controller.drain()
            time.sleep(0.01)

        self.assertEqual(controller.status, SyncStatus.SYNCED)
        self.assertEqual(controller.selected_path, (1, 0))


if __name__ == "__main__":
    unittest.main()
