"""MRU history store tests."""

from __future__ import annotations

import unittest

from lazybrowse.runtime.history import MAX_HISTORY_ENTRIES, HistoryStore


class HistoryStoreTests(unittest.TestCase):
    def test_revisit_moves_path_to_front(self) -> None:
        store = HistoryStore()
        for path in ("A", "B", "A", "C"):
            store.record(path)
        self.assertEqual(store.list(), ["C", "A", "B"])

    def test_overflow_evicts_least_recent(self) -> None:
        store = HistoryStore()
        for idx in range(MAX_HISTORY_ENTRIES + 1):
            store.record(f"/p{idx}")

        entries = store.list()
        self.assertEqual(len(entries), MAX_HISTORY_ENTRIES)
        self.assertEqual(entries[0], f"/p{MAX_HISTORY_ENTRIES}")
        self.assertNotIn("/p0", entries)
        self.assertIn("/p1", entries)

    def test_recently_touched_entry_survives_eviction(self) -> None:
        store = HistoryStore(max_entries=3)
        for path in ("A", "B", "C", "A", "D"):
            store.record(path)
        self.assertEqual(store.list(), ["D", "A", "C"])

    def test_empty_store_is_falsy(self) -> None:
        store = HistoryStore()
        self.assertFalse(store)
        store.record("/")
        self.assertTrue(store)
        self.assertEqual(len(store), 1)

    def test_list_returns_copy(self) -> None:
        store = HistoryStore()
        store.record("A")
        store.list().append("B")
        self.assertEqual(store.list(), ["A"])


if __name__ == "__main__":
    unittest.main()
