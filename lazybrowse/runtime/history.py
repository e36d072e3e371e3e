"""Bounded most-recently-used list of visited paths.

This module intentionally has no UI concerns.
"""

from __future__ import annotations

MAX_HISTORY_ENTRIES = 100


class HistoryStore:
    """Deduplicated MRU path list.

    Recording a path moves it to the front; the oldest entry is evicted once
    the list grows past ``max_entries``.
    """

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES) -> None:
        self.max_entries = max(1, max_entries)
        self._entries: list[str] = []

    def record(self, path: str) -> None:
        """Push ``path`` to the front, dropping any older occurrence."""
        try:
            self._entries.remove(path)
        except ValueError:
            pass
        self._entries.insert(0, path)
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            del self._entries[-overflow:]

    def list(self) -> list[str]:
        """Return paths ordered most- to least-recent."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)


__all__ = ["HistoryStore", "MAX_HISTORY_ENTRIES"]
