"""Per-path preview memoization with async fetch.

Entries live until the listing root changes; ``clear`` drops everything and
bumps the generation so completions of cleared fetches are ignored. The last
requested path is the current selection: a fetch that finishes after the
selection moved on is discarded rather than applied, and is fetched again
when that path is selected later.
"""

from __future__ import annotations

import logging

from ..backend.base import ResourceBackend
from ..backend.types import (
    BackendError,
    DirectoryPreview,
    ErrorPreview,
    LoadingPreview,
    PreviewContent,
    TextPreview,
)
from ..runtime.dispatch import Completion, Dispatcher
from .highlight import highlight_preview

logger = logging.getLogger(__name__)

PREVIEW_JOB = "preview"


class PreviewCache:
    def __init__(self, backend: ResourceBackend, dispatcher: Dispatcher, max_bytes: int) -> None:
        self._backend = backend
        self._dispatcher = dispatcher
        self.max_bytes = max(0, max_bytes)
        self._entries: dict[str, PreviewContent] = {}
        self._in_flight: set[str] = set()
        self.current: str | None = None
        self.generation = 0

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str) -> PreviewContent | None:
        """Return the memoized preview, ``LoadingPreview`` while in flight, else ``None``."""
        cached = self._entries.get(path)
        if cached is not None:
            return cached
        if path in self._in_flight:
            return LoadingPreview()
        return None

    def is_loading(self, path: str) -> bool:
        return path in self._in_flight

    def request(self, path: str, *, is_dir: bool = False) -> PreviewContent:
        """Return what is known for ``path`` and start a fetch when nothing is.

        At most one fetch per path is in flight at a time.
        """
        self.current = path
        known = self.get(path)
        if known is not None:
            return known
        if is_dir:
            preview = DirectoryPreview()
            self._entries[path] = preview
            return preview

        self._in_flight.add(path)
        token = (self.generation, path)
        backend = self._backend
        max_bytes = self.max_bytes
        name = backend.name_of(path)

        def job() -> PreviewContent:
            preview = backend.fetch_preview(path, max_bytes)
            if isinstance(preview, TextPreview):
                preview = highlight_preview(preview, name)
            return preview

        self._dispatcher.submit(PREVIEW_JOB, token, job)
        return LoadingPreview()

    def apply(self, completion: Completion) -> str | None:
        """Memoize a finished fetch; return its path, or ``None`` when stale."""
        generation, path = completion.token
        if generation != self.generation:
            logger.debug("dropping preview of %s from cleared generation %s", path, generation)
            return None
        self._in_flight.discard(path)
        if path != self.current:
            logger.debug("discarding preview of %s, selection moved on", path)
            return None
        if completion.error is None:
            preview = completion.value
        elif isinstance(completion.error, BackendError):
            preview = ErrorPreview(completion.error.message)
        else:
            logger.warning("preview of %s failed: %r", path, completion.error)
            preview = ErrorPreview(str(completion.error) or type(completion.error).__name__)
        self._entries[path] = preview
        return path

    def clear(self) -> None:
        self._entries.clear()
        self._in_flight.clear()
        self.current = None
        self.generation += 1


__all__ = ["PREVIEW_JOB", "PreviewCache"]
