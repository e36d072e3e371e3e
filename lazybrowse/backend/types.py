"""Plain data returned by resource backends.

``TransferMonitor`` is the one mutable piece: a download job advances it from
a worker thread while the interaction loop reads it and may cancel.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class BackendError(Exception):
    """A listing, preview or download failure reported by a backend."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class DownloadCancelled(BackendError):
    """A download stopped because its monitor was cancelled."""


class EntryKind(Enum):
    DIR = "dir"
    FILE = "file"


@dataclass(frozen=True)
class Entry:
    """One listed child of a directory or prefix."""

    name: str
    kind: EntryKind
    path: str
    size: int | None = None
    modified: datetime | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIR


@dataclass(frozen=True)
class ListResult:
    """Ordered entries of one listed path.

    ``truncated`` is set when pagination stopped at the page cap before the
    listing was exhausted.
    """

    path: str
    entries: tuple[Entry, ...]
    truncated: bool = False


@dataclass(frozen=True)
class DownloadTreeResult:
    written: int
    failed: int
    errors: tuple[tuple[str, str], ...] = ()


class TransferMonitor:
    """Byte counter plus cancel flag shared by a download job and the UI."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bytes_done = 0
        self._files_done = 0
        self._cancelled = threading.Event()

    @property
    def bytes_done(self) -> int:
        with self._lock:
            return self._bytes_done

    @property
    def files_done(self) -> int:
        with self._lock:
            return self._files_done

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self, path: str = "") -> None:
        """Raise ``DownloadCancelled`` once ``cancel`` has been called."""
        if self._cancelled.is_set():
            raise DownloadCancelled("download cancelled", path)

    def advance(self, count: int, path: str = "") -> None:
        """Record ``count`` copied bytes, then stop if cancelled."""
        with self._lock:
            self._bytes_done += count
        self.check(path)

    def file_finished(self) -> None:
        with self._lock:
            self._files_done += 1


Span = tuple[int, int, str]


@dataclass(frozen=True)
class TextPreview:
    """Decoded text plus per-line ``(start, end, token_type)`` highlight spans."""

    lines: tuple[str, ...]
    spans: tuple[tuple[Span, ...], ...] = field(default=())

    def spans_for(self, line_index: int) -> tuple[Span, ...]:
        if 0 <= line_index < len(self.spans):
            return self.spans[line_index]
        return ()


@dataclass(frozen=True)
class BinaryPreview:
    mime: str
    size: int


@dataclass(frozen=True)
class TooLargePreview:
    size: int


@dataclass(frozen=True)
class DirectoryPreview:
    pass


@dataclass(frozen=True)
class ErrorPreview:
    message: str


@dataclass(frozen=True)
class LoadingPreview:
    pass


PreviewContent = (
    TextPreview
    | BinaryPreview
    | TooLargePreview
    | DirectoryPreview
    | ErrorPreview
    | LoadingPreview
)


def sort_entries(entries: list[Entry]) -> tuple[Entry, ...]:
    """Directories first, then case-sensitive lexicographic by name."""
    return tuple(sorted(entries, key=lambda entry: (not entry.is_dir, entry.name)))


__all__ = [
    "BackendError",
    "BinaryPreview",
    "DirectoryPreview",
    "DownloadCancelled",
    "DownloadTreeResult",
    "Entry",
    "EntryKind",
    "ErrorPreview",
    "ListResult",
    "LoadingPreview",
    "PreviewContent",
    "Span",
    "TextPreview",
    "TooLargePreview",
    "TransferMonitor",
    "sort_entries",
]
