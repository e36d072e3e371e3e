"""Capability interface shared by local and remote backends."""

from __future__ import annotations

import logging
import mimetypes
import posixpath
from abc import ABC, abstractmethod

from .types import (
    BackendError,
    BinaryPreview,
    DownloadCancelled,
    DownloadTreeResult,
    ListResult,
    PreviewContent,
    TextPreview,
    TransferMonitor,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"


def guess_mime(name: str, content_type: str | None = None) -> str:
    if content_type:
        return content_type
    guessed, _encoding = mimetypes.guess_type(name)
    return guessed or DEFAULT_MIME


def classify_bytes(name: str, data: bytes, content_type: str | None = None) -> PreviewContent:
    """Return a text preview for clean UTF-8, otherwise a binary summary.

    Content holding a NUL byte is treated as binary even when it decodes.
    """
    if b"\x00" in data:
        return BinaryPreview(mime=guess_mime(name, content_type), size=len(data))
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return BinaryPreview(mime=guess_mime(name, content_type), size=len(data))
    return TextPreview(lines=tuple(text.splitlines()))


class ResourceBackend(ABC):
    """Read-only hierarchical resource: list, preview and download."""

    scheme: str = ""

    @property
    @abstractmethod
    def root_path(self) -> str:
        """Path of the initial listing."""

    @abstractmethod
    def list(self, path: str) -> ListResult:
        """List the children of ``path``; raises ``BackendError``."""

    @abstractmethod
    def parent(self, path: str) -> str | None:
        """Return the parent path, or ``None`` at the top."""

    @abstractmethod
    def join(self, path: str, name: str) -> str:
        """Return the path of child ``name`` under ``path``."""

    @abstractmethod
    def display_path(self, path: str) -> str:
        """Human-facing form of ``path`` used for the clipboard and history."""

    @abstractmethod
    def fetch_preview(self, path: str, max_bytes: int) -> PreviewContent:
        """Fetch preview content, checking the size before reading the body."""

    @abstractmethod
    def download_file(self, path: str, destination: str, monitor: TransferMonitor | None = None) -> str:
        """Copy ``path`` to ``destination`` and return the written file path.

        With a ``monitor``, copied bytes are reported to it and a cancel
        request raises ``DownloadCancelled`` after removing the partial file.
        """

    @abstractmethod
    def download_tree(
        self,
        prefix: str,
        destination_dir: str,
        monitor: TransferMonitor | None = None,
    ) -> DownloadTreeResult:
        """Copy every file under ``prefix`` below ``destination_dir``.

        Per-file failures are collected; cancellation stops the whole tree.
        """

    def download_files(
        self,
        paths: list[str] | tuple[str, ...],
        destination_dir: str,
        monitor: TransferMonitor | None = None,
    ) -> DownloadTreeResult:
        """Copy each of ``paths`` into ``destination_dir`` under its own name."""
        written = 0
        errors: list[tuple[str, str]] = []
        for path in paths:
            try:
                self.download_file(path, posixpath.join(destination_dir, self.name_of(path)), monitor)
            except DownloadCancelled:
                raise
            except BackendError as exc:
                logger.warning("download failed for %s: %s", path, exc.message)
                errors.append((path, exc.message))
                continue
            written += 1
        return DownloadTreeResult(written=written, failed=len(errors), errors=tuple(errors))

    def name_of(self, path: str) -> str:
        return path.rstrip("/").rsplit("/", 1)[-1]


__all__ = [
    "DEFAULT_MIME",
    "ResourceBackend",
    "classify_bytes",
    "guess_mime",
]
