"""Local filesystem backend."""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
from datetime import datetime

from .base import ResourceBackend, classify_bytes
from .types import (
    BackendError,
    DirectoryPreview,
    DownloadCancelled,
    DownloadTreeResult,
    Entry,
    EntryKind,
    ListResult,
    PreviewContent,
    TooLargePreview,
    TransferMonitor,
    sort_entries,
)

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


def _error_message(exc: OSError) -> str:
    return exc.strerror or str(exc)


def _is_within(path: str, root: str) -> bool:
    """Return whether real path ``path`` is ``root`` or lies below it."""
    return path == root or path.startswith(root.rstrip("/") + "/")


def _copy_monitored(source, target, monitor: TransferMonitor, path: str) -> None:
    while True:
        chunk = source.read(COPY_CHUNK_SIZE)
        if not chunk:
            return
        target.write(chunk)
        monitor.advance(len(chunk), path)


def _remove_partial(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("could not remove partial file %s: %s", path, exc)


class LocalBackend(ResourceBackend):
    """Browse a directory tree through ``os.scandir``.

    Paths are absolute, normalized POSIX strings.
    """

    scheme = "file"

    def __init__(self, root: str) -> None:
        absolute = posixpath.normpath(os.path.abspath(os.path.expanduser(root)))
        if not os.path.isdir(absolute):
            raise BackendError("not a directory", absolute)
        self._root = absolute

    @property
    def root_path(self) -> str:
        return self._root

    def list(self, path: str) -> ListResult:
        entries: list[Entry] = []
        try:
            with os.scandir(path) as children:
                for child in children:
                    entries.append(self._entry_for(child))
        except OSError as exc:
            raise BackendError(_error_message(exc), path) from exc
        return ListResult(path=path, entries=sort_entries(entries))

    def _entry_for(self, child: os.DirEntry[str]) -> Entry:
        child_path = child.path
        try:
            is_dir = child.is_dir()
        except OSError:
            is_dir = False
        kind = EntryKind.DIR if is_dir else EntryKind.FILE

        size: int | None = None
        modified: datetime | None = None
        try:
            stat = child.stat()
            modified = datetime.fromtimestamp(stat.st_mtime)
            if not is_dir:
                size = int(stat.st_size)
        except OSError:
            pass
        return Entry(name=child.name, kind=kind, path=child_path, size=size, modified=modified)

    def parent(self, path: str) -> str | None:
        if path == "/":
            return None
        parent = posixpath.dirname(path.rstrip("/"))
        return parent or "/"

    def join(self, path: str, name: str) -> str:
        return posixpath.join(path, name)

    def display_path(self, path: str) -> str:
        return path

    def fetch_preview(self, path: str, max_bytes: int) -> PreviewContent:
        try:
            if os.path.isdir(path):
                return DirectoryPreview()
            size = os.stat(path).st_size
            if size > max_bytes:
                return TooLargePreview(size=size)
            with open(path, "rb") as handle:
                data = handle.read(max_bytes + 1)
        except OSError as exc:
            raise BackendError(_error_message(exc), path) from exc
        if len(data) > max_bytes:
            return TooLargePreview(size=len(data))
        return classify_bytes(self.name_of(path), data)

    def download_file(self, path: str, destination: str, monitor: TransferMonitor | None = None) -> str:
        if monitor is not None:
            monitor.check(path)
        try:
            if os.path.exists(destination) and os.path.samefile(path, destination):
                raise BackendError("source and destination are the same file", path)
            parent = os.path.dirname(destination)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(path, "rb") as source:
                try:
                    with open(destination, "wb") as target:
                        if monitor is None:
                            shutil.copyfileobj(source, target, COPY_CHUNK_SIZE)
                        else:
                            _copy_monitored(source, target, monitor, path)
                except (OSError, DownloadCancelled):
                    _remove_partial(destination)
                    raise
        except OSError as exc:
            raise BackendError(_error_message(exc), path) from exc
        if monitor is not None:
            monitor.file_finished()
        return destination

    def download_tree(
        self,
        prefix: str,
        destination_dir: str,
        monitor: TransferMonitor | None = None,
    ) -> DownloadTreeResult:
        base = posixpath.join(destination_dir, self.name_of(prefix))
        written = 0
        errors: list[tuple[str, str]] = []

        def on_walk_error(exc: OSError) -> None:
            where = exc.filename or prefix
            errors.append((str(where), _error_message(exc)))
            logger.warning("skipping unreadable directory %s: %s", where, exc)

        real_base = os.path.realpath(base)
        if _is_within(os.path.realpath(prefix), real_base):
            raise BackendError("source lies inside the download target", prefix)

        for current, dirs, files in os.walk(prefix, onerror=on_walk_error):
            # Never descend into the copy being written.
            dirs[:] = sorted(
                name for name in dirs if not _is_within(os.path.realpath(posixpath.join(current, name)), real_base)
            )
            relative = posixpath.relpath(current, prefix)
            target_dir = base if relative == "." else posixpath.join(base, relative)
            for name in sorted(files):
                source = posixpath.join(current, name)
                try:
                    self.download_file(source, posixpath.join(target_dir, name), monitor)
                except DownloadCancelled:
                    raise
                except BackendError as exc:
                    logger.warning("download failed for %s: %s", source, exc.message)
                    errors.append((source, exc.message))
                    continue
                written += 1
        return DownloadTreeResult(written=written, failed=len(errors), errors=tuple(errors))


__all__ = ["LocalBackend"]
