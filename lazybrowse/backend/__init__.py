"""Resource backends and backend selection by URI scheme."""

from __future__ import annotations

from .base import ResourceBackend, classify_bytes, guess_mime
from .local import LocalBackend
from .remote import DEFAULT_MAX_LIST_PAGES, URI_PREFIX, ReadOnlyBucket, S3Backend, parse_s3_uri
from .types import (
    BackendError,
    BinaryPreview,
    DirectoryPreview,
    DownloadTreeResult,
    Entry,
    EntryKind,
    ErrorPreview,
    ListResult,
    LoadingPreview,
    PreviewContent,
    TextPreview,
    TooLargePreview,
)


def open_backend(uri: str, max_list_pages: int = DEFAULT_MAX_LIST_PAGES) -> ResourceBackend:
    """Pick a backend for ``uri``: ``s3://`` URIs are remote, anything else local.

    Raises ``BackendError`` when the target is unusable.
    """
    if uri.startswith(URI_PREFIX):
        return S3Backend.from_uri(uri, max_list_pages=max_list_pages)
    if uri.startswith("file://"):
        uri = uri[len("file://"):]
    return LocalBackend(uri)


__all__ = [
    "BackendError",
    "BinaryPreview",
    "DirectoryPreview",
    "DownloadTreeResult",
    "Entry",
    "EntryKind",
    "ErrorPreview",
    "ListResult",
    "LoadingPreview",
    "LocalBackend",
    "PreviewContent",
    "ReadOnlyBucket",
    "ResourceBackend",
    "S3Backend",
    "TextPreview",
    "TooLargePreview",
    "classify_bytes",
    "guess_mime",
    "open_backend",
    "parse_s3_uri",
]
