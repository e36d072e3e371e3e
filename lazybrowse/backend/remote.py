"""S3 backend.

Keys are browsed as a hierarchy by listing with a ``/`` delimiter. Paths are
key prefixes without a trailing slash; ``""`` is the bucket root. Only read
operations are reachable: the client lives inside ``ReadOnlyBucket``.
"""

from __future__ import annotations

import logging
import os
import posixpath
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

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

URI_PREFIX = "s3://"
DEFAULT_MAX_LIST_PAGES = 100
DOWNLOAD_CHUNK_SIZE = 64 * 1024
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

AWS_ERRORS = (BotoCoreError, ClientError)


def parse_s3_uri(uri: str) -> tuple[str, str]:
    """Split ``s3://bucket/prefix`` into ``(bucket, prefix)``."""
    if not uri.startswith(URI_PREFIX):
        raise BackendError("URI must start with s3://", uri)
    bucket, _sep, prefix = uri[len(URI_PREFIX):].partition("/")
    if not bucket:
        raise BackendError("missing bucket name", uri)
    return bucket, prefix.strip("/")


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message") or str(exc)
        return f"{code}: {message}" if code else message
    return str(exc)


def _is_not_found(exc: Exception) -> bool:
    if not isinstance(exc, ClientError):
        return False
    return str(exc.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES


class ReadOnlyBucket:
    """List/head/get access to one bucket."""

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    def list_page(
        self,
        prefix: str,
        continuation_token: str | None = None,
        *,
        delimiter: str | None = "/",
        max_keys: int | None = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        if max_keys is not None:
            kwargs["MaxKeys"] = max_keys
        return self._client.list_objects_v2(**kwargs)

    def head(self, key: str) -> dict[str, Any]:
        return self._client.head_object(Bucket=self.bucket, Key=key)

    def get(self, key: str) -> dict[str, Any]:
        return self._client.get_object(Bucket=self.bucket, Key=key)


class S3Backend(ResourceBackend):
    """Browse an S3 bucket below an initial prefix."""

    scheme = "s3"

    def __init__(
        self,
        bucket: ReadOnlyBucket,
        root_prefix: str = "",
        max_list_pages: int = DEFAULT_MAX_LIST_PAGES,
    ) -> None:
        self._bucket = bucket
        self._root = root_prefix.strip("/")
        self.max_list_pages = max(1, max_list_pages)

    @classmethod
    def from_uri(cls, uri: str, max_list_pages: int = DEFAULT_MAX_LIST_PAGES) -> S3Backend:
        import boto3

        bucket_name, prefix = parse_s3_uri(uri)
        try:
            client = boto3.client("s3")
        except AWS_ERRORS as exc:
            raise BackendError(_error_message(exc), uri) from exc
        return cls(ReadOnlyBucket(client, bucket_name), prefix, max_list_pages)

    @property
    def bucket_name(self) -> str:
        return self._bucket.bucket

    @property
    def root_path(self) -> str:
        return self._root

    @staticmethod
    def _dir_prefix(path: str) -> str:
        return f"{path}/" if path else ""

    def list(self, path: str) -> ListResult:
        prefix = self._dir_prefix(path)
        dirs: dict[str, Entry] = {}
        files: dict[str, Entry] = {}
        token: str | None = None
        pages = 0
        truncated = False

        while True:
            try:
                response = self._bucket.list_page(prefix, token)
            except AWS_ERRORS as exc:
                raise BackendError(_error_message(exc), self.display_path(path)) from exc
            pages += 1

            for common in response.get("CommonPrefixes", []) or []:
                name = str(common.get("Prefix", ""))[len(prefix):].rstrip("/")
                if name and name not in dirs:
                    dirs[name] = Entry(name=name, kind=EntryKind.DIR, path=prefix + name)

            for obj in response.get("Contents", []) or []:
                key = str(obj.get("Key", ""))
                if key == prefix or key.endswith("/"):
                    continue
                name = key[len(prefix):]
                if not name or name in files:
                    continue
                files[name] = Entry(
                    name=name,
                    kind=EntryKind.FILE,
                    path=key,
                    size=obj.get("Size"),
                    modified=obj.get("LastModified"),
                )

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
            if pages >= self.max_list_pages:
                truncated = True
                logger.warning(
                    "listing of %s stopped after %d pages",
                    self.display_path(path),
                    pages,
                )
                break

        entries = sort_entries([*dirs.values(), *files.values()])
        return ListResult(path=path, entries=entries, truncated=truncated)

    def parent(self, path: str) -> str | None:
        path = path.strip("/")
        if not path:
            return None
        head, _sep, _tail = path.rpartition("/")
        return head

    def join(self, path: str, name: str) -> str:
        return self._dir_prefix(path) + name

    def display_path(self, path: str) -> str:
        return f"{URI_PREFIX}{self.bucket_name}/{path}"

    def _has_children(self, path: str) -> bool:
        response = self._bucket.list_page(self._dir_prefix(path), max_keys=1)
        return bool(response.get("Contents") or response.get("CommonPrefixes"))

    def fetch_preview(self, path: str, max_bytes: int) -> PreviewContent:
        if not path or path.endswith("/"):
            return DirectoryPreview()
        try:
            try:
                head = self._bucket.head(path)
            except ClientError as exc:
                if _is_not_found(exc) and self._has_children(path):
                    return DirectoryPreview()
                raise
            size = int(head.get("ContentLength", 0) or 0)
            if size > max_bytes:
                return TooLargePreview(size=size)
            response = self._bucket.get(path)
            body = response["Body"]
            try:
                data = body.read()
            finally:
                body.close()
        except AWS_ERRORS as exc:
            raise BackendError(_error_message(exc), self.display_path(path)) from exc
        content_type = response.get("ContentType") or head.get("ContentType")
        return classify_bytes(self.name_of(path), data, content_type)

    def download_file(self, path: str, destination: str, monitor: TransferMonitor | None = None) -> str:
        if monitor is not None:
            monitor.check(self.display_path(path))
        try:
            response = self._bucket.get(path)
        except AWS_ERRORS as exc:
            raise BackendError(_error_message(exc), self.display_path(path)) from exc

        body = response["Body"]
        try:
            parent = os.path.dirname(destination)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(destination, "wb") as target:
                for chunk in body.iter_chunks(DOWNLOAD_CHUNK_SIZE):
                    target.write(chunk)
                    if monitor is not None:
                        monitor.advance(len(chunk), self.display_path(path))
        except DownloadCancelled:
            self._remove_partial(destination)
            raise
        except (OSError, *AWS_ERRORS) as exc:
            self._remove_partial(destination)
            message = exc.strerror if isinstance(exc, OSError) and exc.strerror else _error_message(exc)
            raise BackendError(message, self.display_path(path)) from exc
        finally:
            body.close()
        if monitor is not None:
            monitor.file_finished()
        return destination

    @staticmethod
    def _remove_partial(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("could not remove partial file %s: %s", path, exc)

    def _iter_keys(self, prefix: str):
        token: str | None = None
        while True:
            response = self._bucket.list_page(prefix, token, delimiter=None)
            for obj in response.get("Contents", []) or []:
                key = str(obj.get("Key", ""))
                if key and not key.endswith("/"):
                    yield key
            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                return

    def download_tree(
        self,
        prefix: str,
        destination_dir: str,
        monitor: TransferMonitor | None = None,
    ) -> DownloadTreeResult:
        list_prefix = self._dir_prefix(prefix.strip("/"))
        base = posixpath.join(destination_dir, self.name_of(prefix)) if prefix else destination_dir
        try:
            keys = list(self._iter_keys(list_prefix))
        except AWS_ERRORS as exc:
            raise BackendError(_error_message(exc), self.display_path(prefix)) from exc

        written = 0
        errors: list[tuple[str, str]] = []
        for key in keys:
            relative = posixpath.normpath(key[len(list_prefix):])
            if relative.startswith("../") or relative == ".." or relative.startswith("/"):
                logger.warning("skipping key outside destination: %s", key)
                errors.append((key, "key escapes destination directory"))
                continue
            try:
                self.download_file(key, posixpath.join(base, relative), monitor)
            except DownloadCancelled:
                raise
            except BackendError as exc:
                logger.warning("download failed for %s: %s", key, exc.message)
                errors.append((key, exc.message))
                continue
            written += 1
        return DownloadTreeResult(written=written, failed=len(errors), errors=tuple(errors))


__all__ = [
    "DEFAULT_MAX_LIST_PAGES",
    "ReadOnlyBucket",
    "S3Backend",
    "URI_PREFIX",
    "parse_s3_uri",
]
