"""S3 backend tests against an in-memory fake client."""

from __future__ import annotations

import os
import tempfile
import unittest
from typing import Any

from botocore.exceptions import ClientError

from lazybrowse.backend.remote import DOWNLOAD_CHUNK_SIZE, ReadOnlyBucket, S3Backend, parse_s3_uri
from lazybrowse.backend.types import (
    BackendError,
    BinaryPreview,
    DirectoryPreview,
    DownloadCancelled,
    EntryKind,
    TextPreview,
    TooLargePreview,
    TransferMonitor,
)


class _CancelAfterFirstChunk(TransferMonitor):
    def advance(self, count: int, path: str = "") -> None:
        self.cancel()
        super().advance(count, path)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "simulated"}}, operation)


class _Body:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self.closed = False

    def read(self) -> bytes:
        return self._data

    def iter_chunks(self, chunk_size: int = 1024):
        for start in range(0, len(self._data), chunk_size):
            yield self._data[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class ScriptedListClient:
    """Returns canned ``list_objects_v2`` pages keyed by continuation token."""

    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self._pages = pages
        self.calls: list[dict[str, Any]] = []

    def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        index = int(kwargs.get("ContinuationToken", "0"))
        page = dict(self._pages[index])
        if index + 1 < len(self._pages):
            page["IsTruncated"] = True
            page["NextContinuationToken"] = str(index + 1)
        return page


class KeyStoreClient:
    """Serves a dict of key -> bytes with delimiter-aware, paged listing."""

    def __init__(self, objects: dict[str, bytes], *, page_size: int = 1000) -> None:
        self.objects = objects
        self.page_size = page_size
        self.calls: list[tuple[str, str]] = []
        self.failing_keys: set[str] = set()

    def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("list", kwargs.get("Prefix", "")))
        prefix = kwargs.get("Prefix", "")
        delimiter = kwargs.get("Delimiter")
        limit = min(self.page_size, kwargs.get("MaxKeys", self.page_size))

        items: list[tuple[str, str]] = []
        seen_prefixes: set[str] = set()
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix) :]
            if delimiter and delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    items.append(("prefix", common))
                continue
            items.append(("key", key))

        start = int(kwargs.get("ContinuationToken", "0"))
        chunk = items[start : start + limit]
        response: dict[str, Any] = {
            "Contents": [
                {"Key": value, "Size": len(self.objects[value])} for kind, value in chunk if kind == "key"
            ],
            "CommonPrefixes": [{"Prefix": value} for kind, value in chunk if kind == "prefix"],
            "IsTruncated": start + limit < len(items),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + limit)
        return response

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("head", Key))
        if Key not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key])}

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("get", Key))
        if Key in self.failing_keys:
            raise _client_error("AccessDenied", "GetObject")
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": _Body(self.objects[Key])}


def _backend(client: Any, root: str = "", max_list_pages: int = 100) -> S3Backend:
    return S3Backend(ReadOnlyBucket(client, "bucket"), root, max_list_pages=max_list_pages)


class ParseUriTests(unittest.TestCase):
    def test_bucket_and_prefix(self) -> None:
        self.assertEqual(parse_s3_uri("s3://bucket"), ("bucket", ""))
        self.assertEqual(parse_s3_uri("s3://bucket/logs/2024/"), ("bucket", "logs/2024"))

    def test_invalid_uris(self) -> None:
        for uri in ("s3://", "s3:///key", "/local/path"):
            with self.subTest(uri=uri):
                with self.assertRaises(BackendError):
                    parse_s3_uri(uri)


class S3ListingTests(unittest.TestCase):
    def test_three_page_listing_merges_without_duplicates_or_markers(self) -> None:
        file_keys = [f"logs/f{idx:04d}.txt" for idx in range(1200)]
        pages = [
            {
                "Contents": [{"Key": "logs/", "Size": 0}] + [{"Key": key, "Size": 1} for key in file_keys[:500]],
                "CommonPrefixes": [{"Prefix": "logs/archive/"}],
            },
            {
                "Contents": [{"Key": key, "Size": 1} for key in file_keys[500:1000]],
                "CommonPrefixes": [{"Prefix": "logs/archive/"}, {"Prefix": "logs/Zeta/"}],
            },
            {
                "Contents": [{"Key": key, "Size": 1} for key in file_keys[999:]]
                + [{"Key": "logs/empty-dir/", "Size": 0}],
            },
        ]
        client = ScriptedListClient(pages)

        result = _backend(client).list("logs")

        self.assertEqual(len(client.calls), 3)
        self.assertFalse(result.truncated)
        names = [entry.name for entry in result.entries]
        self.assertEqual(names[:2], ["Zeta", "archive"])
        self.assertEqual(names[2:], [key.rsplit("/", 1)[-1] for key in file_keys])
        self.assertEqual(len(names), len(set(names)))
        self.assertTrue(all(entry.kind is EntryKind.DIR for entry in result.entries[:2]))
        self.assertEqual(result.entries[0].path, "logs/Zeta")
        self.assertEqual(result.entries[2].path, "logs/f0000.txt")

    def test_page_cap_marks_listing_truncated(self) -> None:
        pages = [{"Contents": [{"Key": f"k{idx}", "Size": 1}]} for idx in range(5)]
        client = ScriptedListClient(pages)

        with self.assertLogs("lazybrowse.backend.remote", level="WARNING"):
            result = _backend(client, max_list_pages=2).list("")

        self.assertTrue(result.truncated)
        self.assertEqual(len(client.calls), 2)
        self.assertEqual([entry.name for entry in result.entries], ["k0", "k1"])

    def test_list_error_becomes_backend_error(self) -> None:
        class DeniedClient:
            def list_objects_v2(self, **_kwargs: Any) -> dict[str, Any]:
                raise _client_error("AccessDenied", "ListObjectsV2")

        with self.assertRaises(BackendError) as ctx:
            _backend(DeniedClient()).list("private")
        self.assertIn("AccessDenied", ctx.exception.message)
        self.assertEqual(ctx.exception.path, "s3://bucket/private")

    def test_path_helpers(self) -> None:
        backend = _backend(KeyStoreClient({}), root="/logs/2024/")
        self.assertEqual(backend.root_path, "logs/2024")
        self.assertEqual(backend.parent("logs/2024"), "logs")
        self.assertEqual(backend.parent("logs"), "")
        self.assertIsNone(backend.parent(""))
        self.assertEqual(backend.join("", "logs"), "logs")
        self.assertEqual(backend.join("logs", "a.txt"), "logs/a.txt")
        self.assertEqual(backend.display_path("logs/a.txt"), "s3://bucket/logs/a.txt")


class S3PreviewTests(unittest.TestCase):
    def test_text_preview(self) -> None:
        client = KeyStoreClient({"notes/readme.md": b"# Title\nbody\n"})
        preview = _backend(client).fetch_preview("notes/readme.md", 1024)
        self.assertEqual(preview, TextPreview(lines=("# Title", "body")))

    def test_size_is_checked_before_body_is_fetched(self) -> None:
        client = KeyStoreClient({"big.bin": b"x" * 2048})
        preview = _backend(client).fetch_preview("big.bin", 1024)

        self.assertEqual(preview, TooLargePreview(size=2048))
        self.assertEqual(client.calls, [("head", "big.bin")])

    def test_binary_preview(self) -> None:
        client = KeyStoreClient({"image.png": b"\x89PNG\x00\x01"})
        preview = _backend(client).fetch_preview("image.png", 1024)
        self.assertEqual(preview, BinaryPreview(mime="image/png", size=6))

    def test_prefix_without_object_previews_as_directory(self) -> None:
        client = KeyStoreClient({"logs/a.txt": b"a"})
        self.assertIsInstance(_backend(client).fetch_preview("logs", 1024), DirectoryPreview)

    def test_missing_key_raises_backend_error(self) -> None:
        client = KeyStoreClient({})
        with self.assertRaises(BackendError):
            _backend(client).fetch_preview("gone.txt", 1024)


class S3DownloadTests(unittest.TestCase):
    def test_download_file_streams_body(self) -> None:
        client = KeyStoreClient({"a/b.txt": b"payload"})
        with tempfile.TemporaryDirectory() as tmp:
            destination = os.path.join(tmp, "nested", "b.txt")
            written = _backend(client).download_file("a/b.txt", destination)
            with open(written, "rb") as handle:
                self.assertEqual(handle.read(), b"payload")

    def test_tree_download_continues_past_failures(self) -> None:
        objects = {f"data/file{idx}.txt": f"content {idx}".encode() for idx in range(1, 6)}
        client = KeyStoreClient(objects, page_size=2)
        client.failing_keys.add("data/file2.txt")

        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("lazybrowse.backend.remote", level="WARNING"):
                result = _backend(client).download_tree("data", tmp)
            written_files = sorted(os.listdir(os.path.join(tmp, "data")))

        self.assertEqual((result.written, result.failed), (4, 1))
        self.assertEqual(result.errors[0][0], "data/file2.txt")
        self.assertEqual(written_files, ["file1.txt", "file3.txt", "file4.txt", "file5.txt"])
        gets = [key for op, key in client.calls if op == "get"]
        self.assertEqual(gets, [f"data/file{idx}.txt" for idx in range(1, 6)])

    def test_tree_download_keeps_nested_layout(self) -> None:
        client = KeyStoreClient({"data/x/y.txt": b"y", "data/z.txt": b"z", "other/w.txt": b"w"})
        with tempfile.TemporaryDirectory() as tmp:
            result = _backend(client).download_tree("data", tmp)
            self.assertTrue(os.path.isfile(os.path.join(tmp, "data", "x", "y.txt")))
            self.assertTrue(os.path.isfile(os.path.join(tmp, "data", "z.txt")))
            self.assertFalse(os.path.exists(os.path.join(tmp, "data", "w.txt")))
        self.assertEqual((result.written, result.failed), (2, 0))

    def test_download_reports_progress_per_chunk(self) -> None:
        payload = b"p" * (DOWNLOAD_CHUNK_SIZE * 2 + 10)
        client = KeyStoreClient({"big.bin": payload})
        monitor = TransferMonitor()
        with tempfile.TemporaryDirectory() as tmp:
            _backend(client).download_file("big.bin", os.path.join(tmp, "big.bin"), monitor)
        self.assertEqual((monitor.bytes_done, monitor.files_done), (len(payload), 1))

    def test_cancel_midway_removes_partial_file(self) -> None:
        client = KeyStoreClient({"big.bin": b"p" * (DOWNLOAD_CHUNK_SIZE * 3)})
        monitor = _CancelAfterFirstChunk()
        with tempfile.TemporaryDirectory() as tmp:
            target = os.path.join(tmp, "big.bin")
            with self.assertRaises(DownloadCancelled):
                _backend(client).download_file("big.bin", target, monitor)
            self.assertFalse(os.path.exists(target))
        self.assertEqual(monitor.bytes_done, DOWNLOAD_CHUNK_SIZE)

    def test_cancelled_tree_download_stops_before_fetching(self) -> None:
        client = KeyStoreClient({"data/a.txt": b"a", "data/b.txt": b"b"})
        monitor = TransferMonitor()
        monitor.cancel()
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(DownloadCancelled):
                _backend(client).download_tree("data", tmp, monitor)
        self.assertEqual([key for op, key in client.calls if op == "get"], [])


if __name__ == "__main__":
    unittest.main()
