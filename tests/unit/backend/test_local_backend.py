"""Local filesystem backend tests."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from lazybrowse.backend import open_backend
from lazybrowse.backend.local import COPY_CHUNK_SIZE, LocalBackend
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


class LocalBackendTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        (self.root / "src").mkdir()
        (self.root / "Docs").mkdir()
        (self.root / "b.txt").write_text("beta\n", encoding="utf-8")
        (self.root / "A.txt").write_text("alpha\n", encoding="utf-8")
        (self.root / "src" / "main.py").write_text("print('hi')\n", encoding="utf-8")
        self.backend = LocalBackend(str(self.root))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_root_must_be_directory(self) -> None:
        with self.assertRaises(BackendError):
            LocalBackend(str(self.root / "b.txt"))
        with self.assertRaises(BackendError):
            open_backend(str(self.root / "missing"))

    def test_open_backend_accepts_file_uri(self) -> None:
        backend = open_backend(f"file://{self.root}")
        self.assertIsInstance(backend, LocalBackend)
        self.assertEqual(backend.root_path, str(self.root))

    def test_listing_puts_directories_first_then_names(self) -> None:
        result = self.backend.list(self.backend.root_path)

        self.assertEqual([entry.name for entry in result.entries], ["Docs", "src", "A.txt", "b.txt"])
        self.assertEqual(
            [entry.kind for entry in result.entries],
            [EntryKind.DIR, EntryKind.DIR, EntryKind.FILE, EntryKind.FILE],
        )
        self.assertEqual(result.entries[2].size, len("alpha\n"))
        self.assertIsNone(result.entries[0].size)
        self.assertFalse(result.truncated)

    def test_listing_missing_directory_raises(self) -> None:
        with self.assertRaises(BackendError) as ctx:
            self.backend.list(str(self.root / "nope"))
        self.assertEqual(ctx.exception.path, str(self.root / "nope"))

    def test_parent_and_join(self) -> None:
        src = self.backend.join(self.backend.root_path, "src")
        self.assertEqual(src, str(self.root / "src"))
        self.assertEqual(self.backend.parent(src), str(self.root))
        self.assertIsNone(self.backend.parent("/"))
        self.assertEqual(self.backend.parent("/tmp"), "/")
        self.assertEqual(self.backend.name_of(src), "src")

    def test_previews(self) -> None:
        (self.root / "blob.bin").write_bytes(b"\x00\x01\x02")
        (self.root / "big.txt").write_text("x" * 200, encoding="utf-8")

        self.assertEqual(
            self.backend.fetch_preview(str(self.root / "A.txt"), 100),
            TextPreview(lines=("alpha",)),
        )
        binary = self.backend.fetch_preview(str(self.root / "blob.bin"), 100)
        self.assertIsInstance(binary, BinaryPreview)
        self.assertEqual(binary.size, 3)
        self.assertEqual(
            self.backend.fetch_preview(str(self.root / "big.txt"), 100),
            TooLargePreview(size=200),
        )
        self.assertIsInstance(self.backend.fetch_preview(str(self.root / "src"), 100), DirectoryPreview)

    def test_invalid_utf8_is_binary(self) -> None:
        (self.root / "latin.txt").write_bytes("caf\xe9".encode("latin-1"))
        preview = self.backend.fetch_preview(str(self.root / "latin.txt"), 100)
        self.assertEqual(preview, BinaryPreview(mime="text/plain", size=4))

    def test_preview_of_missing_file_raises(self) -> None:
        with self.assertRaises(BackendError):
            self.backend.fetch_preview(str(self.root / "gone.txt"), 100)

    def test_download_file(self) -> None:
        with tempfile.TemporaryDirectory() as dest:
            target = os.path.join(dest, "copy.txt")
            written = self.backend.download_file(str(self.root / "A.txt"), target)
            self.assertEqual(written, target)
            self.assertEqual(Path(target).read_text(encoding="utf-8"), "alpha\n")

    def test_download_tree_copies_nested_files(self) -> None:
        (self.root / "src" / "pkg").mkdir()
        (self.root / "src" / "pkg" / "mod.py").write_text("x = 1\n", encoding="utf-8")

        with tempfile.TemporaryDirectory() as dest:
            result = self.backend.download_tree(str(self.root / "src"), dest)
            self.assertTrue(os.path.isfile(os.path.join(dest, "src", "main.py")))
            self.assertTrue(os.path.isfile(os.path.join(dest, "src", "pkg", "mod.py")))

        self.assertEqual((result.written, result.failed), (2, 0))

    def test_download_tree_into_its_own_subdirectory_copies_once(self) -> None:
        dest = self.root / "src" / "dl"
        dest.mkdir()

        result = self.backend.download_tree(str(self.root / "src"), str(dest))

        self.assertEqual((result.written, result.failed), (1, 0))
        self.assertTrue((dest / "src" / "main.py").is_file())
        self.assertFalse((dest / "src" / "dl").exists())

    def test_download_tree_refuses_source_inside_target(self) -> None:
        nested = self.root / "out" / "src"
        nested.mkdir(parents=True)
        (nested / "keep.txt").write_text("keep\n", encoding="utf-8")

        with self.assertRaises(BackendError):
            self.backend.download_tree(str(nested), str(self.root / "out"))
        self.assertEqual((nested / "keep.txt").read_text(encoding="utf-8"), "keep\n")

    def test_download_file_onto_itself_is_rejected(self) -> None:
        source = str(self.root / "A.txt")
        with self.assertRaises(BackendError):
            self.backend.download_file(source, source)
        self.assertEqual((self.root / "A.txt").read_text(encoding="utf-8"), "alpha\n")

    def test_download_file_reports_progress(self) -> None:
        monitor = TransferMonitor()
        with tempfile.TemporaryDirectory() as dest:
            self.backend.download_file(str(self.root / "A.txt"), os.path.join(dest, "A.txt"), monitor)
        self.assertEqual((monitor.bytes_done, monitor.files_done), (6, 1))

    def test_cancelled_download_removes_partial_file(self) -> None:
        big = self.root / "big.bin"
        big.write_bytes(b"x" * (COPY_CHUNK_SIZE * 3))
        monitor = _CancelAfterFirstChunk()

        with tempfile.TemporaryDirectory() as dest:
            target = os.path.join(dest, "big.bin")
            with self.assertRaises(DownloadCancelled):
                self.backend.download_file(str(big), target, monitor)
            self.assertFalse(os.path.exists(target))

        self.assertEqual(monitor.bytes_done, COPY_CHUNK_SIZE)
        self.assertEqual(monitor.files_done, 0)

    def test_cancelled_tree_download_stops(self) -> None:
        monitor = TransferMonitor()
        monitor.cancel()
        with tempfile.TemporaryDirectory() as dest:
            with self.assertRaises(DownloadCancelled):
                self.backend.download_tree(str(self.root / "src"), dest, monitor)
            self.assertFalse(os.path.exists(os.path.join(dest, "src", "main.py")))

    def test_download_files_copies_side_by_side(self) -> None:
        paths = [str(self.root / "A.txt"), str(self.root / "src" / "main.py"), str(self.root / "gone.txt")]
        with tempfile.TemporaryDirectory() as dest:
            with self.assertLogs("lazybrowse.backend.base", level="WARNING"):
                result = self.backend.download_files(paths, dest)
            self.assertEqual(sorted(os.listdir(dest)), ["A.txt", "main.py"])

        self.assertEqual((result.written, result.failed), (2, 1))
        self.assertEqual(result.errors[0][0], str(self.root / "gone.txt"))

    @unittest.skipIf(hasattr(os, "geteuid") and os.geteuid() == 0, "root ignores file permissions")
    def test_download_tree_reports_unreadable_file_and_continues(self) -> None:
        locked = self.root / "src" / "locked.py"
        locked.write_text("secret\n", encoding="utf-8")
        locked.chmod(0)
        try:
            with tempfile.TemporaryDirectory() as dest:
                with self.assertLogs("lazybrowse.backend.local", level="WARNING"):
                    result = self.backend.download_tree(str(self.root / "src"), dest)
                self.assertTrue(os.path.isfile(os.path.join(dest, "src", "main.py")))
                self.assertFalse(os.path.exists(os.path.join(dest, "src", "locked.py")))
        finally:
            locked.chmod(0o644)

        self.assertEqual((result.written, result.failed), (1, 1))
        self.assertEqual(result.errors[0][0], str(locked))


if __name__ == "__main__":
    unittest.main()
