"""Clipboard and size formatting helper tests."""

from __future__ import annotations

import subprocess
import unittest
from unittest import mock

from lazybrowse.runtime import app_helpers


class ClipboardTests(unittest.TestCase):
    def test_first_available_tool_receives_text(self) -> None:
        done = subprocess.CompletedProcess(args=["wl-copy"], returncode=0)
        with mock.patch.object(app_helpers, "clipboard_commands", return_value=[["missing"], ["wl-copy"]]), mock.patch(
            "lazybrowse.runtime.app_helpers.shutil.which",
            side_effect=lambda name: None if name == "missing" else f"/usr/bin/{name}",
        ), mock.patch("lazybrowse.runtime.app_helpers.subprocess.run", return_value=done) as run:
            self.assertTrue(app_helpers.copy_text_to_clipboard("s3://bucket/key"))

        run.assert_called_once()
        self.assertEqual(run.call_args.args[0], ["wl-copy"])
        self.assertEqual(run.call_args.kwargs["input"], "s3://bucket/key")

    def test_no_tool_or_failing_tool_returns_false(self) -> None:
        with mock.patch("lazybrowse.runtime.app_helpers.shutil.which", return_value=None):
            self.assertFalse(app_helpers.copy_text_to_clipboard("x"))

        failed = subprocess.CompletedProcess(args=["xclip"], returncode=1)
        with mock.patch.object(app_helpers, "clipboard_commands", return_value=[["xclip"]]), mock.patch(
            "lazybrowse.runtime.app_helpers.shutil.which", return_value="/usr/bin/xclip"
        ), mock.patch("lazybrowse.runtime.app_helpers.subprocess.run", return_value=failed):
            self.assertFalse(app_helpers.copy_text_to_clipboard("x"))

    def test_empty_text_is_not_copied(self) -> None:
        with mock.patch("lazybrowse.runtime.app_helpers.subprocess.run") as run:
            self.assertFalse(app_helpers.copy_text_to_clipboard(""))
        run.assert_not_called()


class FormatSizeTests(unittest.TestCase):
    def test_units(self) -> None:
        self.assertEqual(app_helpers.format_size(None), "")
        self.assertEqual(app_helpers.format_size(512), "512 B")
        self.assertEqual(app_helpers.format_size(1536), "1.5 KB")
        self.assertEqual(app_helpers.format_size(5 * 1024 * 1024), "5.0 MB")


if __name__ == "__main__":
    unittest.main()
