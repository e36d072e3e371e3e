"""Tests for last-location persistence."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazybrowse.runtime import location


class LastLocationTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "state" / "location.json"
            with mock.patch("lazybrowse.runtime.location.LOCATION_PATH", path):
                location.save_last_location("s3://bucket/logs/")
                self.assertEqual(location.load_last_location(), "s3://bucket/logs/")
                self.assertEqual(json.loads(path.read_text(encoding="utf-8")), {"last_location": "s3://bucket/logs/"})

    def test_missing_or_malformed_file_reads_as_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "location.json"
            with mock.patch("lazybrowse.runtime.location.LOCATION_PATH", path):
                self.assertIsNone(location.load_last_location())
                for text in ("not json", "[]", '{"last_location": 3}', '{"last_location": "  "}'):
                    with self.subTest(text=text):
                        path.write_text(text, encoding="utf-8")
                        self.assertIsNone(location.load_last_location())

    def test_save_failure_is_not_raised(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("x", encoding="utf-8")
            with mock.patch("lazybrowse.runtime.location.LOCATION_PATH", blocker / "location.json"):
                location.save_last_location("/tmp")
                self.assertIsNone(location.load_last_location())


if __name__ == "__main__":
    unittest.main()
