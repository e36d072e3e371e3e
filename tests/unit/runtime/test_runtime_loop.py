"""Interactive loop tests with a fake terminal and scripted keys."""

from __future__ import annotations

import os
import tempfile
import unittest
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

from lazybrowse.backend.local import LocalBackend
from lazybrowse.input.keys import Chord
from lazybrowse.runtime.controller import ModeController
from lazybrowse.runtime.dispatch import InlineDispatcher
from lazybrowse.runtime.loop import RuntimeLoopTiming, next_wait_seconds, run_main_loop
from lazybrowse.runtime.state import Severity, StatusMessage


class _FakeTerminal:
    stdin_fd = 0
    stdout_fd = 1

    def __init__(self) -> None:
        self.raw_entered = 0

    @contextmanager
    def raw_mode(self):
        self.raw_entered += 1
        yield


class NextWaitTests(unittest.TestCase):
    def _controller(self, *, busy: bool = False, deadline: float | None = None, status=None):
        return SimpleNamespace(
            dispatcher=SimpleNamespace(busy=busy),
            resolver=SimpleNamespace(next_deadline=lambda: deadline),
            status=status,
        )

    def test_idle_wait(self) -> None:
        timing = RuntimeLoopTiming()
        self.assertEqual(next_wait_seconds(self._controller(), timing, 0.0), timing.idle_poll_seconds)

    def test_busy_dispatcher_polls_fast(self) -> None:
        timing = RuntimeLoopTiming()
        wait = next_wait_seconds(self._controller(busy=True), timing, 0.0)
        self.assertEqual(wait, timing.busy_poll_seconds)

    def test_pending_sequence_and_status_shorten_wait(self) -> None:
        timing = RuntimeLoopTiming()
        self.assertAlmostEqual(next_wait_seconds(self._controller(deadline=10.3), timing, 10.0), 0.3)
        status = StatusMessage("x", Severity.INFO, expires_at=10.2)
        self.assertAlmostEqual(next_wait_seconds(self._controller(status=status), timing, 10.0), 0.2)
        self.assertEqual(next_wait_seconds(self._controller(deadline=9.0), timing, 10.0), 0.0)


class RunMainLoopTests(unittest.TestCase):
    def test_loop_draws_applies_keys_and_quits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "a.txt").write_text("a\n", encoding="utf-8")
            (root / "b.txt").write_text("b\n", encoding="utf-8")
            controller = ModeController(LocalBackend(tmp), dispatcher=InlineDispatcher(), clipboard=lambda _t: True)
            terminal = _FakeTerminal()
            keys = [None, Chord("j"), Chord("c", ctrl=True)]
            waits: list[int | None] = []

            def read_chord_fn(fd: int, timeout_ms: int | None):
                waits.append(timeout_ms)
                return keys.pop(0) if keys else Chord("c", ctrl=True)

            frames: list[list[str]] = []
            with mock.patch(
                "lazybrowse.runtime.loop.shutil.get_terminal_size",
                return_value=os.terminal_size((60, 12)),
            ), mock.patch(
                "lazybrowse.runtime.loop.draw",
                side_effect=lambda _fd, lines: frames.append(lines),
            ):
                run_main_loop(controller, terminal, read_chord_fn=read_chord_fn)

        self.assertTrue(controller.quit_requested)
        self.assertEqual(terminal.raw_entered, 1)
        self.assertEqual(controller.selected_entry().name, "b.txt")
        self.assertEqual(controller.viewport_rows, 10)
        self.assertGreaterEqual(len(frames), 2)
        self.assertTrue(all(len(frame) == 12 for frame in frames))
        self.assertEqual(len(waits), 3)


if __name__ == "__main__":
    unittest.main()
