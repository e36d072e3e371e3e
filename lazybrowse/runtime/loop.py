"""Main interactive event loop for the terminal UI.

Each iteration applies finished background work, expires timers, redraws
when the view changed, then waits for one key. The wait is bounded by the
pending key-sequence deadline, the status expiry and outstanding jobs.
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..input.keys import Chord
from ..input.reader import read_chord
from .controller import ModeController
from .render import draw, preview_body_rows, render_frame
from .state import ViewSnapshot
from .terminal import TerminalController


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    idle_poll_seconds: float = 1.0
    busy_poll_seconds: float = 0.05


def next_wait_seconds(controller: ModeController, timing: RuntimeLoopTiming, now: float) -> float:
    """How long the loop may block waiting for input."""
    wait = timing.busy_poll_seconds if controller.dispatcher.busy else timing.idle_poll_seconds
    deadline = controller.resolver.next_deadline()
    if deadline is not None:
        wait = min(wait, deadline - now)
    if controller.status is not None:
        wait = min(wait, controller.status.expires_at - now)
    return max(0.0, wait)


def run_main_loop(
    controller: ModeController,
    terminal: TerminalController,
    timing: RuntimeLoopTiming | None = None,
    *,
    read_chord_fn: Callable[[int, int | None], Chord | None] = read_chord,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Run the interactive loop until the controller requests quit."""
    timing = timing if timing is not None else RuntimeLoopTiming()
    controller.start()
    last_snapshot: ViewSnapshot | None = None
    last_size: tuple[int, int] | None = None

    with terminal.raw_mode():
        while not controller.quit_requested:
            term = shutil.get_terminal_size((80, 24))
            size = (term.columns, term.lines)
            resized = size != last_size
            if resized:
                last_size = size
                controller.set_viewport(preview_body_rows(term.lines))

            controller.pump()
            now = clock()
            controller.tick(now)

            snapshot = controller.snapshot()
            if resized or snapshot != last_snapshot:
                last_snapshot = snapshot
                draw(terminal.stdout_fd, render_frame(snapshot, term.columns, term.lines))

            wait_ms = int(next_wait_seconds(controller, timing, clock()) * 1000)
            chord = read_chord_fn(terminal.stdin_fd, wait_ms)
            if chord is not None:
                controller.handle_chord(chord, clock())


__all__ = ["RuntimeLoopTiming", "next_wait_seconds", "run_main_loop"]
