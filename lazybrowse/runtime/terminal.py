"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle and alternate-screen switching.
"""

from __future__ import annotations

import contextlib
import os
import termios
import tty

ENTER_SEQUENCE = b"\x1b[?1049h\x1b[?25l\x1b[2J"
EXIT_SEQUENCE = b"\x1b[?25h\x1b[?1049l"


class TerminalController:
    """Manage terminal mode transitions."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with the cursor hidden."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        os.write(self.stdout_fd, ENTER_SEQUENCE)

    def disable_tui_mode(self) -> None:
        """Restore the main screen buffer and the saved tty state."""
        os.write(self.stdout_fd, EXIT_SEQUENCE)
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()


__all__ = ["TerminalController"]
