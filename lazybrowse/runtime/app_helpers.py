"""Shared helper functions used by ``runtime.app`` composition."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)


def clipboard_commands() -> list[list[str]]:
    """Clipboard writer commands to try on this platform, in order."""
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def copy_text_to_clipboard(text: str) -> bool:
    """Best-effort clipboard copy across macOS, Windows, and common Linux tools."""
    if not text:
        return False

    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            proc = subprocess.run(
                command,
                input=text,
                text=True,
                check=False,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.debug("clipboard command %s failed: %s", command[0], exc)
            continue
        if proc.returncode == 0:
            return True
    return False


def format_size(size: int | None) -> str:
    """Compact human-readable byte count (``"512 B"``, ``"1.5 KB"``)."""
    if size is None:
        return ""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if value < 1024 or unit == "TB":
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


__all__ = ["clipboard_commands", "copy_text_to_clipboard", "format_size"]
