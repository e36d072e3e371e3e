"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into ``Chord`` values.
Handles ESC-sequence timing, xterm modifier parameters, and skips mouse
reports.
"""

from __future__ import annotations

import os
import select
from collections.abc import Callable

from .keys import Chord, make_chord

ESC_SEQUENCE_TIMEOUT_MS = 25

ByteSource = Callable[[int | None], bytes | None]

_CSI_LETTER_KEYS = {
    "A": "Up",
    "B": "Down",
    "C": "Right",
    "D": "Left",
    "H": "Home",
    "F": "End",
}
_CSI_TILDE_KEYS = {
    "1": "Home",
    "7": "Home",
    "4": "End",
    "8": "End",
    "2": "Insert",
    "3": "Delete",
    "5": "PageUp",
    "6": "PageDown",
}


def _read_ready_byte(fd: int, timeout_ms: int | None) -> bytes | None:
    if timeout_ms is not None:
        ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
        if not ready:
            return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def _decode_plain(first: bytes, read_byte: ByteSource, *, alt: bool = False) -> Chord | None:
    code = first[0]
    if first in {b"\r", b"\n"}:
        return make_chord("Enter", alt=alt)
    if first == b"\t":
        return make_chord("Tab", alt=alt)
    if first == b"\x7f":
        return make_chord("Backspace", alt=alt)
    if code == 0:
        return make_chord(" ", ctrl=True, alt=alt)
    if code < 0x1B:
        return make_chord(chr(code + 0x60), ctrl=True, alt=alt)
    if code < 0x20:
        # Ctrl-\ Ctrl-] Ctrl-^ Ctrl-_
        return make_chord(chr(code + 0x40), ctrl=True, alt=alt)

    raw = first
    for _ in range(_utf8_length(code) - 1):
        more = read_byte(ESC_SEQUENCE_TIMEOUT_MS)
        if more is None:
            break
        raw += more
    text = raw.decode("utf-8", errors="replace")
    return make_chord(text[:1], alt=alt)


def _modifier_flags(param: str) -> tuple[bool, bool, bool]:
    """Decode an xterm modifier parameter into ``(ctrl, alt, shift)``."""
    try:
        bits = max(0, int(param) - 1)
    except ValueError:
        return False, False, False
    return bool(bits & 4), bool(bits & 2), bool(bits & 1)


def _decode_csi(read_byte: ByteSource) -> Chord | None:
    payload: list[str] = []
    while True:
        part = read_byte(ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return make_chord("Esc")
        ch = part.decode("latin-1")
        if "@" <= ch <= "~":
            final = ch
            break
        payload.append(ch)
        if len(payload) > 64:
            return None

    params_text = "".join(payload)
    if params_text.startswith("<"):
        # SGR mouse report; not a key.
        return None
    params = params_text.split(";") if params_text else []
    ctrl, alt, shift = _modifier_flags(params[1]) if len(params) > 1 else (False, False, False)

    if final == "Z":
        return make_chord("Tab", shift=True)
    if final in _CSI_LETTER_KEYS:
        return make_chord(_CSI_LETTER_KEYS[final], ctrl=ctrl, alt=alt, shift=shift)
    if final == "~" and params:
        key = _CSI_TILDE_KEYS.get(params[0])
        if key is not None:
            return make_chord(key, ctrl=ctrl, alt=alt, shift=shift)
    return None


def decode_chord(read_byte: ByteSource, timeout_ms: int | None = None) -> Chord | None:
    """Decode one chord from ``read_byte``.

    ``read_byte(timeout_ms)`` returns one byte or ``None`` on timeout. Returns
    ``None`` when no key arrived or the bytes were not a key (mouse reports,
    unknown escape sequences).
    """
    first = read_byte(timeout_ms)
    if first is None:
        return None
    if first != b"\x1b":
        return _decode_plain(first, read_byte)

    seq = read_byte(ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return make_chord("Esc")
    if seq == b"[":
        return _decode_csi(read_byte)
    if seq == b"O":
        final = read_byte(ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return make_chord("O", alt=True)
        key = _CSI_LETTER_KEYS.get(final.decode("latin-1"))
        return make_chord(key) if key is not None else None
    if seq == b"\x1b":
        return make_chord("Esc", alt=True)
    return _decode_plain(seq, read_byte, alt=True)


def read_chord(fd: int, timeout_ms: int | None = None) -> Chord | None:
    """Read one chord from terminal ``fd``, waiting at most ``timeout_ms``."""
    return decode_chord(lambda wait_ms: _read_ready_byte(fd, wait_ms), timeout_ms)


__all__ = [
    "ESC_SEQUENCE_TIMEOUT_MS",
    "decode_chord",
    "read_chord",
]
