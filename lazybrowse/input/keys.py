"""Chord model plus parsing/formatting of config key-spec strings.

Grammar: ``([Modifier]"-")* KeyName`` with case-sensitive ``Ctrl``, ``Alt``
and ``Shift`` modifiers. Whitespace separates the chords of a sequence.
"""

from __future__ import annotations

from dataclasses import dataclass

MODIFIERS: tuple[str, ...] = ("Ctrl", "Alt", "Shift")

NAMED_KEYS: tuple[str, ...] = (
    "Enter",
    "Tab",
    "Backspace",
    "Esc",
    "Up",
    "Down",
    "Left",
    "Right",
    "Home",
    "End",
    "PageUp",
    "PageDown",
    "Delete",
    "Insert",
)
_NAMED_KEY_SET = frozenset(NAMED_KEYS)

# Lowercased spelling -> canonical key. Space maps onto its literal character.
_KEY_NAME_ALIASES: dict[str, str] = {name.lower(): name for name in NAMED_KEYS}
_KEY_NAME_ALIASES.update(
    {
        "return": "Enter",
        "escape": "Esc",
        "del": "Delete",
        "ins": "Insert",
        "space": " ",
    }
)


@dataclass(frozen=True)
class Chord:
    """One key press: a base key plus modifier flags.

    ``key`` is either a single literal character (case-sensitive) or one of
    ``NAMED_KEYS``. Build instances through ``make_chord`` so shifted letters
    are canonicalized to their uppercase literal.
    """

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    @property
    def is_named(self) -> bool:
        return self.key in _NAMED_KEY_SET

    @property
    def is_text(self) -> bool:
        """Whether this chord would insert its character into a text field."""
        return len(self.key) == 1 and not self.ctrl and not self.alt and self.key.isprintable()

    def __str__(self) -> str:
        return format_chord(self)


Sequence = tuple[Chord, ...]


def make_chord(key: str, *, ctrl: bool = False, alt: bool = False, shift: bool = False) -> Chord:
    """Build a canonical chord; ``Shift`` on a letter becomes the uppercase letter."""
    if shift and len(key) == 1 and key.isalpha():
        key = key.upper()
        shift = False
    return Chord(key=key, ctrl=ctrl, alt=alt, shift=shift)


def _parse_key_name(text: str) -> str | None:
    if len(text) == 1:
        return text
    return _KEY_NAME_ALIASES.get(text.lower())


def parse_key_spec(spec: str) -> Chord | None:
    """Parse one chord spec like ``"Ctrl-c"``, ``"PageUp"`` or ``"G"``.

    Returns ``None`` for anything outside the grammar (unknown modifier,
    unknown key name, empty string).
    """
    if not isinstance(spec, str) or not spec:
        return None

    text = spec
    modifiers: set[str] = set()
    while True:
        head, sep, rest = text.partition("-")
        if not sep or not rest or head not in MODIFIERS:
            break
        modifiers.add(head)
        text = rest

    key = _parse_key_name(text)
    if key is None:
        return None
    return make_chord(
        key,
        ctrl="Ctrl" in modifiers,
        alt="Alt" in modifiers,
        shift="Shift" in modifiers,
    )


def parse_sequence_spec(spec: str) -> Sequence | None:
    """Parse a binding string into a chord sequence.

    ``"g g"`` and ``"Ctrl-w j"`` are whitespace-separated chords. A repeated
    lowercase character such as ``"gg"`` expands to one chord per repeat;
    other unknown words like ``"pgdn"`` are rejected, as is any spec with an
    unrecognized piece.
    """
    if not isinstance(spec, str):
        return None
    tokens = spec.split()
    if not tokens:
        # A lone space is the Space key itself.
        return (make_chord(" "),) if spec == " " else None

    if len(tokens) == 1:
        token = tokens[0]
        chord = parse_key_spec(token)
        if chord is not None:
            return (chord,)
        if not token.isalpha() or token != token.lower() or len(set(token)) != 1:
            return None
        return tuple(make_chord(ch) for ch in token)

    chords: list[Chord] = []
    for token in tokens:
        chord = parse_key_spec(token)
        if chord is None:
            return None
        chords.append(chord)
    return tuple(chords)


def format_chord(chord: Chord) -> str:
    """Render ``chord`` back into the config grammar."""
    parts = [
        name
        for name, enabled in (("Ctrl", chord.ctrl), ("Alt", chord.alt), ("Shift", chord.shift))
        if enabled
    ]
    parts.append("Space" if chord.key == " " else chord.key)
    return "-".join(parts)


def format_sequence(sequence: Sequence) -> str:
    return " ".join(format_chord(chord) for chord in sequence)


__all__ = [
    "MODIFIERS",
    "NAMED_KEYS",
    "Chord",
    "Sequence",
    "make_chord",
    "parse_key_spec",
    "parse_sequence_spec",
    "format_chord",
    "format_sequence",
]
