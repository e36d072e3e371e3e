"""Input-layer public API: chords, binding table, resolver, terminal reader."""

from .key_registry import BindingMatch, BindingOverlap, BindingTable, KeyBinding
from .keys import (
    Chord,
    Sequence,
    format_chord,
    format_sequence,
    make_chord,
    parse_key_spec,
    parse_sequence_spec,
)
from .reader import ESC_SEQUENCE_TIMEOUT_MS, decode_chord, read_chord
from .resolver import KeyResolver, Resolution

__all__ = [
    "BindingMatch",
    "BindingOverlap",
    "BindingTable",
    "KeyBinding",
    "Chord",
    "Sequence",
    "format_chord",
    "format_sequence",
    "make_chord",
    "parse_key_spec",
    "parse_sequence_spec",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "decode_chord",
    "read_chord",
    "KeyResolver",
    "Resolution",
]
