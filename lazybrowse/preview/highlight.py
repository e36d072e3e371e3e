"""Preview text sanitization and Pygments tokenization into line spans.

Spans are ``(start_column, end_column, token_type)`` triples where
``token_type`` is the Pygments token name without the leading ``Token.``
(``"Keyword"``, ``"Name.Function"``, ``"Literal.String.Double"``, ...).
"""

from __future__ import annotations

import re

from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.token import Token
from pygments.util import ClassNotFound

from ..backend.types import Span, TextPreview

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

MAX_HIGHLIGHT_CHARS = 512 * 1024


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def lexer_for(name: str, source: str) -> Lexer:
    options = {"stripnl": False, "ensurenl": False}
    try:
        return get_lexer_for_filename(name, source, **options)
    except ClassNotFound:
        return TextLexer(**options)


def _token_name(token_type) -> str:
    text = str(token_type)
    return text[len("Token."):] if text.startswith("Token.") else text


def highlight_spans(source: str, name: str) -> tuple[tuple[Span, ...], ...]:
    """Tokenize ``source`` and return spans for each of its lines."""
    line_count = len(source.split("\n"))
    if not source or len(source) > MAX_HIGHLIGHT_CHARS:
        return tuple(() for _ in range(line_count))

    lines: list[list[Span]] = [[]]
    column = 0
    for token_type, value in lexer_for(name, source).get_tokens(source):
        plain = token_type in Token.Text or token_type is Token.Error
        pieces = value.split("\n")
        for index, piece in enumerate(pieces):
            if index > 0:
                lines.append([])
                column = 0
            if piece and not plain and not piece.isspace():
                lines[-1].append((column, column + len(piece), _token_name(token_type)))
            column += len(piece)

    while len(lines) < line_count:
        lines.append([])
    return tuple(tuple(spans) for spans in lines[:line_count])


def highlight_preview(preview: TextPreview, name: str) -> TextPreview:
    """Return ``preview`` with sanitized lines and Pygments spans attached."""
    source = sanitize_terminal_text("\n".join(preview.lines))
    lines = tuple(source.split("\n")) if preview.lines else ()
    if not lines:
        return TextPreview(lines=(), spans=())
    spans = highlight_spans(source, name)
    return TextPreview(lines=lines, spans=spans)


__all__ = [
    "MAX_HIGHLIGHT_CHARS",
    "highlight_preview",
    "highlight_spans",
    "lexer_for",
    "sanitize_terminal_text",
]
