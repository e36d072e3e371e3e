"""Plain ANSI drawing of ``ViewSnapshot`` frames.

Layout: one header row, the explorer and preview panes side by side, and a
footer row for the search prompt or the status line.
"""

from __future__ import annotations

import os
import unicodedata
from collections.abc import Iterable

from ..backend.types import (
    BinaryPreview,
    DirectoryPreview,
    ErrorPreview,
    LoadingPreview,
    PreviewContent,
    Span,
    TextPreview,
    TooLargePreview,
)
from ..preview.highlight import sanitize_terminal_text
from .app_helpers import format_size
from .state import (
    DownloadOverlayMode,
    ExplorerVisualMode,
    Focus,
    HelpOverlayMode,
    HistoryOverlayMode,
    PreviewSearchMode,
    SearchMode,
    Severity,
    ViewSnapshot,
    VisualPreviewMode,
)

TAB_STOP = 8
RESET = "\033[0m"
REVERSE = "\033[7m"
DIM = "\033[2m"
BOLD = "\033[1m"
UNDERLINE = "\033[4m"
MARKED = "\033[35m"
MARK_PREFIX = "* "
SEPARATOR = "│"

# Longest prefix wins.
TOKEN_STYLES: tuple[tuple[str, str], ...] = (
    ("Comment", "\033[90m"),
    ("Keyword.Constant", "\033[35m"),
    ("Keyword", "\033[1;34m"),
    ("Literal.String", "\033[32m"),
    ("Literal.Number", "\033[36m"),
    ("Operator", "\033[33m"),
    ("Name.Builtin", "\033[35m"),
    ("Name.Function", "\033[33m"),
    ("Name.Class", "\033[1;33m"),
    ("Name.Decorator", "\033[35m"),
    ("Name.Tag", "\033[34m"),
    ("Name.Attribute", "\033[36m"),
    ("Generic.Inserted", "\033[32m"),
    ("Generic.Deleted", "\033[31m"),
    ("Generic.Heading", "\033[1m"),
)

SEVERITY_STYLES = {
    Severity.INFO: "",
    Severity.SUCCESS: "\033[32m",
    Severity.WARNING: "\033[33m",
    Severity.ERROR: "\033[31m",
}


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``."""
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def style_for_token(token_type: str) -> str:
    best = ""
    best_len = -1
    for prefix, style in TOKEN_STYLES:
        if (token_type == prefix or token_type.startswith(prefix + ".")) and len(prefix) > best_len:
            best, best_len = style, len(prefix)
    return best


def segments_for_line(line: str, spans: Iterable[Span]) -> list[tuple[str, str]]:
    """Split ``line`` into ``(text, style)`` runs following its highlight spans."""
    out: list[tuple[str, str]] = []
    pos = 0
    for start, end, token_type in sorted(spans):
        start = max(start, pos)
        end = min(end, len(line))
        if start >= end:
            continue
        if start > pos:
            out.append((line[pos:start], ""))
        out.append((line[start:end], style_for_token(token_type)))
        pos = end
    if pos < len(line):
        out.append((line[pos:], ""))
    return out


def fit_segments(segments: Iterable[tuple[str, str]], width: int, base: str = "") -> str:
    """Render styled runs clipped and space-padded to exactly ``width`` columns.

    Control characters in the runs are escaped, so labels taken from entry
    names or keys cannot move the cursor or retitle the terminal.
    """
    if width <= 0:
        return ""
    out: list[str] = [base] if base else []
    col = 0
    full = False
    for text, style in segments:
        if full:
            break
        if style:
            out.append(style)
        for ch in sanitize_terminal_text(text).replace("\n", "\\x0a"):
            w = char_display_width(ch, col)
            if col + w > width:
                full = True
                break
            out.append(" " * w if ch == "\t" else ch)
            col += w
        if style:
            out.append(RESET + base)
    out.append(" " * (width - col))
    if base:
        out.append(RESET)
    return "".join(out)


def fit_text(text: str, width: int, base: str = "") -> str:
    return fit_segments([(text, "")], width, base)


def pane_widths(total: int, preview_percent: int) -> tuple[int, int]:
    """Return ``(explorer, preview)`` column counts around one separator column."""
    usable = max(2, total - 1)
    preview = max(1, usable * preview_percent // 100)
    explorer = max(1, usable - preview)
    return explorer, preview


def _explorer_rows(snapshot: ViewSnapshot, width: int, height: int) -> list[str]:
    mode = snapshot.mode
    active = snapshot.focus is Focus.EXPLORER
    if isinstance(mode, HistoryOverlayMode):
        items = list(snapshot.history)
        return _list_rows("History", items, mode.cursor, width, height)
    if isinstance(mode, DownloadOverlayMode):
        entry = snapshot.selected_entry
        if snapshot.marked:
            count = len(snapshot.marked)
            title = f"Download {count} file{'' if count == 1 else 's'} to"
        elif entry is not None:
            title = f"Download {entry.name} to"
        else:
            title = "Download to"
        items = [f"{dest.name}  {dest.path}" for dest in snapshot.download_destinations]
        return _list_rows(title, items, mode.cursor, width, height)

    entries = snapshot.entries
    if not entries:
        message = "Loading..." if snapshot.listing_loading else "(empty)"
        return [fit_text(message, width, DIM)] + [fit_text("", width)] * (height - 1)

    selected = snapshot.selected_index or 0
    start = max(0, min(selected - height // 2, len(entries) - height))
    rows: list[str] = []
    for index in range(start, min(len(entries), start + height)):
        entry = entries[index]
        name = entry.name + "/" if entry.is_dir else entry.name
        size = format_size(entry.size)
        label = f"{name}  {size}" if size else name
        if snapshot.marked:
            label = (MARK_PREFIX if entry.path in snapshot.marked else " " * len(MARK_PREFIX)) + label
        base = ""
        if index == selected:
            base = REVERSE if active else BOLD
        elif entry.path in snapshot.marked:
            base = MARKED
        elif entry.is_dir:
            base = "\033[34m"
        rows.append(fit_text(label, width, base))
    while len(rows) < height:
        rows.append(fit_text("", width))
    return rows


def _list_rows(title: str, items: list[str], cursor: int, width: int, height: int) -> list[str]:
    rows = [fit_text(title, width, BOLD)]
    body = height - 1
    start = max(0, min(cursor - body // 2, len(items) - body))
    for index in range(start, min(len(items), start + body)):
        rows.append(fit_text(items[index], width, REVERSE if index == cursor else ""))
    while len(rows) < height:
        rows.append(fit_text("", width))
    return rows


def preview_message(preview: PreviewContent | None) -> str | None:
    """One-line description for non-text previews; ``None`` for text."""
    if preview is None:
        return ""
    if isinstance(preview, TextPreview):
        return None
    if isinstance(preview, BinaryPreview):
        return f"Binary file ({preview.mime}, {format_size(preview.size)})"
    if isinstance(preview, TooLargePreview):
        return f"File too large to preview ({format_size(preview.size)})"
    if isinstance(preview, DirectoryPreview):
        return "Directory"
    if isinstance(preview, ErrorPreview):
        return f"Error: {preview.message}"
    if isinstance(preview, LoadingPreview):
        return "Loading..."
    return ""


def _preview_rows(snapshot: ViewSnapshot, width: int, height: int) -> list[str]:
    preview = snapshot.preview
    message = preview_message(preview)
    if message is not None or not isinstance(preview, TextPreview):
        style = "\033[31m" if isinstance(preview, ErrorPreview) else DIM
        return [fit_text(message or "", width, style)] + [fit_text("", width)] * (height - 1)

    focused = snapshot.focus is Focus.PREVIEW
    selection = snapshot.visual_range
    matches = set(snapshot.preview_matches)
    rows: list[str] = []
    for index in range(snapshot.preview_scroll, snapshot.preview_scroll + height):
        if index >= len(preview.lines):
            rows.append(fit_text("", width))
            continue
        base = ""
        if selection is not None and selection[0] <= index <= selection[1]:
            base = REVERSE
        elif focused and index == snapshot.preview_cursor:
            base = BOLD
        if index in matches:
            base += UNDERLINE
        segments = segments_for_line(preview.lines[index], preview.spans_for(index))
        rows.append(fit_segments(segments, width, base))
    return rows


def _help_rows(snapshot: ViewSnapshot, width: int, height: int, scroll: int) -> list[str]:
    rows = [fit_text("Keys (Esc or ? to close)", width, BOLD)]
    for line in snapshot.help_lines[scroll : scroll + height - 1]:
        rows.append(fit_text(line, width))
    while len(rows) < height:
        rows.append(fit_text("", width))
    return rows


def _download_flag(snapshot: ViewSnapshot) -> str:
    downloads = snapshot.downloads
    done = sum(info.bytes_done for info in downloads)
    if len(downloads) == 1:
        text = f"downloading {downloads[0].label} {format_size(done)}"
    else:
        text = f"{len(downloads)} downloads {format_size(done)}"
    if any(info.cancelling for info in downloads):
        text += " cancelling"
    return text


def _header(snapshot: ViewSnapshot, width: int) -> str:
    flags: list[str] = []
    if snapshot.listing_loading:
        flags.append("loading")
    if snapshot.listing_truncated:
        flags.append("truncated")
    if isinstance(snapshot.mode, (VisualPreviewMode, ExplorerVisualMode)):
        flags.append("VISUAL")
    if snapshot.marked:
        flags.append(f"{len(snapshot.marked)} selected")
    if snapshot.downloads:
        flags.append(_download_flag(snapshot))
    if snapshot.filter_query and not isinstance(snapshot.mode, SearchMode):
        flags.append(f"filter: {snapshot.filter_query}")
    suffix = f"  [{', '.join(flags)}]" if flags else ""
    return fit_text(snapshot.display_path + suffix, width, BOLD)


def _footer(snapshot: ViewSnapshot, width: int) -> str:
    mode = snapshot.mode
    if isinstance(mode, SearchMode):
        return fit_text("/" + mode.query, width)
    if isinstance(mode, PreviewSearchMode):
        return fit_text(f"/{mode.query}  {_match_counter(snapshot)}".rstrip(), width)
    if isinstance(mode, HelpOverlayMode):
        return fit_text("j/k scroll, Esc close", width, DIM)
    if snapshot.status is not None:
        return fit_text(snapshot.status.text, width, SEVERITY_STYLES[snapshot.status.severity])
    if snapshot.pending_keys:
        return fit_text(snapshot.pending_keys, width, DIM)
    return fit_text("", width)


def _match_counter(snapshot: ViewSnapshot) -> str:
    if not snapshot.preview_query:
        return ""
    matches = snapshot.preview_matches
    if not matches:
        return "[no matches]"
    if snapshot.preview_cursor in matches:
        return f"[{matches.index(snapshot.preview_cursor) + 1}/{len(matches)}]"
    return f"[{len(matches)} matches]"


def render_frame(snapshot: ViewSnapshot, columns: int, rows: int) -> list[str]:
    """Return exactly ``rows`` styled lines, each ``columns`` cells wide."""
    columns = max(3, columns)
    rows = max(3, rows)
    body = rows - 2
    lines = [_header(snapshot, columns)]
    if isinstance(snapshot.mode, HelpOverlayMode):
        lines.extend(_help_rows(snapshot, columns, body, snapshot.mode.scroll))
        lines.append(_footer(snapshot, columns))
        return lines
    explorer_width, preview_width = pane_widths(columns, snapshot.preview_width_percent)
    left = _explorer_rows(snapshot, explorer_width, body)
    right = _preview_rows(snapshot, preview_width, body)
    for left_row, right_row in zip(left, right):
        lines.append(left_row + DIM + SEPARATOR + RESET + right_row)
    lines.append(_footer(snapshot, columns))
    return lines


def preview_body_rows(rows: int) -> int:
    return max(1, rows - 2)


def draw(stdout_fd: int, lines: list[str]) -> None:
    payload = "\033[H" + "\r\n".join(lines)
    os.write(stdout_fd, payload.encode("utf-8", errors="replace"))


__all__ = [
    "TOKEN_STYLES",
    "char_display_width",
    "draw",
    "fit_segments",
    "fit_text",
    "pane_widths",
    "preview_body_rows",
    "preview_message",
    "render_frame",
    "segments_for_line",
    "style_for_token",
]
