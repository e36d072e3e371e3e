"""Mode/focus state types and the immutable view snapshot.

Mode and focus are separate axes. Preview visual selection and preview
search only exist with the preview focused; explorer search, explorer visual
marking and the history and download overlays only with the explorer
focused. Help can open from either focus.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..actions import FIXED_ACTIONS, REBINDABLE_ACTIONS, Action
from ..backend.types import Entry, PreviewContent

if TYPE_CHECKING:
    from .config import DownloadDestination


class Focus(Enum):
    EXPLORER = "explorer"
    PREVIEW = "preview"


@dataclass(frozen=True)
class NormalMode:
    pass


@dataclass(frozen=True)
class SearchMode:
    query: str = ""


@dataclass(frozen=True)
class VisualPreviewMode:
    anchor: int


@dataclass(frozen=True)
class PreviewSearchMode:
    """Incremental search in the preview; ``origin`` is the cursor to restore on Esc."""

    query: str = ""
    origin: int = 0


@dataclass(frozen=True)
class ExplorerVisualMode:
    anchor: int


@dataclass(frozen=True)
class HistoryOverlayMode:
    cursor: int = 0


@dataclass(frozen=True)
class DownloadOverlayMode:
    cursor: int = 0


@dataclass(frozen=True)
class HelpOverlayMode:
    scroll: int = 0


Mode = (
    NormalMode
    | SearchMode
    | VisualPreviewMode
    | PreviewSearchMode
    | ExplorerVisualMode
    | HistoryOverlayMode
    | DownloadOverlayMode
    | HelpOverlayMode
)

NORMAL = NormalMode()


class Severity(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DownloadInfo:
    """Progress of one running download as seen by the renderer."""

    label: str
    bytes_done: int
    files_done: int
    cancelling: bool = False


@dataclass(frozen=True)
class StatusMessage:
    text: str
    severity: Severity
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


# Actions that key resolution considers in each mode.
_MOVES = frozenset(
    {
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.JUMP_UP,
        Action.JUMP_DOWN,
        Action.JUMP_TO_TOP,
        Action.JUMP_TO_BOTTOM,
    }
)
_PREVIEW_ONLY = frozenset({Action.PREVIEW_SEARCH_NEXT, Action.PREVIEW_SEARCH_PREV})
_EXPLORER_ONLY = frozenset({Action.TOGGLE_SELECTION})

NORMAL_SCOPE: frozenset[Action] = (frozenset(REBINDABLE_ACTIONS) - {Action.YANK}) | FIXED_ACTIONS
SEARCH_SCOPE: frozenset[Action] = frozenset(
    {
        Action.QUIT,
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.JUMP_UP,
        Action.JUMP_DOWN,
        Action.NAVIGATE_INTO,
        Action.EXIT_SEARCH,
    }
)
VISUAL_SCOPE: frozenset[Action] = frozenset(
    {
        Action.QUIT,
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.JUMP_UP,
        Action.JUMP_DOWN,
        Action.JUMP_TO_TOP,
        Action.JUMP_TO_BOTTOM,
        Action.YANK,
        Action.RESIZE_LEFT,
        Action.RESIZE_RIGHT,
        Action.EXIT_SEARCH,
    }
)
OVERLAY_SCOPE: frozenset[Action] = frozenset(
    {
        Action.QUIT,
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.JUMP_UP,
        Action.JUMP_DOWN,
        Action.JUMP_TO_TOP,
        Action.JUMP_TO_BOTTOM,
        Action.NAVIGATE_INTO,
        Action.EXIT_SEARCH,
    }
)
PREVIEW_SEARCH_SCOPE: frozenset[Action] = frozenset(
    {
        Action.QUIT,
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.NAVIGATE_INTO,
        Action.EXIT_SEARCH,
    }
)
EXPLORER_VISUAL_SCOPE: frozenset[Action] = _MOVES | {
    Action.QUIT,
    Action.VISUAL_MODE,
    Action.DOWNLOAD_MODE,
    Action.TOGGLE_SELECTION,
    Action.EXIT_SEARCH,
}
HELP_SCOPE: frozenset[Action] = _MOVES | {Action.QUIT, Action.TOGGLE_HELP, Action.EXIT_SEARCH}

ALL_SCOPES: tuple[frozenset[Action], ...] = (
    NORMAL_SCOPE - _PREVIEW_ONLY,
    NORMAL_SCOPE - _EXPLORER_ONLY,
    SEARCH_SCOPE,
    VISUAL_SCOPE,
    OVERLAY_SCOPE,
    PREVIEW_SEARCH_SCOPE,
    EXPLORER_VISUAL_SCOPE,
    HELP_SCOPE,
)


def scope_for(mode: Mode, focus: Focus = Focus.EXPLORER) -> frozenset[Action]:
    """Actions key resolution may produce in ``mode`` with ``focus``."""
    if isinstance(mode, SearchMode):
        return SEARCH_SCOPE
    if isinstance(mode, VisualPreviewMode):
        return VISUAL_SCOPE
    if isinstance(mode, PreviewSearchMode):
        return PREVIEW_SEARCH_SCOPE
    if isinstance(mode, ExplorerVisualMode):
        return EXPLORER_VISUAL_SCOPE
    if isinstance(mode, (HistoryOverlayMode, DownloadOverlayMode)):
        return OVERLAY_SCOPE
    if isinstance(mode, HelpOverlayMode):
        return HELP_SCOPE
    if focus is Focus.PREVIEW:
        return NORMAL_SCOPE - _EXPLORER_ONLY
    return NORMAL_SCOPE - _PREVIEW_ONLY


def accepts_text(mode: Mode) -> bool:
    return isinstance(mode, (SearchMode, PreviewSearchMode))


@dataclass(frozen=True)
class ViewSnapshot:
    """Everything a renderer needs to draw one frame."""

    mode: Mode
    focus: Focus
    path: str
    display_path: str
    entries: tuple[Entry, ...]
    selected_index: int | None
    filter_query: str
    listing_loading: bool
    listing_truncated: bool
    preview: PreviewContent | None
    preview_scroll: int
    preview_cursor: int
    visual_range: tuple[int, int] | None
    preview_width_percent: int
    history: tuple[str, ...]
    download_destinations: tuple[DownloadDestination, ...]
    status: StatusMessage | None
    pending_keys: str
    marked: frozenset[str] = frozenset()
    preview_query: str = ""
    preview_matches: tuple[int, ...] = ()
    help_lines: tuple[str, ...] = ()
    downloads: tuple[DownloadInfo, ...] = ()

    @property
    def selected_entry(self) -> Entry | None:
        if self.selected_index is None:
            return None
        return self.entries[self.selected_index]


__all__ = [
    "ALL_SCOPES",
    "DownloadInfo",
    "DownloadOverlayMode",
    "EXPLORER_VISUAL_SCOPE",
    "ExplorerVisualMode",
    "Focus",
    "HELP_SCOPE",
    "HelpOverlayMode",
    "HistoryOverlayMode",
    "Mode",
    "NORMAL",
    "NORMAL_SCOPE",
    "NormalMode",
    "OVERLAY_SCOPE",
    "PREVIEW_SEARCH_SCOPE",
    "PreviewSearchMode",
    "SEARCH_SCOPE",
    "SearchMode",
    "Severity",
    "StatusMessage",
    "VISUAL_SCOPE",
    "ViewSnapshot",
    "VisualPreviewMode",
    "accepts_text",
    "scope_for",
]
