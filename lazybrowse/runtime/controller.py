"""Top-level navigation state machine.

The controller owns mode, focus, cursors and the search query. Resolved
actions mutate that state directly or start backend work through the
dispatcher; finished work is applied only by ``pump``. Nothing here touches
the terminal: renderers consume ``snapshot()``.
"""

from __future__ import annotations

import logging
import posixpath
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..actions import Action
from ..backend.base import ResourceBackend
from ..backend.types import (
    BackendError,
    DownloadCancelled,
    DownloadTreeResult,
    Entry,
    ListResult,
    PreviewContent,
    TextPreview,
    TransferMonitor,
)
from ..input.keys import Chord, format_sequence
from ..input.resolver import KeyResolver, Resolution
from ..preview.cache import PREVIEW_JOB, PreviewCache
from ..search.fuzzy import FuzzyFilter
from ..search.text import match_from, match_position, matching_lines, step_match
from .app_helpers import copy_text_to_clipboard
from .config import PREVIEW_WIDTH_STEP, AppConfig, DownloadDestination, clamp_preview_width
from .dispatch import BackgroundDispatcher, Completion, Dispatcher
from .help import help_lines
from .history import HistoryStore
from .state import (
    NORMAL,
    DownloadInfo,
    DownloadOverlayMode,
    ExplorerVisualMode,
    Focus,
    HelpOverlayMode,
    HistoryOverlayMode,
    Mode,
    PreviewSearchMode,
    SearchMode,
    Severity,
    StatusMessage,
    ViewSnapshot,
    VisualPreviewMode,
    accepts_text,
    scope_for,
)

logger = logging.getLogger(__name__)

LISTING_JOB = "listing"
DOWNLOAD_JOB = "download"

DEFAULT_VIEWPORT_ROWS = 20
# Lines kept above a search match when it is scrolled into view.
MATCH_CONTEXT_LINES = 5

_MOVE_ACTIONS = frozenset(
    {
        Action.MOVE_UP,
        Action.MOVE_DOWN,
        Action.JUMP_UP,
        Action.JUMP_DOWN,
        Action.JUMP_TO_TOP,
        Action.JUMP_TO_BOTTOM,
    }
)


@dataclass(frozen=True)
class ListingIntent:
    """What to do when a listing request succeeds."""

    path: str
    record_history: bool = False
    select_name: str | None = None


@dataclass(frozen=True)
class DownloadJob:
    """One dispatched download.

    ``files`` is set for a batch of marked files; ``source`` is then the
    directory they were marked in.
    """

    source: str
    destination: DownloadDestination
    is_tree: bool
    files: tuple[str, ...] = ()
    serial: int = 0
    monitor: TransferMonitor = field(default_factory=TransferMonitor, compare=False)

    @property
    def is_batch(self) -> bool:
        return bool(self.files)


def _entry_label(entry: Entry) -> str:
    return entry.name


def move_index(index: int, count: int, action: Action, jump: int) -> int:
    """Apply one move/jump action to ``index`` within ``[0, count)``."""
    if count <= 0:
        return 0
    if action is Action.MOVE_UP:
        index -= 1
    elif action is Action.MOVE_DOWN:
        index += 1
    elif action is Action.JUMP_UP:
        index -= jump
    elif action is Action.JUMP_DOWN:
        index += jump
    elif action is Action.JUMP_TO_TOP:
        index = 0
    elif action is Action.JUMP_TO_BOTTOM:
        index = count - 1
    return max(0, min(count - 1, index))


class ModeController:
    """Apply resolved actions and backend completions to browser state."""

    def __init__(
        self,
        backend: ResourceBackend,
        config: AppConfig | None = None,
        *,
        dispatcher: Dispatcher | None = None,
        history: HistoryStore | None = None,
        clipboard: Callable[[str], bool] = copy_text_to_clipboard,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.config = config if config is not None else AppConfig()
        self.dispatcher: Dispatcher = dispatcher if dispatcher is not None else BackgroundDispatcher()
        self.history = history if history is not None else HistoryStore()
        self.clipboard = clipboard
        self.clock = clock

        self.resolver = KeyResolver(
            self.config.binding_table(),
            self.config.sequence_timeout_ms / 1000.0,
            clock,
        )
        self.cache = PreviewCache(backend, self.dispatcher, self.config.preview_max_size)
        self.fuzzy: FuzzyFilter[Entry] = FuzzyFilter(_entry_label)

        self.mode: Mode = NORMAL
        self.focus = Focus.EXPLORER
        self.path = backend.root_path
        self.listing: ListResult | None = None
        self.filter_query = ""
        self.visible: tuple[Entry, ...] = ()
        self.cursor = 0
        self.preview_cursor = 0
        self.preview_scroll = 0
        self.preview_width_percent = clamp_preview_width(self.config.preview_width_percent)
        self.viewport_rows = DEFAULT_VIEWPORT_ROWS
        self.status: StatusMessage | None = None
        self.quit_requested = False
        self.marked: set[str] = set()
        self.preview_query = ""
        self.help_lines = help_lines(self.resolver.table)

        self._listing_serial = 0
        self._listing_intents: dict[int, ListingIntent] = {}
        self._visual_base: frozenset[str] = frozenset()
        self._download_serial = 0
        self._downloads: dict[int, DownloadJob] = {}
        self._match_memo: tuple[str, PreviewContent | None, tuple[int, ...]] = ("", None, ())

    def start(self) -> None:
        """Surface config problems and request the initial listing."""
        for message in self.config.lint_warnings():
            logger.warning("key bindings: %s", message)
        if self.config.warnings:
            self.set_status(self.config.warnings[0], Severity.WARNING)
        self._request_listing(ListingIntent(self.path))

    @property
    def current_path(self) -> str:
        return self.path

    @property
    def current_display_path(self) -> str:
        return self.backend.display_path(self.path)

    @property
    def listing_loading(self) -> bool:
        return self._listing_serial in self._listing_intents

    def set_viewport(self, rows: int) -> None:
        self.viewport_rows = max(1, rows)
        self._keep_preview_cursor_visible()

    def set_status(self, text: str, severity: Severity = Severity.INFO) -> None:
        expires_at = self.clock() + self.config.status_message_timeout_secs
        self.status = StatusMessage(text=text, severity=severity, expires_at=expires_at)

    def _expire_status(self, now: float) -> None:
        if self.status is not None and self.status.expired(now):
            self.status = None

    def handle_chord(self, chord: Chord, now: float | None = None) -> None:
        if now is None:
            now = self.clock()
        resolutions = self.resolver.feed(
            chord,
            accepts=scope_for(self.mode, self.focus),
            text_input=accepts_text(self.mode),
            now=now,
        )
        for resolution in resolutions:
            self.apply(resolution)

    def tick(self, now: float | None = None) -> None:
        """Expire the pending key sequence and the status line."""
        if now is None:
            now = self.clock()
        resolutions = self.resolver.tick(
            now,
            accepts=scope_for(self.mode, self.focus),
            text_input=accepts_text(self.mode),
        )
        for resolution in resolutions:
            self.apply(resolution)
        self._expire_status(now)

    def apply(self, resolution: Resolution) -> None:
        mode = self.mode
        if isinstance(mode, SearchMode):
            self._apply_search(mode, resolution)
        elif isinstance(mode, VisualPreviewMode):
            self._apply_visual(mode, resolution)
        elif isinstance(mode, HistoryOverlayMode):
            self._apply_history_overlay(mode, resolution)
        elif isinstance(mode, DownloadOverlayMode):
            self._apply_download_overlay(mode, resolution)
        elif isinstance(mode, PreviewSearchMode):
            self._apply_preview_search(mode, resolution)
        elif isinstance(mode, ExplorerVisualMode):
            self._apply_explorer_visual(mode, resolution)
        elif isinstance(mode, HelpOverlayMode):
            self._apply_help(mode, resolution)
        else:
            self._apply_normal(resolution)

    def _apply_normal(self, resolution: Resolution) -> None:
        action = resolution.action
        if action is None:
            return
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.ENTER_SEARCH:
            if self.focus is Focus.PREVIEW:
                self.mode = PreviewSearchMode(origin=self.preview_cursor)
                self.preview_query = ""
            else:
                self.mode = SearchMode(self.filter_query)
        elif action is Action.EXIT_SEARCH:
            self._escape_normal()
        elif action is Action.TOGGLE_HELP:
            self.mode = HelpOverlayMode()
        elif action is Action.TOGGLE_SELECTION:
            self.toggle_mark()
        elif action is Action.PREVIEW_SEARCH_NEXT:
            self._step_preview_match(forward=True)
        elif action is Action.PREVIEW_SEARCH_PREV:
            self._step_preview_match(forward=False)
        elif action in _MOVE_ACTIONS:
            if self.focus is Focus.PREVIEW:
                self._move_preview(action)
            else:
                self._move_explorer(action)
        elif action is Action.NAVIGATE_INTO:
            if self.focus is Focus.PREVIEW:
                self._resize_preview(PREVIEW_WIDTH_STEP)
            else:
                self.navigate_into()
        elif action is Action.NAVIGATE_UP:
            if self.focus is Focus.PREVIEW:
                self._resize_preview(-PREVIEW_WIDTH_STEP)
            else:
                self.navigate_up()
        elif action is Action.CLEAR_SEARCH:
            if self.filter_query:
                self._set_filter("")
        elif action is Action.DOWNLOAD_MODE:
            self._open_download_overlay()
        elif action is Action.HISTORY_MODE:
            if not self.history:
                self.set_status("History is empty")
                return
            self.focus = Focus.EXPLORER
            self.mode = HistoryOverlayMode(0)
        elif action is Action.COPY_PATH:
            self._copy(self.current_display_path, f"Copied {self.current_display_path}")
        elif action is Action.TOGGLE_FOCUS:
            self.focus = Focus.PREVIEW if self.focus is Focus.EXPLORER else Focus.EXPLORER
        elif action is Action.FOCUS_PREVIEW:
            self.focus = Focus.PREVIEW
        elif action is Action.FOCUS_EXPLORER:
            self.focus = Focus.EXPLORER
        elif action is Action.VISUAL_MODE:
            self._enter_visual()
        elif action is Action.RESIZE_LEFT:
            self._resize_preview(PREVIEW_WIDTH_STEP)
        elif action is Action.RESIZE_RIGHT:
            self._resize_preview(-PREVIEW_WIDTH_STEP)

    def _resize_preview(self, delta: int) -> None:
        self.preview_width_percent = clamp_preview_width(self.preview_width_percent + delta)

    def _copy(self, text: str, success: str) -> bool:
        if self.clipboard(text):
            self.set_status(success, Severity.SUCCESS)
            return True
        self.set_status("Clipboard unavailable", Severity.ERROR)
        return False

    def selected_entry(self) -> Entry | None:
        if not self.visible:
            return None
        return self.visible[self.cursor]

    def _move_explorer(self, action: Action) -> None:
        target = move_index(self.cursor, len(self.visible), action, self.config.jump_size)
        if target != self.cursor:
            self.cursor = target
            self._selection_changed()

    def _selection_changed(self) -> None:
        self.preview_cursor = 0
        self.preview_scroll = 0
        self.preview_query = ""
        entry = self.selected_entry()
        if entry is not None:
            self.cache.request(entry.path, is_dir=entry.is_dir)

    def _active_query(self) -> str:
        mode = self.mode
        if isinstance(mode, SearchMode):
            return mode.query
        return self.filter_query

    def _refilter(self, keep: Entry | None = None) -> None:
        entries = self.listing.entries if self.listing is not None else ()
        self.visible = tuple(self.fuzzy.filter(self._active_query(), entries))
        cursor = 0
        if keep is not None and keep in self.visible:
            cursor = self.visible.index(keep)
        self.cursor = cursor
        self._selection_changed()

    def _set_filter(self, query: str) -> None:
        keep = self.selected_entry()
        self.filter_query = query
        self._refilter(keep)

    def navigate_into(self, entry: Entry | None = None) -> bool:
        """Start listing the selected directory; files are left alone."""
        entry = entry if entry is not None else self.selected_entry()
        if entry is None or not entry.is_dir:
            return False
        self._request_listing(ListingIntent(entry.path, record_history=True))
        return True

    def navigate_up(self) -> bool:
        parent = self.backend.parent(self.path)
        if parent is None:
            self.set_status("Already at the top")
            return False
        self._request_listing(ListingIntent(parent, select_name=self.backend.name_of(self.path)))
        return True

    def navigate_to(self, path: str, *, record_history: bool = True) -> None:
        self._request_listing(ListingIntent(path, record_history=record_history))

    def _request_listing(self, intent: ListingIntent) -> None:
        self._listing_serial += 1
        serial = self._listing_serial
        self._listing_intents = {serial: intent}
        backend = self.backend
        self.dispatcher.submit(LISTING_JOB, serial, lambda: backend.list(intent.path))

    def _apply_listing(self, completion: Completion) -> bool:
        serial = completion.token
        intent = self._listing_intents.pop(serial, None)
        if intent is None or serial != self._listing_serial:
            logger.debug("dropping stale listing completion %s", serial)
            return False

        if completion.error is not None:
            error = completion.error
            if isinstance(error, BackendError):
                message = error.message
            else:
                message = str(error) or type(error).__name__
                logger.warning("listing %s failed: %r", intent.path, error)
            self.set_status(f"Cannot open {self.backend.display_path(intent.path)}: {message}", Severity.ERROR)
            return True

        result = completion.value
        assert isinstance(result, ListResult)
        if result.path != self.path or self.listing is None:
            self.cache.clear()
            self.marked.clear()
        if isinstance(self.mode, (ExplorerVisualMode, VisualPreviewMode, PreviewSearchMode)):
            self.mode = NORMAL
        self.path = result.path
        self.listing = result
        self.filter_query = ""
        if intent.record_history:
            self.history.record(result.path)
        if result.truncated:
            self.set_status(
                f"Listing truncated after {self.config.max_list_pages} pages",
                Severity.WARNING,
            )

        keep: Entry | None = None
        if intent.select_name is not None:
            keep = next((entry for entry in result.entries if entry.name == intent.select_name), None)
        self._refilter(keep)
        return True

    def _apply_search(self, mode: SearchMode, resolution: Resolution) -> None:
        action = resolution.action
        chord = resolution.chord
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.EXIT_SEARCH:
            self.mode = NORMAL
            self.filter_query = ""
            self._refilter(self.selected_entry())
        elif action is Action.NAVIGATE_INTO or (action is None and chord.key == "Enter" and not chord.ctrl):
            self._commit_search(mode)
        elif action in _MOVE_ACTIONS:
            self._move_explorer(action)
        elif action is None:
            self._edit_query(mode, chord)

    def _edit_query(self, mode: SearchMode, chord: Chord) -> None:
        if chord.key == "Backspace" and not chord.ctrl and not chord.alt:
            if not mode.query:
                return
            query = mode.query[:-1]
        elif chord.is_text:
            query = mode.query + chord.key
        else:
            return
        self.mode = SearchMode(query)
        self._refilter()

    def _commit_search(self, mode: SearchMode) -> None:
        self.mode = NORMAL
        self.filter_query = mode.query
        entry = self.selected_entry()
        if entry is not None and entry.is_dir:
            self.navigate_into(entry)

    def current_preview(self) -> PreviewContent | None:
        entry = self.selected_entry()
        if entry is None:
            return None
        return self.cache.get(entry.path)

    def _preview_line_count(self) -> int:
        preview = self.current_preview()
        if isinstance(preview, TextPreview):
            return len(preview.lines)
        return 0

    def _move_preview(self, action: Action) -> None:
        count = self._preview_line_count()
        self.preview_cursor = move_index(self.preview_cursor, count, action, self.config.jump_size)
        self._keep_preview_cursor_visible()

    def _keep_preview_cursor_visible(self) -> None:
        rows = self.viewport_rows
        if self.preview_cursor < self.preview_scroll:
            self.preview_scroll = self.preview_cursor
        elif self.preview_cursor >= self.preview_scroll + rows:
            self.preview_scroll = self.preview_cursor - rows + 1
        self.preview_scroll = max(0, self.preview_scroll)

    def _enter_visual(self) -> None:
        if self.focus is not Focus.PREVIEW:
            self._enter_explorer_visual()
            return
        if self._preview_line_count() == 0:
            self.set_status("Nothing to select", Severity.WARNING)
            return
        self.mode = VisualPreviewMode(anchor=self.preview_cursor)

    def visual_range(self) -> tuple[int, int] | None:
        mode = self.mode
        if not isinstance(mode, VisualPreviewMode):
            return None
        return min(mode.anchor, self.preview_cursor), max(mode.anchor, self.preview_cursor)

    def _apply_visual(self, mode: VisualPreviewMode, resolution: Resolution) -> None:
        action = resolution.action
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.EXIT_SEARCH:
            self.mode = NORMAL
        elif action in _MOVE_ACTIONS:
            self._move_preview(action)
        elif action is Action.YANK:
            self._yank()
        elif action is Action.RESIZE_LEFT:
            self._resize_preview(PREVIEW_WIDTH_STEP)
        elif action is Action.RESIZE_RIGHT:
            self._resize_preview(-PREVIEW_WIDTH_STEP)

    def _yank(self) -> None:
        preview = self.current_preview()
        selection = self.visual_range()
        self.mode = NORMAL
        if not isinstance(preview, TextPreview) or selection is None:
            return
        start, end = selection
        lines = preview.lines[start : end + 1]
        noun = "line" if len(lines) == 1 else "lines"
        self._copy("\n".join(lines), f"Copied {len(lines)} {noun}")

    def _active_preview_query(self) -> str:
        mode = self.mode
        if isinstance(mode, PreviewSearchMode):
            return mode.query
        return self.preview_query

    def preview_matches(self) -> tuple[int, ...]:
        """Line indices of the current preview matching the preview search."""
        query = self._active_preview_query()
        preview = self.current_preview()
        memo_query, memo_preview, memo_matches = self._match_memo
        if query == memo_query and preview is memo_preview:
            return memo_matches
        lines = preview.lines if isinstance(preview, TextPreview) else ()
        matches = matching_lines(lines, query)
        self._match_memo = (query, preview, matches)
        return matches

    def _reveal_line(self, line: int) -> None:
        self.preview_cursor = line
        top = max(0, line - MATCH_CONTEXT_LINES)
        bottom = max(0, self._preview_line_count() - self.viewport_rows)
        self.preview_scroll = min(top, bottom)
        self._keep_preview_cursor_visible()

    def _apply_preview_search(self, mode: PreviewSearchMode, resolution: Resolution) -> None:
        action = resolution.action
        chord = resolution.chord
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.EXIT_SEARCH:
            self.mode = NORMAL
            self.preview_query = ""
            self.preview_cursor = mode.origin
            self._keep_preview_cursor_visible()
        elif action is Action.NAVIGATE_INTO or (action is None and chord.key == "Enter" and not chord.ctrl):
            self.mode = NORMAL
            self.preview_query = mode.query
            self._report_match()
        elif action in (Action.MOVE_DOWN, Action.MOVE_UP):
            target = step_match(self.preview_matches(), self.preview_cursor, forward=action is Action.MOVE_DOWN)
            if target is not None:
                self._reveal_line(target)
        elif action is None:
            self._edit_preview_query(mode, chord)

    def _edit_preview_query(self, mode: PreviewSearchMode, chord: Chord) -> None:
        if chord.key == "Backspace" and not chord.ctrl and not chord.alt:
            if not mode.query:
                return
            query = mode.query[:-1]
        elif chord.is_text:
            query = mode.query + chord.key
        else:
            return
        self.mode = PreviewSearchMode(query, mode.origin)
        target = match_from(self.preview_matches(), mode.origin)
        if target is None:
            self.preview_cursor = mode.origin
            self._keep_preview_cursor_visible()
        else:
            self._reveal_line(target)

    def _report_match(self) -> None:
        query = self.preview_query
        if not query:
            return
        matches = self.preview_matches()
        if not matches:
            self.set_status(f"No matches for {query}", Severity.WARNING)
            return
        position = match_position(matches, self.preview_cursor)
        if position is not None:
            self.set_status(f"Match {position} of {len(matches)}")

    def _step_preview_match(self, forward: bool) -> None:
        if not self.preview_query:
            self.set_status("No preview search; press / in the preview first")
            return
        target = step_match(self.preview_matches(), self.preview_cursor, forward)
        if target is not None:
            self._reveal_line(target)
        self._report_match()

    def toggle_mark(self) -> None:
        """Mark or unmark the selected file for a batch download."""
        if isinstance(self.mode, ExplorerVisualMode):
            self.mode = NORMAL
        entry = self.selected_entry()
        if entry is None:
            return
        if entry.is_dir:
            self.set_status("Cannot select directories", Severity.WARNING)
            return
        if entry.path in self.marked:
            self.marked.discard(entry.path)
        else:
            self.marked.add(entry.path)
        self._report_marks()

    def _report_marks(self) -> None:
        count = len(self.marked)
        if count:
            noun = "file" if count == 1 else "files"
            self.set_status(f"{count} {noun} selected")
        else:
            self.set_status("Selection cleared")

    def _enter_explorer_visual(self) -> None:
        entry = self.selected_entry()
        if entry is None:
            return
        if entry.is_dir:
            self.set_status("Cannot select directories", Severity.WARNING)
            return
        self._visual_base = frozenset(self.marked)
        self.mode = ExplorerVisualMode(anchor=self.cursor)
        self._mark_visual_range()

    def _mark_visual_range(self) -> None:
        mode = self.mode
        if not isinstance(mode, ExplorerVisualMode):
            return
        low, high = sorted((mode.anchor, self.cursor))
        marked = set(self._visual_base)
        marked.update(entry.path for entry in self.visible[low : high + 1] if not entry.is_dir)
        self.marked = marked

    def _apply_explorer_visual(self, mode: ExplorerVisualMode, resolution: Resolution) -> None:
        action = resolution.action
        if action is Action.QUIT:
            self.quit_requested = True
        elif action in (Action.EXIT_SEARCH, Action.VISUAL_MODE):
            self.mode = NORMAL
            self._report_marks()
        elif action in _MOVE_ACTIONS:
            self._move_explorer(action)
            self._mark_visual_range()
        elif action is Action.TOGGLE_SELECTION:
            self.toggle_mark()
        elif action is Action.DOWNLOAD_MODE:
            self.mode = NORMAL
            self._open_download_overlay()

    def _escape_normal(self) -> None:
        """Esc outside any mode: cancel downloads, else drop marks, else the preview search."""
        if self._downloads:
            self.cancel_downloads()
        elif self.marked:
            self.marked.clear()
            self.set_status("Selection cleared")
        elif self.preview_query:
            self.preview_query = ""

    def _apply_help(self, mode: HelpOverlayMode, resolution: Resolution) -> None:
        action = resolution.action
        if action is Action.QUIT:
            self.quit_requested = True
        elif action in (Action.TOGGLE_HELP, Action.EXIT_SEARCH):
            self.mode = NORMAL
        elif action in _MOVE_ACTIONS:
            # One body row holds the overlay title.
            last = max(0, len(self.help_lines) - (self.viewport_rows - 1))
            self.mode = HelpOverlayMode(move_index(mode.scroll, last + 1, action, self.config.jump_size))

    def _overlay_confirm(self, resolution: Resolution) -> bool:
        if resolution.action is Action.NAVIGATE_INTO:
            return True
        chord = resolution.chord
        return resolution.action is None and chord.key == "Enter" and not chord.ctrl

    def _apply_history_overlay(self, mode: HistoryOverlayMode, resolution: Resolution) -> None:
        action = resolution.action
        paths = self.history.list()
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.EXIT_SEARCH:
            self.mode = NORMAL
        elif action in _MOVE_ACTIONS:
            self.mode = HistoryOverlayMode(move_index(mode.cursor, len(paths), action, self.config.jump_size))
        elif self._overlay_confirm(resolution):
            self.mode = NORMAL
            if 0 <= mode.cursor < len(paths):
                self.navigate_to(paths[mode.cursor])

    def _open_download_overlay(self) -> None:
        if self.selected_entry() is None and not self.marked:
            self.set_status("Nothing selected to download", Severity.WARNING)
            return
        if not self.config.download_destinations:
            self.set_status("No download destinations configured", Severity.WARNING)
            return
        self.focus = Focus.EXPLORER
        self.mode = DownloadOverlayMode(0)

    def _apply_download_overlay(self, mode: DownloadOverlayMode, resolution: Resolution) -> None:
        action = resolution.action
        destinations = self.config.download_destinations
        if action is Action.QUIT:
            self.quit_requested = True
        elif action is Action.EXIT_SEARCH:
            self.mode = NORMAL
        elif action in _MOVE_ACTIONS:
            cursor = move_index(mode.cursor, len(destinations), action, self.config.jump_size)
            self.mode = DownloadOverlayMode(cursor)
        elif self._overlay_confirm(resolution):
            self.mode = NORMAL
            if not 0 <= mode.cursor < len(destinations):
                return
            destination = destinations[mode.cursor]
            if self.marked:
                self.start_batch_download(sorted(self.marked), destination)
                self.marked.clear()
                return
            entry = self.selected_entry()
            if entry is not None:
                self.start_download(entry, destination)

    def _submit_download(self, job: DownloadJob, run: Callable[[], object]) -> None:
        self._downloads[job.serial] = job
        self.dispatcher.submit(DOWNLOAD_JOB, job, run)

    def _next_download_serial(self) -> int:
        self._download_serial += 1
        return self._download_serial

    def start_download(self, entry: Entry, destination: DownloadDestination) -> None:
        backend = self.backend
        job = DownloadJob(
            source=entry.path,
            destination=destination,
            is_tree=entry.is_dir,
            serial=self._next_download_serial(),
        )
        target = posixpath.join(destination.path, entry.name)

        def run() -> object:
            if entry.is_dir:
                return backend.download_tree(entry.path, destination.path, job.monitor)
            return backend.download_file(entry.path, target, job.monitor)

        self.set_status(f"Downloading {entry.name} to {destination.name}")
        self._submit_download(job, run)

    def start_batch_download(self, paths: list[str], destination: DownloadDestination) -> None:
        """Download marked files side by side into ``destination``."""
        backend = self.backend
        job = DownloadJob(
            source=self.path,
            destination=destination,
            is_tree=False,
            files=tuple(paths),
            serial=self._next_download_serial(),
        )

        def run() -> object:
            return backend.download_files(job.files, destination.path, job.monitor)

        self.set_status(f"Downloading {len(paths)} files to {destination.name}")
        self._submit_download(job, run)

    def cancel_downloads(self) -> int:
        """Ask every running download to stop; return how many were asked."""
        pending = [job for job in self._downloads.values() if not job.monitor.cancelled]
        for job in pending:
            job.monitor.cancel()
        if pending:
            noun = "download" if len(pending) == 1 else "downloads"
            self.set_status(f"Cancelling {len(pending)} {noun}", Severity.WARNING)
        return len(pending)

    def _download_label(self, job: DownloadJob) -> str:
        if job.is_batch:
            return f"{len(job.files)} files"
        return self.backend.name_of(job.source) or self.backend.display_path(job.source)

    def _apply_download(self, completion: Completion) -> bool:
        job = completion.token
        assert isinstance(job, DownloadJob)
        self._downloads.pop(job.serial, None)
        name = self._download_label(job)
        if isinstance(completion.error, DownloadCancelled):
            self.set_status(f"Download of {name} cancelled", Severity.WARNING)
            return True
        if completion.error is not None:
            logger.warning("download of %s failed: %s", job.source, completion.error)
            self.set_status(f"Download of {name} failed: {completion.error}", Severity.ERROR)
            return True
        if not job.is_tree and not job.is_batch:
            self.set_status(f"Downloaded {name} to {completion.value}", Severity.SUCCESS)
            return True
        result = completion.value
        assert isinstance(result, DownloadTreeResult)
        origin = "" if job.is_batch else f" from {name}"
        if result.failed:
            self.set_status(
                f"Downloaded {result.written} files{origin}, {result.failed} failed",
                Severity.WARNING,
            )
        else:
            self.set_status(
                f"Downloaded {result.written} files{origin} to {job.destination.name}",
                Severity.SUCCESS,
            )
        return True

    def download_progress(self) -> tuple[DownloadInfo, ...]:
        return tuple(
            DownloadInfo(
                label=self._download_label(job),
                bytes_done=job.monitor.bytes_done,
                files_done=job.monitor.files_done,
                cancelling=job.monitor.cancelled,
            )
            for job in self._downloads.values()
        )

    def pump(self) -> bool:
        """Apply finished background work; return whether anything changed."""
        changed = False
        for completion in self.dispatcher.drain():
            if completion.kind == LISTING_JOB:
                changed = self._apply_listing(completion) or changed
            elif completion.kind == PREVIEW_JOB:
                changed = self.cache.apply(completion) is not None or changed
            elif completion.kind == DOWNLOAD_JOB:
                changed = self._apply_download(completion) or changed
            else:
                logger.debug("ignoring completion of unknown kind %s", completion.kind)
        return changed

    def snapshot(self) -> ViewSnapshot:
        entry = self.selected_entry()
        return ViewSnapshot(
            mode=self.mode,
            focus=self.focus,
            path=self.path,
            display_path=self.current_display_path,
            entries=self.visible,
            selected_index=self.cursor if entry is not None else None,
            filter_query=self._active_query(),
            listing_loading=self.listing_loading,
            listing_truncated=bool(self.listing and self.listing.truncated),
            preview=self.current_preview(),
            preview_scroll=self.preview_scroll,
            preview_cursor=self.preview_cursor,
            visual_range=self.visual_range(),
            preview_width_percent=self.preview_width_percent,
            history=tuple(self.backend.display_path(path) for path in self.history.list()),
            download_destinations=self.config.download_destinations,
            status=self.status,
            pending_keys=format_sequence(self.resolver.pending),
            marked=frozenset(self.marked),
            preview_query=self._active_preview_query(),
            preview_matches=self.preview_matches(),
            help_lines=self.help_lines,
            downloads=self.download_progress(),
        )


__all__ = [
    "DOWNLOAD_JOB",
    "DownloadJob",
    "LISTING_JOB",
    "ListingIntent",
    "ModeController",
    "move_index",
]
