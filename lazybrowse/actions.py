"""Closed action vocabulary shared by key bindings and the mode controller."""

from __future__ import annotations

from enum import Enum


class Action(Enum):
    """User-level intents produced by key resolution.

    Enum values double as the ``[key_bindings]`` config names. Declaration
    order here is the tie-break order for actions absent from the config file.
    """

    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    JUMP_UP = "jump_up"
    JUMP_DOWN = "jump_down"
    JUMP_TO_TOP = "jump_to_top"
    JUMP_TO_BOTTOM = "jump_to_bottom"
    NAVIGATE_INTO = "navigate_into"
    NAVIGATE_UP = "navigate_up"
    CLEAR_SEARCH = "clear_search"
    DOWNLOAD_MODE = "download_mode"
    HISTORY_MODE = "history_mode"
    COPY_PATH = "copy_path"
    TOGGLE_FOCUS = "toggle_focus"
    FOCUS_PREVIEW = "focus_preview"
    FOCUS_EXPLORER = "focus_explorer"
    VISUAL_MODE = "visual_mode"
    YANK = "yank"
    RESIZE_LEFT = "resize_left"
    RESIZE_RIGHT = "resize_right"
    # Fixed bindings; never read from config.
    ENTER_SEARCH = "enter_search"
    EXIT_SEARCH = "exit_search"
    TOGGLE_HELP = "toggle_help"
    TOGGLE_SELECTION = "toggle_selection"
    PREVIEW_SEARCH_NEXT = "preview_search_next"
    PREVIEW_SEARCH_PREV = "preview_search_prev"


FIXED_ACTIONS: frozenset[Action] = frozenset(
    {
        Action.ENTER_SEARCH,
        Action.EXIT_SEARCH,
        Action.TOGGLE_HELP,
        Action.TOGGLE_SELECTION,
        Action.PREVIEW_SEARCH_NEXT,
        Action.PREVIEW_SEARCH_PREV,
    }
)

REBINDABLE_ACTIONS: tuple[Action, ...] = tuple(action for action in Action if action not in FIXED_ACTIONS)

# One-line descriptions for the help overlay.
ACTION_HELP: dict[Action, str] = {
    Action.QUIT: "quit",
    Action.MOVE_UP: "move up",
    Action.MOVE_DOWN: "move down",
    Action.JUMP_UP: "jump up",
    Action.JUMP_DOWN: "jump down",
    Action.JUMP_TO_TOP: "jump to top",
    Action.JUMP_TO_BOTTOM: "jump to bottom",
    Action.NAVIGATE_INTO: "open directory (widen preview when focused)",
    Action.NAVIGATE_UP: "parent directory (narrow preview when focused)",
    Action.CLEAR_SEARCH: "clear filter",
    Action.DOWNLOAD_MODE: "download selection",
    Action.HISTORY_MODE: "recent locations",
    Action.COPY_PATH: "copy current path",
    Action.TOGGLE_FOCUS: "switch pane",
    Action.FOCUS_PREVIEW: "focus preview",
    Action.FOCUS_EXPLORER: "focus explorer",
    Action.VISUAL_MODE: "visual selection",
    Action.YANK: "copy selected lines",
    Action.RESIZE_LEFT: "widen preview",
    Action.RESIZE_RIGHT: "narrow preview",
    Action.ENTER_SEARCH: "filter entries, or search the focused preview",
    Action.EXIT_SEARCH: "cancel; cancels downloads or clears marks in normal mode",
    Action.TOGGLE_HELP: "toggle this help",
    Action.TOGGLE_SELECTION: "mark or unmark file",
    Action.PREVIEW_SEARCH_NEXT: "next preview match",
    Action.PREVIEW_SEARCH_PREV: "previous preview match",
}


__all__ = [
    "ACTION_HELP",
    "Action",
    "FIXED_ACTIONS",
    "REBINDABLE_ACTIONS",
]
