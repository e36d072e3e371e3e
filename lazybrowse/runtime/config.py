"""TOML configuration: limits, download destinations and key bindings.

Loading never fails: an unreadable or malformed file falls back to the
built-in defaults and the problem is reported through ``AppConfig.warnings``.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

from ..actions import FIXED_ACTIONS, REBINDABLE_ACTIONS, Action
from ..input.key_registry import BindingTable
from ..input.keys import parse_sequence_spec
from .state import ALL_SCOPES

logger = logging.getLogger(__name__)

APP_NAME = "lazybrowse"
CONFIG_FILENAME = "config.toml"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

PREVIEW_WIDTH_MIN = 20
PREVIEW_WIDTH_MAX = 80
PREVIEW_WIDTH_STEP = 5

FIXED_BINDINGS: tuple[tuple[Action, str], ...] = (
    (Action.ENTER_SEARCH, "/"),
    (Action.EXIT_SEARCH, "Esc"),
    (Action.TOGGLE_HELP, "?"),
    (Action.TOGGLE_SELECTION, "Space"),
    (Action.PREVIEW_SEARCH_NEXT, "n"),
    (Action.PREVIEW_SEARCH_PREV, "N"),
)

DEFAULT_KEY_BINDINGS: dict[Action, tuple[str, ...]] = {
    Action.QUIT: ("Ctrl-c", "Ctrl-q"),
    Action.MOVE_UP: ("Up", "k"),
    Action.MOVE_DOWN: ("Down", "j"),
    Action.JUMP_UP: ("Ctrl-u", "K"),
    Action.JUMP_DOWN: ("Ctrl-d", "J"),
    Action.JUMP_TO_TOP: ("gg", "Home"),
    Action.JUMP_TO_BOTTOM: ("G", "End"),
    Action.NAVIGATE_INTO: ("Enter", "Right", "l"),
    Action.NAVIGATE_UP: ("Left", "h"),
    Action.CLEAR_SEARCH: ("Backspace",),
    Action.DOWNLOAD_MODE: ("s", "S"),
    Action.HISTORY_MODE: ("r", "R"),
    Action.COPY_PATH: ("y", "Y"),
    Action.TOGGLE_FOCUS: ("Tab",),
    Action.FOCUS_PREVIEW: ("Ctrl-l",),
    Action.FOCUS_EXPLORER: ("Ctrl-h",),
    Action.VISUAL_MODE: ("v",),
    Action.YANK: ("y",),
    Action.RESIZE_LEFT: ("H",),
    Action.RESIZE_RIGHT: ("L",),
}


class ConfigError(Exception):
    """The config file could not be read or parsed."""


@dataclass(frozen=True)
class DownloadDestination:
    name: str
    path: str


DEFAULT_DOWNLOAD_DESTINATIONS: tuple[DownloadDestination, ...] = (
    DownloadDestination("Downloads", os.path.expanduser("~/Downloads")),
    DownloadDestination("Temp", "/tmp"),
)


def _default_bindings() -> tuple[tuple[Action, tuple[str, ...]], ...]:
    return tuple((action, DEFAULT_KEY_BINDINGS[action]) for action in REBINDABLE_ACTIONS)


@dataclass(frozen=True)
class AppConfig:
    """Effective settings for one process lifetime."""

    preview_max_size: int = 102400
    preview_width_percent: int = 50
    status_message_timeout_secs: float = 5.0
    sequence_timeout_ms: int = 500
    max_list_pages: int = 100
    jump_size: int = 10
    download_destinations: tuple[DownloadDestination, ...] = DEFAULT_DOWNLOAD_DESTINATIONS
    key_bindings: tuple[tuple[Action, tuple[str, ...]], ...] = field(default_factory=_default_bindings)
    warnings: tuple[str, ...] = ()

    def binding_table(self) -> BindingTable:
        """Fixed bindings first, then ``key_bindings`` in declaration order."""
        specs = [(action, (spec,)) for action, spec in FIXED_BINDINGS]
        specs.extend(self.key_bindings)
        return BindingTable.from_specs(specs)

    def lint_warnings(self) -> list[str]:
        """Describe bindings where declaration order decides the winner."""
        return [overlap.describe() for overlap in self.binding_table().overlaps(ALL_SCOPES)]


def clamp_preview_width(percent: int) -> int:
    return max(PREVIEW_WIDTH_MIN, min(PREVIEW_WIDTH_MAX, int(percent)))


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _positive_int(data: dict, key: str, default: int, warnings: list[str]) -> int:
    if key not in data:
        return default
    value = data[key]
    if not _is_int(value) or value <= 0:
        warnings.append(f"{key}: expected a positive integer, got {value!r}")
        return default
    return int(value)


def _parse_destinations(value: object, warnings: list[str]) -> tuple[DownloadDestination, ...]:
    if not isinstance(value, list):
        warnings.append("download_destinations: expected an array of tables")
        return DEFAULT_DOWNLOAD_DESTINATIONS
    out: list[DownloadDestination] = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            warnings.append(f"download_destinations[{index}]: expected a table")
            continue
        name = item.get("name")
        path = item.get("path")
        if not isinstance(name, str) or not isinstance(path, str) or not name or not path:
            warnings.append(f"download_destinations[{index}]: needs string 'name' and 'path'")
            continue
        out.append(DownloadDestination(name=name, path=os.path.expanduser(path)))
    return tuple(out)


def _parse_key_bindings(
    value: object, warnings: list[str]
) -> tuple[tuple[Action, tuple[str, ...]], ...]:
    if not isinstance(value, dict):
        warnings.append("key_bindings: expected a table")
        return _default_bindings()

    declared: list[tuple[Action, tuple[str, ...]]] = []
    seen: set[Action] = set()
    for name, raw in value.items():
        try:
            action = Action(name)
        except ValueError:
            warnings.append(f"key_bindings: unknown action {name!r}")
            continue
        if action in FIXED_ACTIONS:
            warnings.append(f"key_bindings: {name!r} is fixed and cannot be rebound")
            continue
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list) or not all(isinstance(spec, str) for spec in raw):
            warnings.append(f"key_bindings.{name}: expected an array of strings")
            continue
        for spec in raw:
            if parse_sequence_spec(spec) is None:
                logger.debug("dropping unrecognized key spec %r for %s", spec, name)
        declared.append((action, tuple(raw)))
        seen.add(action)

    for action in REBINDABLE_ACTIONS:
        if action not in seen:
            declared.append((action, DEFAULT_KEY_BINDINGS[action]))
    return tuple(declared)


KNOWN_KEYS = frozenset(
    {
        "preview_max_size",
        "preview_width_percent",
        "status_message_timeout_secs",
        "sequence_timeout_ms",
        "max_list_pages",
        "jump_size",
        "download_destinations",
        "key_bindings",
    }
)


def parse_config(data: dict[str, object]) -> AppConfig:
    """Build an ``AppConfig`` from decoded TOML, ignoring invalid values."""
    warnings: list[str] = []
    for key in data:
        if key not in KNOWN_KEYS:
            warnings.append(f"unknown setting {key!r}")

    defaults = AppConfig()
    width = _positive_int(data, "preview_width_percent", defaults.preview_width_percent, warnings)
    timeout = defaults.status_message_timeout_secs
    if "status_message_timeout_secs" in data:
        raw_timeout = data["status_message_timeout_secs"]
        if isinstance(raw_timeout, (int, float)) and not isinstance(raw_timeout, bool) and raw_timeout > 0:
            timeout = float(raw_timeout)
        else:
            warnings.append(f"status_message_timeout_secs: expected a positive number, got {raw_timeout!r}")

    destinations = defaults.download_destinations
    if "download_destinations" in data:
        destinations = _parse_destinations(data["download_destinations"], warnings)
    bindings = defaults.key_bindings
    if "key_bindings" in data:
        bindings = _parse_key_bindings(data["key_bindings"], warnings)

    max_size = _positive_int(data, "preview_max_size", defaults.preview_max_size, warnings)
    sequence_ms = _positive_int(data, "sequence_timeout_ms", defaults.sequence_timeout_ms, warnings)
    max_pages = _positive_int(data, "max_list_pages", defaults.max_list_pages, warnings)
    jump = _positive_int(data, "jump_size", defaults.jump_size, warnings)

    for message in warnings:
        logger.warning("config: %s", message)

    return AppConfig(
        preview_max_size=max_size,
        preview_width_percent=clamp_preview_width(width),
        status_message_timeout_secs=timeout,
        sequence_timeout_ms=sequence_ms,
        max_list_pages=max_pages,
        jump_size=jump,
        download_destinations=destinations,
        key_bindings=bindings,
        warnings=tuple(warnings),
    )


def read_config_file(path: Path) -> dict[str, object]:
    """Decode ``path`` as TOML; raises ``ConfigError`` on any failure."""
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"{path}: {exc.strerror or exc}") from exc


def load_config(path: Path | None = None) -> AppConfig:
    """Load settings from ``path`` (default ``CONFIG_PATH``).

    A missing file yields plain defaults. A file that cannot be read or
    parsed yields defaults carrying one warning.
    """
    config_path = CONFIG_PATH if path is None else path
    if not config_path.exists():
        return AppConfig()
    try:
        data = read_config_file(config_path)
    except ConfigError as exc:
        logger.warning("config ignored: %s", exc)
        return AppConfig(warnings=(f"config ignored, using defaults: {exc}",))
    return parse_config(data)


__all__ = [
    "APP_NAME",
    "AppConfig",
    "CONFIG_PATH",
    "ConfigError",
    "DEFAULT_DOWNLOAD_DESTINATIONS",
    "DEFAULT_KEY_BINDINGS",
    "DownloadDestination",
    "FIXED_BINDINGS",
    "PREVIEW_WIDTH_MAX",
    "PREVIEW_WIDTH_MIN",
    "PREVIEW_WIDTH_STEP",
    "clamp_preview_width",
    "load_config",
    "parse_config",
    "read_config_file",
]
