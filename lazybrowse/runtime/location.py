"""Last visited location, persisted as JSON between runs.

All access is defensive: a missing or malformed file reads as ``None`` and
write failures are ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_state_dir

from .config import APP_NAME

logger = logging.getLogger(__name__)

LOCATION_FILENAME = "location.json"
LOCATION_PATH = Path(user_state_dir(APP_NAME, appauthor=False)) / LOCATION_FILENAME


def load_last_location() -> str | None:
    try:
        data = json.loads(LOCATION_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    value = data.get("last_location")
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def save_last_location(location: str) -> None:
    try:
        LOCATION_PATH.parent.mkdir(parents=True, exist_ok=True)
        LOCATION_PATH.write_text(json.dumps({"last_location": location}, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.debug("could not save last location: %s", exc)


__all__ = ["LOCATION_PATH", "load_last_location", "save_last_location"]
