"""Composition of backend, controller, terminal and loop for one session."""

from __future__ import annotations

import logging
import sys

from ..backend.base import ResourceBackend
from .config import AppConfig
from .controller import ModeController
from .dispatch import BackgroundDispatcher
from .history import HistoryStore
from .location import save_last_location
from .loop import RuntimeLoopTiming, run_main_loop
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def run_browser(
    backend: ResourceBackend,
    config: AppConfig,
    timing: RuntimeLoopTiming | None = None,
) -> str:
    """Browse ``backend`` interactively and return the final display path.

    The final location is also persisted for ``--restore``.
    """
    dispatcher = BackgroundDispatcher()
    controller = ModeController(
        backend,
        config,
        dispatcher=dispatcher,
        history=HistoryStore(),
    )
    terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
    try:
        run_main_loop(controller, terminal, timing)
    finally:
        dispatcher.close()
        location = controller.current_display_path
        save_last_location(location)
        logger.info("session ended at %s", location)
    return location


__all__ = ["run_browser"]
