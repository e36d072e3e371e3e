"""Runtime orchestration: controller, config, dispatch and the event loop.

Entry points are imported lazily so that lower layers can import the
dispatcher without pulling in the controller.
"""

from __future__ import annotations


def run_browser(*args, **kwargs):
    """Lazily import browser entrypoint to avoid heavy runtime bootstrap on import."""
    from .app import run_browser as _run_browser

    return _run_browser(*args, **kwargs)


def run_main_loop(*args, **kwargs):
    """Lazily import loop runner to avoid package-import cycles."""
    from .loop import run_main_loop as _run_main_loop

    return _run_main_loop(*args, **kwargs)


__all__ = ["run_browser", "run_main_loop"]
