"""Command-line front door for lazybrowse.

Parses CLI options, sets up logging, loads the config, and opens the target
backend. Then dispatches into the interactive runtime.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .backend import BackendError, open_backend
from .runtime import run_browser
from .runtime.config import load_config
from .runtime.location import load_last_location

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazybrowse",
        description="Browse a local directory or an S3 prefix in the terminal.",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Directory or s3://bucket/prefix to open. Defaults to the current directory.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml.")
    parser.add_argument(
        "--restore",
        action="store_true",
        help="Open the last visited location when no target is given.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Write log records to this file.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Minimum level written to --log-file (default: WARNING).",
    )
    return parser


def configure_logging(log_file: Path | None, level: str) -> None:
    """Attach a file handler to the package logger.

    Without ``log_file`` nothing is attached; a full-screen UI cannot log to
    its own terminal.
    """
    if log_file is None:
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("lazybrowse")
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def resolve_target(target: str | None, restore: bool) -> str:
    """Pick the location to open: explicit target, restored location, or ``.``."""
    if target:
        return target
    if restore:
        last = load_last_location()
        if last is not None:
            return last
    return "."


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch lazybrowse.

    Exits with status 2 when the target cannot be opened.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_file, args.log_level)
    except OSError as exc:
        parser.error(f"cannot open log file {args.log_file}: {exc.strerror or exc}")

    config = load_config(args.config)
    target = resolve_target(args.target, args.restore)
    try:
        backend = open_backend(target, max_list_pages=config.max_list_pages)
    except BackendError as exc:
        parser.error(f"cannot open {target}: {exc.message}")

    run_browser(backend, config)


if __name__ == "__main__":
    main()
