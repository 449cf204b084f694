"""Run log - the append-only, timestamped text log of a run.

Every module logs through the ``power_cleaner`` logger hierarchy; this module
attaches the file handler once per process. The file is always opened in
append mode so earlier entries are never truncated or reordered.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from power_cleaner.exceptions import StartupError

ROOT_LOGGER = "power_cleaner"
LOG_FORMAT = "%(levelname)-5s [%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(ROOT_LOGGER)


def configure_logging(log_path: Path, verbose: bool = False, console: Console | None = None) -> Path:
    """Attach the run-log file handler (and a console handler when verbose).

    Args:
        log_path: File to append to. Parent directories are created.
        verbose: Also mirror DEBUG records on the console.
        console: Console for the verbose handler.

    Returns:
        The resolved log path.

    Raises:
        StartupError: If the log file cannot be opened.
    """
    log_path = Path(log_path).expanduser()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        raise StartupError(f"Cannot open log file {log_path}: {e}") from e

    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    reset_logging()
    logger.addHandler(file_handler)
    if verbose:
        console_handler = RichHandler(console=console, show_path=False, markup=False)
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return log_path


def reset_logging() -> None:
    """Detach and close handlers from a previous configure_logging call."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def log_structured(kind: str, payload: dict[str, Any]) -> None:
    """Append one machine-readable entry (``KIND {json}``) to the run log."""
    logger.info("%s %s", kind, json.dumps(payload, sort_keys=True, default=str))
