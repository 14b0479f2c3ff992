"""Console output and logging configuration.

Provides Rich-based console output and logging setup:
    - console: Main Rich console for stdout (reports and tables)
    - stderr_console: Rich console for stderr (log records)
    - setup_logging(): Configure logging with Rich handler
    - get_logger(): Get a named logger instance

Silent mode only quiets informational output. Warnings and errors still reach
stderr through the logging handler.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()
stderr_console = Console(stderr=True)


def _normalize_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(
    level: str | int = logging.INFO,
    verbose: bool = False,
    silent: bool = False,
) -> logging.Logger:
    """Configure logging with a Rich handler and return the app logger."""
    if verbose:
        numeric_level = logging.DEBUG
    elif silent:
        numeric_level = max(_normalize_level(level), logging.WARNING)
    else:
        numeric_level = _normalize_level(level)

    console.quiet = silent

    handler = RichHandler(
        console=stderr_console,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(numeric_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    # Records propagate to the root handler; attaching it here too would print twice.
    logger = logging.getLogger("hypermix")
    logger.handlers.clear()
    logger.setLevel(numeric_level)

    return logger


def get_console(stderr: bool = False) -> Console:
    return stderr_console if stderr else console


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or "hypermix")
