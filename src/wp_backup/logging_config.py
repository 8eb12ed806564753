"""Logging setup for the command-line tool.

Library modules only create ``logging.getLogger(__name__)`` loggers; this
module attaches a single ``RichHandler`` to the package logger so every
diagnostic is one timestamped line.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_TIME_FORMAT = "[%Y-%m-%d %H:%M:%S]"


def setup_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Configure the ``wp_backup`` logger.

    Args:
        verbose: Enable DEBUG output.
        console: Rich console to write to (defaults to stderr).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("wp_backup")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Idempotent: repeated calls (tests, re-entry) replace the handler
    for handler in list(logger.handlers):
        if getattr(handler, "_wp_backup", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
        log_time_format=LOG_TIME_FORMAT,
    )
    handler._wp_backup = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
