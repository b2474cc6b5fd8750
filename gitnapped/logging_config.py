"""Logging setup with Rich formatting on stderr."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(debug: bool = False, silent: bool = False) -> logging.Logger:
    """Configure the root logger for a CLI run.

    Args:
        debug: Enable DEBUG level logging
        silent: Suppress everything below ERROR

    Returns:
        The ``gitnapped`` package logger
    """
    if silent:
        level = logging.ERROR
    elif debug:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=debug,
        show_path=debug,
    )
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)

    logger = logging.getLogger("gitnapped")
    logger.setLevel(level)
    return logger
