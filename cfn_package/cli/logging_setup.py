"""Logging configuration for CLI runs."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "cfn_package"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a ``RichHandler`` to the package logger.

    Calling it again replaces the handler instead of stacking another one.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())
    return package_logger
