"""Logging setup: one rich-formatted handler on the package logger, level chosen by --verbosity."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "jira_stalebot"


def level_for_verbosity(verbosity: int) -> int:
    return logging.DEBUG if verbosity > 0 else logging.INFO


def setup_logging(verbosity: int = 0, console: Console | None = None) -> logging.Logger:
    """Configure and return the package logger. Call once, before building the bot."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level_for_verbosity(verbosity))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbosity > 0,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
