"""Logging helpers for copydesk processes."""

from __future__ import annotations

import logging

_LOGGING_INITIALIZED = False
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    """Configure the root logger with a single console handler.

    Args:
        level: Console verbosity (debug, info, warning, error).
    """
    global _LOGGING_INITIALIZED

    console_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    root = logging.getLogger()
    if not _LOGGING_INITIALIZED:
        root.handlers.clear()
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        _LOGGING_INITIALIZED = True
    root.setLevel(console_level)
    for handler in root.handlers:
        handler.setLevel(console_level)

    # Request lines from httpx would otherwise flood retries at info level.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name*, configuring logging if needed."""
    if not _LOGGING_INITIALIZED:
        configure_logging()
    return logging.getLogger(name)
