"""Package-wide logger setup."""

from __future__ import annotations

import logging

LOGGER_NAME = "calendar_csp"


def get_logger() -> logging.Logger:
    """Return the shared ``calendar_csp`` logger.

    A stream handler with a timestamped formatter is attached the first time
    only, so repeated imports never duplicate output. The level defaults to
    WARNING; use ``configure_logging`` to change it.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)

    return logger


def configure_logging(level: str | int) -> logging.Logger:
    """Set the package logger's level (e.g. ``"DEBUG"`` or ``logging.INFO``)."""
    logger = get_logger()
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level {level!r}")
        level = resolved
    logger.setLevel(level)
    return logger
