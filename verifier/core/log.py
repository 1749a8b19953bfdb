"""Logging setup for the verifier package."""

from __future__ import annotations

import logging

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
HANDLER_NAME = "verifier.stream"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Args:
        level: Log level name or number. Defaults to ``Settings.log_level``.

    Returns:
        The ``verifier`` logger.
    """
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("verifier")
    logger.setLevel(level)

    # Avoid stacking handlers when called more than once
    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
