"""Logging setup shared by the API server and the command-line entry point."""

from __future__ import annotations

import logging
import os
import sys

DEFAULT_LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "gamedesk"


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level

    if level is None:
        name = os.environ.get("GAMEDESK_LOG_LEVEL", "").strip().upper()
        if not name:
            return DEFAULT_LOG_LEVEL
        source = "GAMEDESK_LOG_LEVEL"
    else:
        name = level.strip().upper()
        source = "log level"

    resolved = logging.getLevelName(name)
    if isinstance(resolved, int):
        return resolved

    # The logger is not configured yet, so report straight to stderr.
    print(  # noqa: T201
        f"Warning: Invalid {source} '{name}'. "
        f"Defaulting to {logging.getLevelName(DEFAULT_LOG_LEVEL)}.",
        file=sys.stderr,
    )
    return DEFAULT_LOG_LEVEL


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Configure the ``gamedesk`` logger and return it.

    ``level`` may be a logging constant, a level name or ``None`` to read
    ``GAMEDESK_LOG_LEVEL`` from the environment. Existing handlers are
    replaced so repeated calls never duplicate output.
    """

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(_resolve_level(level))

    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app_logger.addHandler(handler)
    return app_logger


__all__ = ["DEFAULT_LOG_LEVEL", "LOG_FORMAT", "LOGGER_NAME", "setup_logging"]
