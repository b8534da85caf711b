"""mbench logging setup — level from MBENCH_LOG_LEVEL, plain console handler."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "MBENCH_LOG_LEVEL"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def log_level_from_env(default: int = logging.WARNING) -> int:
    return _LEVELS.get(os.environ.get(LOG_LEVEL_ENV, "").upper(), default)


def configure_logging(level: int | None = None) -> None:
    """Send mbench log records to stderr. ``level`` overrides the environment."""
    logging.basicConfig(
        level=log_level_from_env() if level is None else level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
