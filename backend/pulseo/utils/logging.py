"""Logging configuration for Pulseo."""

import logging
import sys

from ..config import Config, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# Third-party loggers that are only interesting when debugging
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "multipart")


def setup_logging(config: Config | None = None) -> None:
    """
    Configure the root logger from ``logging.level``.

    Safe to call once per application instance: an existing root
    configuration is replaced rather than duplicated.
    """
    config = config or get_config()
    level_name = config.logging.level.lower()
    level = LEVELS.get(level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "pulseo"):
        logging.getLogger(name).setLevel(level)

    quiet_level = logging.DEBUG if level_name == "debug" else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).info(
        f"Logging configured at level {logging.getLevelName(level)} "
        f"({config.environment})"
    )
