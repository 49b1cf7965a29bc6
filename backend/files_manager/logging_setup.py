"""Logging configuration shared by the API and the worker.

Both processes log under the ``files_manager`` logger. Each line carries the
process role (``api`` or ``worker``) so a shared log file stays readable when
several workers append to it.
"""

import logging
from typing import Optional

from files_manager.config import Settings, get_settings

LOGGER_NAME = "files_manager"
_FORMAT = "%(asctime)s [%(levelname)s] {role} %(name)s: %(message)s"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, role: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT.format(role=role), datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)


def setup_logging(role: str = "api", settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the service logger for ``role``: stderr always, plus log_file if set."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    _attach(logger, logging.StreamHandler(), level, role)
    log_file = str(settings.log_file or "").strip()
    if log_file:
        try:
            _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, role)
        except OSError as e:
            logger.warning("Could not open log file %s: %s", log_file, e)
    logger.debug("Logging configured for %s", role)
    return logger
