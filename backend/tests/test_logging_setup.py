"""Tests for logging setup: role tag, file handler, unusable log file."""

import logging

import pytest

from files_manager.config import Settings
from files_manager.logging_setup import LOGGER_NAME, setup_logging


@pytest.fixture(autouse=True)
def restore_handlers():
    logger = logging.getLogger(LOGGER_NAME)
    saved_handlers, saved_level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


def test_worker_lines_carry_role(tmp_path):
    """Lines written to the log file are tagged with the process role."""
    log_file = tmp_path / "service.log"
    logger = setup_logging("worker", Settings(log_level="INFO", log_file=str(log_file)))
    logging.getLogger(f"{LOGGER_NAME}.thumbnails.worker").info("job done")
    for handler in logger.handlers:
        handler.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "[INFO] worker files_manager.thumbnails.worker: job done" in text


def test_level_from_settings():
    logger = setup_logging("api", Settings(log_level="warning", log_file=""))
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1


def test_unusable_log_file_keeps_stderr(tmp_path):
    """A log file that cannot be opened leaves stderr logging in place."""
    logger = setup_logging("api", Settings(log_file=str(tmp_path / "missing" / "x.log")))
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)
