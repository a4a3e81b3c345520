"""Tests for logging configuration."""

import logging

from calorie_tracker.app_logging import LOGGER_NAME, configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.propagate is False


def test_configure_logging_updates_level() -> None:
    logger = configure_logging("debug")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    configure_logging("WARNING")

    assert logger.level == logging.WARNING
    configure_logging()
