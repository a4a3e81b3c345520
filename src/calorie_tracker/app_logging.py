"""Logging configuration helpers."""

import logging

LOGGER_NAME = "calorie_tracker"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(funcName)s]: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Set the package log level and attach one stream handler.

    Repeated calls only update the level, so app factories and tests can
    call this freely.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    return logger
