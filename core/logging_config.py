# core/logging_config.py
import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "dims"


def setup_logger(level: str | None = None) -> logging.Logger:
    """
    Configure the console's root logger once.

    The level comes from DIMS_LOG_LEVEL (default INFO). Child loggers
    created with get_logger() share the same handler.
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Avoid duplicate handlers in dev reload
    if logger.handlers:
        return logger

    level_name = (level or os.getenv("DIMS_LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger, e.g. get_logger("session") -> "dims.session"."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


logger = setup_logger()
