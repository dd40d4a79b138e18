"""Logging configuration for the launch cache."""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional
import os

LOGGER_NAME = "launch_cache"


def setup_logging(log_level: Optional[int] = None) -> None:
    """
    Attach a rotating file handler and a console handler to the cache logger.

    The level defaults to config.log_level. Calling this again replaces the
    handlers instead of stacking duplicates.
    """
    from config import config

    if log_level is None:
        log_level = getattr(logging, str(config.log_level).upper(), logging.DEBUG)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_dir = os.path.dirname(config.log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    # Full detail goes to the rotating file
    file_handler = RotatingFileHandler(
        config.log_file, maxBytes=config.max_log_size, backupCount=3
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    file_handler.setLevel(logging.DEBUG)

    # Cache decisions and failures on the console
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console_handler.setLevel(logging.INFO)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)


def get_logger() -> logging.Logger:
    """Get the configured logger instance."""
    return logging.getLogger(LOGGER_NAME)
