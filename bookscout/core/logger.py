"""Logging setup shared by every module."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import cast

from bookscout.config.env import ENABLE_LOGGING, LOG_FILE, LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CustomLogger(logging.Logger):
    """Logger with helpers that attach the current traceback."""

    def error_trace(self, msg, *args, **kwargs) -> None:
        """Log an error message with the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self.error(msg, *args, **kwargs)


def _file_handler(log_file: Path) -> logging.Handler | None:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
    except OSError:
        # Read-only or missing log root: stdout only
        return None


def setup_logger(name: str, log_file: Path = LOG_FILE) -> CustomLogger:
    """Return the named logger, configuring handlers on first use."""
    previous_class = logging.getLoggerClass()
    logging.setLoggerClass(CustomLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        logging.setLoggerClass(previous_class)

    if logger.handlers:
        return cast(CustomLogger, logger)

    logger.setLevel(LOG_LEVEL)
    formatter = logging.Formatter(_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if ENABLE_LOGGING:
        handler = _file_handler(log_file)
        if handler is not None:
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    return cast(CustomLogger, logger)
