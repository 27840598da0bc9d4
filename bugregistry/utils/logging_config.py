"""
Logging setup for the registry service.

Everything logs through module loggers (logging.getLogger(__name__)) and
propagates to the root logger, which setup_logging() gives a colored
stderr handler and, when a log directory is set, a daily plain-text file.
"""
import logging
import sys
import os
from datetime import datetime

from bugregistry.core.config import LOG_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors console lines by level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    reset = "\x1b[0m"

    def __init__(self):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self._by_level = {
            level: logging.Formatter(color + LOG_FORMAT + self.reset, datefmt=DATE_FORMAT)
            for level, color in self.LEVEL_COLORS.items()
        }

    def format(self, record):
        formatter = self._by_level.get(record.levelno)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def log_file_path(log_dir: str) -> str:
    return os.path.join(log_dir, f"bugregistry_{datetime.now().strftime('%Y%m%d')}.log")


def setup_logging(level=logging.INFO, log_dir: str = LOG_DIR):
    """Install the console (and optional daily file) handlers on the root logger."""
    root_logger = logging.getLogger()

    # Replace, not stack, handlers when called twice
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path(log_dir), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.info("Logging initialized (console%s).", " + file" if log_dir else "")
