"""File logging for gitty.

The TUI owns the terminal, so records only ever go to a file.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from gitty.config import config_dir

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024


def default_log_path() -> Path:
    return config_dir() / "gitty.log"


def setup_logging(level: str = "INFO", path: Path | None = None) -> Path:
    """Attach a rotating file handler to the gitty logger tree."""
    log_path = path or default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(log_path, maxBytes=MAX_BYTES, backupCount=1, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger = logging.getLogger("gitty")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    return log_path
