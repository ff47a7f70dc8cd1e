"""Logging setup for anime-sync."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"
LOGGER_NAME = "anime_sync"

_handlers = []


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Console (stderr) + optional rotating file handler on the package logger.

    Stdout is left alone: the MCP stdio transport owns it.
    """
    global _handlers
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    for h in _handlers:
        logger.removeHandler(h)
    _handlers = []

    formatter = logging.Formatter(fmt=FORMAT, datefmt=DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    _handlers.append(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(formatter)
        _handlers.append(fh)

    for h in _handlers:
        h.setLevel(log_level)
        logger.addHandler(h)

    logger.debug("Logging initialized - Level: %s, File: %s", log_level, log_file)
    return logger


def change_log_level(new_level: str) -> bool:
    """Change the level at runtime; False when the level name is unknown."""
    logger = logging.getLogger(LOGGER_NAME)
    try:
        logger.setLevel(new_level.upper())
    except ValueError:
        logger.error("Unknown log level: %s", new_level)
        return False
    for h in _handlers:
        h.setLevel(new_level.upper())
    logger.info("Log level changed to %s", new_level.upper())
    return True
