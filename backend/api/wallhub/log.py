"""Logging setup shared by the API process and migrations."""

from __future__ import annotations

import logging
import sys


def setup_logging(level: int | str = logging.INFO, name: str = "wallhub") -> logging.Logger:
    """Attach a single stdout handler to the package logger.

    Safe to call more than once; later calls only adjust the level.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    return logger
