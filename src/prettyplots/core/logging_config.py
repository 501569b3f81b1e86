"""
Logging configuration.

Sets up the ``prettyplots`` package logger: rich console output plus an optional log file.
"""
from __future__ import annotations

import logging
from typing import Optional

from rich.logging import RichHandler

LOGGER_NAME = "prettyplots"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | str = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Logging level (``logging.DEBUG``, ``"INFO"``, ...).
        log_file: Optional path to also write logs to.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate output when called more than once (CLI + tests).
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = RichHandler(show_path=False, rich_tracebacks=False, log_time_format="%H:%M:%S")
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
