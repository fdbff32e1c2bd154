"""Centralized logging configuration for worldclim_query.

Levels and the optional log file come from the environment settings.
"""

import logging
import sys
from typing import Optional

from worldclim_query.settings import S

LOGGER_NAME = "worldclim_query"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Console level name; defaults to ``S.log_level``.
        log_file: Optional file receiving DEBUG output; defaults to ``S.log_file``.

    Returns:
        Configured logger instance.
    """
    level_name = str(level or S.log_level).upper()
    if not isinstance(getattr(logging, level_name, None), int):
        raise ValueError(f"Invalid log level '{level_name}'")
    log_file = log_file if log_file is not None else S.log_file

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Avoid adding handlers multiple times if called repeatedly
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level_name))
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
