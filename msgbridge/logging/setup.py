"""Logging configuration for the gateway."""

import logging
import sys
from typing import Union


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Set up logging with proper handlers and formatters.

    Args:
        level: Level name (``"DEBUG"``, ``"INFO"``...) or numeric level.
            Unknown names fall back to INFO.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = level

    logger = logging.getLogger("msgbridge")
    logger.setLevel(resolved)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    # Propagate to root so pytest's caplog and embedding apps still see records
    logger.propagate = True

    return logger
