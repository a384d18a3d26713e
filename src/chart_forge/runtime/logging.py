"""Diagnostic logging setup.

Library code logs through loguru's ``logger``; the CLI decides where those
records go. Operator-facing output goes through the console instead.
"""

from __future__ import annotations

import sys

from loguru import logger

DEFAULT_LEVEL = "WARNING"
VERBOSE_LEVEL = "DEBUG"

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - {message}"
)


def configure_logging(verbose: bool = False) -> int:
    """Replace loguru's default sink with a single stderr sink.

    Args:
        verbose: Log at DEBUG instead of WARNING

    Returns:
        The id of the installed sink
    """
    logger.remove()
    level = VERBOSE_LEVEL if verbose else DEFAULT_LEVEL
    return logger.add(sys.stderr, level=level, format=LOG_FORMAT)
