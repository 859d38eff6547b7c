"""Logging configuration for the treeq CLI."""

from __future__ import annotations

import logging
import sys


LOGGER_NAME = "treeq"
LOG_FORMAT = "treeq: %(message)s"


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, "_treeq_handler", False)]


def configure_logging(verbose: bool) -> None:
    """Route INFO logging to stderr when verbose, keep stdout for results.

    Args:
        verbose: Whether to enable INFO logging
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    for handler in _owned_handlers(logger):
        logger.removeHandler(handler)

    if not verbose:
        logger.setLevel(logging.WARNING)
        return

    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._treeq_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
