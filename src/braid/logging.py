"""
Logging utilities for braid.

Every module logs through a child of the ``braid`` logger. Nothing is
configured on import; call :func:`setup_logging` from an application.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_root_logger = logging.getLogger("braid")


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure a stream handler on the ``braid`` logger.

    Args:
        level: Log level name or number
        format: Custom log format string
        stream: Output stream (defaults to stderr)

    Example:
        from braid.logging import setup_logging

        setup_logging("DEBUG")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    if format is None:
        format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format))
    handler.setLevel(level)
    _root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger of ``braid``.

    Args:
        name: Submodule name (e.g., "agent", "tools")
    """
    if name.startswith("braid."):
        return logging.getLogger(name)
    return logging.getLogger(f"braid.{name}")


def set_level(level: str | int) -> None:
    """Set the log level for braid."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _root_logger.setLevel(level)
