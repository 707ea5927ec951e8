"""
Logging utilities for the relay.

Every module logs through a child of the ``drawio_relay`` logger. Output
goes to stderr by default because stdout carries the MCP stdio protocol.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Parent of the ledger, peers, dispatcher, web.server and relay loggers
_root_logger = logging.getLogger("drawio_relay")

# Level saved by disable()
_level_before_disable: int | None = None

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for the relay.

    Replaces any handlers already on the ``drawio_relay`` logger, so the
    CLI can call it once per command. uvicorn's own loggers are left to
    propagate to the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from drawio_relay.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="drawio-relay.log")
    """
    level = _coerce_level(level)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "ledger", "web.server")

    Returns:
        Logger instance
    """
    if name.startswith("drawio_relay."):
        return logging.getLogger(name)
    return logging.getLogger(f"drawio_relay.{name}")


def set_level(level: str | int) -> None:
    """Set the log level for the relay."""
    _root_logger.setLevel(_coerce_level(level))


def disable() -> None:
    """Silence every relay logger until ``enable()`` is called."""
    global _level_before_disable
    if _level_before_disable is None:
        _level_before_disable = _root_logger.level
    _root_logger.setLevel(logging.CRITICAL + 1)


def enable() -> None:
    """Restore the level that was active before ``disable()``."""
    global _level_before_disable
    if _level_before_disable is not None:
        _root_logger.setLevel(_level_before_disable)
        _level_before_disable = None
