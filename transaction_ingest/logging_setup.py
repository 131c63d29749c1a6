"""Logging for the ``transaction_ingest`` package.

Modules log under ``transaction_ingest.<module>`` via :func:`get_logger` and
stay silent until a host installs output with :func:`configure_logging`. The
CLI does that once per process, with the level taken from
:class:`transaction_ingest.config.Settings`.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

PACKAGE_LOGGER = "transaction_ingest"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# The handler installed by configure_logging, if any.
_handler: logging.Handler | None = None


def parse_level(value: int | str | None, default: int = logging.INFO) -> int:
    """Map a level number, digit string or level name to a logging level.

    Anything unrecognized (including ``None``) yields ``default``.
    """

    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, default)


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def configure_logging(
    level: int | str = logging.INFO,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] = sys.stderr,
) -> logging.Handler:
    """Send package log records to ``stream``; later calls are no-ops.

    Returns the installed handler.
    """

    global _handler
    if _handler is not None:
        return _handler

    logger = _package_logger()
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = parse_level(level)
    _handler = logging.StreamHandler(stream)
    _handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(_handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return _handler


def reset_logging() -> None:
    """Remove what :func:`configure_logging` installed (tests, embedding hosts)."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _handler = None


def get_logger(name: str) -> logging.Logger:
    _package_logger()
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "parse_level", "reset_logging"]
