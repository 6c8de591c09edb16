"""Logging utilities for optlib.

Solvers log through cached ``optlib.*`` loggers so that an embedding
application can silence or raise the verbosity of every minimizer at once.
Settings applied with :func:`configure_logging` are remembered and used for
loggers created afterwards, so a module imported late logs the same way as
the minimizers already loaded.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

# Active handler settings, shared by every optlib logger
_level = logging.WARNING
_format = _DEFAULT_FORMAT
_stream: Optional[IO[str]] = None

_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _qualify(name: Optional[str]) -> str:
    if name is None or name == "optlib" or name.startswith("optlib."):
        return name or "optlib"
    return f"optlib.{name}"


def _make_handler() -> logging.Handler:
    handler = logging.StreamHandler(_stream if _stream is not None else sys.stderr)
    handler.setLevel(_level)
    handler.setFormatter(logging.Formatter(_format))
    return handler


def _install_handler(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(_level)
    logger.addHandler(_make_handler())
    logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create a logger for the given module name.

    Names outside the package are prefixed with ``optlib.``. A new logger
    picks up the level, format and stream last passed to
    :func:`configure_logging`.

    Args:
        name: Logger name (typically `__name__`). If None, returns the
            package logger.

    Example:
        >>> from optlib.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("iteration 3: f=1.0e-02")
    """
    logger_name = _qualify(name)
    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        _install_handler(logger)
    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the logging level for all optlib loggers, present and future.

    Args:
        level: Logging level (logging.DEBUG, logging.INFO, etc.) or string
            ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL').
    """
    global _level
    _level = _coerce_level(level)

    for logger in _loggers.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure logging for optlib.

    Every cached logger gets a single fresh stream handler, and the same
    settings are applied to loggers created later. Calling it with no
    arguments restores the defaults.

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. If None, uses default.
        stream: Output stream (default: sys.stderr).

    Example:
        >>> import logging
        >>> from optlib.logging import configure_logging
        >>> configure_logging(level=logging.DEBUG)
    """
    global _level, _format, _stream
    _level = _coerce_level(level)
    _format = format_string or _DEFAULT_FORMAT
    _stream = stream

    for logger in _loggers.values():
        _install_handler(logger)


__all__ = ["configure_logging", "get_logger", "set_log_level"]
