"""Package loggers.

Every module logs through ``get_logger(__name__)``, which returns a logger
under the ``qlayer`` namespace with its own stderr handler. Loggers do not
propagate to the root logger, so an application's logging setup is left
alone; call :func:`configure_logging` to route qlayer output elsewhere.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

_ROOT = "qlayer"
_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_level: int = logging.WARNING
_format: str = _FORMAT
_stream: Optional[IO[str]] = None
_loggers: dict[str, logging.Logger] = {}


def _as_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _qualified(name: Optional[str]) -> str:
    if not name or name == _ROOT:
        return _ROOT
    if name.startswith(_ROOT + "."):
        return name
    return f"{_ROOT}.{name}"


def _attach_handler(logger: logging.Logger) -> None:
    for old in logger.handlers[:]:
        logger.removeHandler(old)
    handler = logging.StreamHandler(_stream if _stream is not None else sys.stderr)
    handler.setLevel(_level)
    handler.setFormatter(logging.Formatter(_format))
    logger.addHandler(handler)
    logger.setLevel(_level)
    logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the cached logger for ``name``.

    Names outside the package are prefixed, so ``get_logger("runner")`` is
    ``qlayer.runner``; ``get_logger()`` is the package logger itself.
    """
    qualified = _qualified(name)
    logger = _loggers.get(qualified)
    if logger is None:
        logger = logging.getLogger(qualified)
        if not logger.handlers:
            _attach_handler(logger)
        _loggers[qualified] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the level of every qlayer logger and of loggers created later."""
    global _level
    _level = _as_level(level)
    for logger in _loggers.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Route all qlayer logging to ``stream`` with ``format_string``.

    Handlers of existing loggers are replaced; loggers created afterwards
    pick up the same settings. Passing no stream restores stderr, and no
    format restores ``[LEVEL] name: message``.
    """
    global _level, _format, _stream
    _level = _as_level(level)
    _format = format_string if format_string is not None else _FORMAT
    _stream = stream
    for logger in _loggers.values():
        _attach_handler(logger)


__all__ = ["get_logger", "set_log_level", "configure_logging"]
