"""Logging setup for the diagramdesk command line and editor shell."""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path

__all__ = ["get_log_path", "reset_logging", "resolve_level", "setup_logging"]

_PACKAGE_LOGGER = "diagramdesk"
_DEFAULT_LOG_DIR = Path.home() / ".diagramdesk" / "logs"
_LOG_FILE_NAME = "diagramdesk.log"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_installed: list[logging.Handler] = []
_log_path: Path | None = None


def resolve_level(value: int | str | None, default: int = logging.INFO) -> int:
    """Accept a ``logging`` constant, a level name or a numeric string."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if isinstance(level, int):
        return level
    raise ValueError(f"Unknown log level: {value!r}")


def setup_logging(
    level: int | str | None = None,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """Attach a rotating log file (and a stderr handler) to the package logger.

    ``level`` defaults to ``DIAGRAMDESK_LOG_LEVEL``, then INFO. Calling this again
    replaces the handlers of the previous call, which is how the CLI switches to
    debug output once settings are loaded.
    """

    global _log_path
    resolved = resolve_level(level if level is not None else os.environ.get("DIAGRAMDESK_LOG_LEVEL"))
    target_dir = Path(log_dir or os.environ.get("DIAGRAMDESK_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILE_NAME

    reset_logging()
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    _installed.append(file_handler)
    if console:
        # stdout carries the CLI's JSON report
        _installed.append(logging.StreamHandler(sys.stderr))

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(resolved)
    for handler in _installed:
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    _log_path = log_path
    return log_path


def reset_logging() -> None:
    """Detach and close every handler installed by :func:`setup_logging`."""

    global _log_path
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    while _installed:
        handler = _installed.pop()
        package_logger.removeHandler(handler)
        handler.close()
    _log_path = None


def get_log_path() -> Path | None:
    return _log_path
