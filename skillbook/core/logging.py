"""Logging for Skillbook.

One ``skillbook`` logger with a console handler (warnings only) and an
optional rotating log file. Modules log through ``logging.getLogger(__name__)``
and propagate here. ``log_update``, ``log_lint`` and ``log_error`` write the
structured one-line records that are easy to grep in the log file.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOGGER_NAME = "skillbook"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None


def _level(name: str) -> int:
    """Map a level name to its number; unknown names mean INFO."""
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    log_level: str = "INFO",
    logs_dir: Path | None = None,
    log_file: str = "skillbook.log",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """Configure the ``skillbook`` logger once and return it.

    Later calls return the already configured logger unchanged; use
    ``reset_logger`` to start over.
    """
    global _logger
    if _logger is not None:
        return _logger

    level = _level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            logs_dir / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setLevel(level)
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """The configured logger, set up with defaults on first use."""
    return _logger if _logger is not None else setup_logging()


def reset_logger() -> None:
    """Close handlers and forget the configured logger (tests use this)."""
    global _logger
    if _logger is None:
        return
    for handler in list(_logger.handlers):
        handler.close()
        _logger.removeHandler(handler)
    _logger = None


def log_update(
    action: str,
    current: str,
    latest: str | None = None,
    error: str | None = None,
) -> None:
    """Record one library update step (``check`` or ``apply``)."""
    logger = get_logger()
    if error:
        logger.error("Update action=%s current=%s latest=%s error=%s", action, current, latest, error)
    else:
        logger.info("Update action=%s current=%s latest=%s", action, current, latest)


def log_lint(library: Path, documents: int, errors: int, warnings: int) -> None:
    """Record the outcome of a lint run."""
    get_logger().info(
        "Lint library=%s documents=%d errors=%d warnings=%d",
        library, documents, errors, warnings,
    )


def log_error(category: str, message: str, **extra: Any) -> None:
    """Record a classified error with optional key=value context."""
    context = "".join(f" {key}={value}" for key, value in extra.items())
    get_logger().error("Error category=%s message=%s%s", category, message, context)
