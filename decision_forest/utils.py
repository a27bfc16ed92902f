"""Logging and file helpers shared by the random forest package."""

from __future__ import annotations

import logging
from pathlib import Path

# =============================================================================
# Logging
# =============================================================================

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER_PREFIX = "decision_forest"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_logger(name: str) -> logging.Logger:
    """Return the module logger, attaching a stderr handler on first use.

    Args:
        name: Module name, usually ``__name__``.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stream)
        logger.setLevel(logging.INFO)
    return logger


def setup_logging(level: int | str = logging.INFO) -> None:
    """Set the level of every logger owned by this package.

    Args:
        level: Logging level name or number.
    """
    if isinstance(level, str):
        level_name = level.upper()
        if level_name not in LOG_LEVELS:
            raise ValueError(f"Unknown logging level {level!r}, expected one of {LOG_LEVELS}")
        level = logging.getLevelName(level_name)
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER_PREFIX) and isinstance(existing, logging.Logger):
            existing.setLevel(level)


# =============================================================================
# File I/O
# =============================================================================


def ensure_output_dir(path: Path | str) -> None:
    """Create the directory that will hold ``path``."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def validate_file_exists(path: Path | str, description: str | None = None) -> None:
    """Raise FileNotFoundError if ``path`` is missing.

    Args:
        path: File that must exist.
        description: What the file is, used to start the error message.
    """
    if Path(path).exists():
        return
    what = description or "File"
    raise FileNotFoundError(f"{what} not found: {path}")
