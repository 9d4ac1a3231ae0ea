"""
Logging configuration — central setup for the CLI and the step programs.

Called once at startup by ``devstrap.main`` (and by each step's ``main``).
Every module that does ``logger = logging.getLogger(__name__)`` inherits
this config.

Levels are resolved in precedence order:
    CLI flag  >  DEVSTRAP_LOG_LEVEL env var  >  WARNING (default)

Optional file output via DEVSTRAP_LOG_FILE / DEVSTRAP_LOG_FILE_LEVEL env vars.
"""

from __future__ import annotations

import logging
import os
import sys

# ── Format strings ──────────────────────────────────────────────

_FMT_MINIMAL = "%(message)s"

_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

ENV_LOG_LEVEL = "DEVSTRAP_LOG_LEVEL"
ENV_LOG_FILE = "DEVSTRAP_LOG_FILE"
ENV_LOG_FILE_LEVEL = "DEVSTRAP_LOG_FILE_LEVEL"


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the CLI or a step process.

    Args:
        level: Log level name. Falls back to ``DEVSTRAP_LOG_LEVEL``, then WARNING.
        log_file: Optional path to a log file. Falls back to ``DEVSTRAP_LOG_FILE``.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
    """
    numeric_level = _parse_level(level or os.environ.get(ENV_LOG_LEVEL))
    log_file = log_file or os.environ.get(ENV_LOG_FILE)
    log_file_level = log_file_level or os.environ.get(ENV_LOG_FILE_LEVEL)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_stderr_handler(numeric_level))

    # Step processes append to the same file the orchestrator writes.
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        fh = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        numeric_level = min(numeric_level, file_level)

    root.setLevel(numeric_level)


def _stderr_handler(numeric_level: int) -> logging.Handler:
    """Console handler; the format gets richer as the level drops."""
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown or empty means WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
