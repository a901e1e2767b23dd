"""Structured logging configuration using structlog.

stdout belongs to the renderer, so log lines are appended to a log file
as JSON. If the file cannot be opened they go to stderr instead.
"""

from __future__ import annotations

import atexit
import logging
import sys
from pathlib import Path
from typing import TextIO, cast

import structlog
from structlog.typing import FilteringBoundLogger


def _open_log_sink(log_file: Path | None) -> TextIO:
    if log_file is None:
        return sys.stderr
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handle = log_file.open("a", encoding="utf-8")
    except OSError as exc:
        print(f"Failed to open log file {log_file}: {exc}", file=sys.stderr)
        return sys.stderr
    # Cached loggers keep writing to this handle, so it stays open until exit.
    atexit.register(handle.close)
    return handle


def setup_logging(level: str = "info", log_file: Path | None = None) -> None:
    """Configure structlog for JSON output to *log_file* (or stderr)."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=_open_log_sink(log_file)),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> FilteringBoundLogger:
    """Get a logger bound with a component name."""
    return cast(FilteringBoundLogger, structlog.get_logger(component=component))
