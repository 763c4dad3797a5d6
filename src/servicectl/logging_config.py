"""Logging configuration for servicectl.

Provides structured logging with:
- JSON output for log aggregation
- Per-operation context (service, strategy, operation)
- Log rotation

Usage:
    from servicectl.logging_config import get_logger, LogContext

    logger = get_logger(__name__)
    with LogContext(service="redis", operation="apply"):
        logger.info("Starting service", extra={"strategy": "brew_services"})
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
import threading
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ROOT_LOGGER = "servicectl"

# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "context"}

_context_local = threading.local()


def _current_context() -> dict[str, Any]:
    stack = getattr(_context_local, "stack", None)
    if not stack:
        return {}
    merged: dict[str, Any] = {}
    for frame in stack:
        merged.update(frame)
    return merged


class ContextFilter(logging.Filter):
    """Attach the active ``LogContext`` fields to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = _current_context()
        return True


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    @staticmethod
    def _utc_isoformat() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self._utc_isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if context is None:
            context = _current_context()
        log_data.update(context)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(
    name: str = ROOT_LOGGER,
    level: int = logging.INFO,
    log_dir: Path | None = None,
    enable_json: bool = False,
    enable_console: bool = True,
    enable_rotation: bool = False,
) -> logging.Logger:
    """Set up logging for the CLI.

    Args:
        name: Logger name
        level: Logging level
        log_dir: Directory for log files (default: ~/.servicectl/logs/)
        enable_json: Emit JSON lines on the console instead of plain text
        enable_console: Log to stderr
        enable_rotation: Also write a rotating JSON log file

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.filters.clear()
    context_filter = ContextFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.addFilter(context_filter)
        if enable_json:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
        logger.addHandler(console_handler)

    if enable_rotation:
        if log_dir is None:
            log_dir = Path("~/.servicectl/logs").expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{name}.json.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``servicectl`` namespace."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class LogContext:
    """Context manager for adding contextual fields to logs.

    Usage:
        with LogContext(service="redis", operation="apply"):
            logger.info("Applying state")
            # JSON records in this block include service and operation

    Contexts nest; inner fields override outer ones until the inner block
    exits. The stack is per thread.
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> LogContext:
        stack = getattr(_context_local, "stack", None)
        if stack is None:
            stack = []
            _context_local.stack = stack
        stack.append(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        stack = getattr(_context_local, "stack", [])
        if stack:
            stack.pop()


__all__ = [
    "ROOT_LOGGER",
    "setup_logging",
    "get_logger",
    "LogContext",
    "ContextFilter",
    "JSONFormatter",
]
