# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Structured logging configuration for the consensus engine.

Provides:
- JSON formatter for production (machine-parseable)
- Standard formatter for development (human-readable)
- Operation context: a correlation ID plus the name of the public
  operation (``file_dispute``, ``update_score`` ...) being executed, so that
  engine, cache and store log lines from one unit of work can be joined
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_operation: ContextVar[str | None] = ContextVar("operation", default=None)


def get_correlation_id() -> str | None:
    """Get the current correlation ID, or None outside an operation."""
    return _correlation_id.get()


def get_operation() -> str | None:
    """Get the name of the operation currently executing."""
    return _operation.get()


@contextmanager
def operation_context(
    operation: str,
    correlation_id: str | None = None,
) -> Generator[str, None, None]:
    """Scope a unit of work for logging.

    Nested scopes reuse the outer correlation ID unless one is given, so an
    arbitration finalize that updates a trust score logs under one ID.

    Args:
        operation: Name of the public operation.
        correlation_id: Explicit correlation ID (e.g. from the request layer).

    Yields:
        The correlation ID in effect.
    """
    cid = correlation_id or _correlation_id.get() or str(uuid.uuid4())
    cid_token = _correlation_id.set(cid)
    op_token = _operation.set(operation)
    try:
        yield cid
    finally:
        _operation.reset(op_token)
        _correlation_id.reset(cid_token)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production environments."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id
        operation = get_operation()
        if operation:
            log_data["operation"] = operation

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter with optional colours for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    CONTEXT_COLOR = "\033[90m"  # Gray

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers see the untouched record
        record = logging.makeLogRecord(record.__dict__)

        correlation_id = get_correlation_id()
        if correlation_id:
            prefix = f"[{correlation_id[:8]}"
            operation = get_operation()
            if operation:
                prefix += f" {operation}"
            prefix += "]"
            if self.use_colors:
                prefix = f"{self.CONTEXT_COLOR}{prefix}{self.RESET}"
            record.msg = f"{prefix} {record.msg}"

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(record)


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure the root logger for a hosting process.

    Args:
        level: Log level; defaults to MYCELIX_LOG_LEVEL.
        json_format: Use JSON format (auto-detect from MYCELIX_LOG_FORMAT or TTY if None).
        log_file: Optional file to also write JSON logs to; defaults to MYCELIX_LOG_FILE.
    """
    from .config import get_config

    config = get_config()

    if level is None:
        level = config.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        format_env = config.log_format.lower()
        if format_env == "json":
            json_format = True
        elif format_env == "text":
            json_format = False
        else:
            json_format = not sys.stderr.isatty()

    log_file = config.log_file if log_file is None else log_file

    formatter: logging.Formatter = JSONFormatter() if json_format else StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically ``__name__``)."""
    return logging.getLogger(name)
