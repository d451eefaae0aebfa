"""
Structured logging configuration for ollama-export.

Provides JSON or human-readable log lines with:
- Home directory prefixes collapsed to ``~`` (logs get shared in bug reports)
- Long sequences (digests, candidate directories) summarised, not dumped
- Extra fields passed via ``extra=`` rendered alongside the message

Usage:
    from ollama_export.logging_config import setup_logging, get_logger

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)
    logger.info("blob copied", extra={"digest": "sha256:abc..."})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import Any

# Maximum list length rendered verbatim; longer lists are summarised
MAX_LIST_ITEMS = 10

# Maximum nesting depth for dict-valued extra fields
MAX_DEPTH = 3

# LogRecord attributes that are never treated as extra fields
_RESERVED_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


def _home_prefix() -> str:
    try:
        return str(Path.home())
    except RuntimeError:
        return ""


def _shorten_path(text: str) -> str:
    """Replace the user's home directory prefix with ``~``."""
    if not text:
        return text
    home = _home_prefix()
    if home and home != "/" and home in text:
        return text.replace(home, "~")
    return text


def _filter_log_record(record: dict[str, Any], *, _depth: int = 0) -> dict[str, Any]:
    """Normalise extra fields for output.

    Recursively filters nested dicts up to MAX_DEPTH.
    """
    if _depth > MAX_DEPTH:
        return {"_truncated": "max depth exceeded"}

    filtered: dict[str, Any] = {}

    for key, value in record.items():
        if isinstance(value, (int, float, bool, type(None))):
            filtered[key] = value
        elif isinstance(value, PurePath):
            filtered[key] = _shorten_path(str(value))
        elif isinstance(value, str):
            filtered[key] = _shorten_path(value)
        elif isinstance(value, (list, tuple, set, frozenset)):
            items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
            if len(items) <= MAX_LIST_ITEMS:
                filtered[key] = [_shorten_path(str(v)) for v in items]
            else:
                filtered[key] = f"[list:{len(items)} items]"
        elif isinstance(value, dict):
            filtered[key] = _filter_log_record(value, _depth=_depth + 1)
        else:
            filtered[key] = _shorten_path(str(value))

    return filtered


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Produces one JSON object per line.

    Output format:
    {"ts":"2024-01-01T00:00:00.000Z","level":"INFO","logger":"module","msg":"...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_dict: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _shorten_path(record.getMessage()),
        }

        # Add location for warnings and errors
        if record.levelno >= logging.WARNING:
            log_dict["file"] = record.filename
            log_dict["line"] = record.lineno

        if record.exc_info:
            log_dict["exc"] = _shorten_path(self.formatException(record.exc_info))

        extra = _extra_fields(record)
        if extra:
            log_dict.update(_filter_log_record(extra))

        return json.dumps(log_dict, default=str, ensure_ascii=False)


class SimpleFormatter(logging.Formatter):
    """Simple formatter for terminals and tests.

    Human-readable output with filtered extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string."""
        base = f"{record.levelname:8s} {record.name}: {_shorten_path(record.getMessage())}"

        extra = _extra_fields(record)
        if extra:
            filtered = _filter_log_record(extra)
            if filtered:
                extra_str = " ".join(f"{k}={v}" for k, v in filtered.items())
                base = f"{base} | {extra_str}"

        if record.exc_info:
            base = f"{base}\n{_shorten_path(self.formatException(record.exc_info))}"

        return base


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
) -> None:
    """Configure logging for the application.

    Call once at startup.

    Args:
        level: Log level (default INFO).
        json_format: Use JSON formatter (default False, the CLI is interactive).
        stream: Output stream (default stderr).
    """
    if stream is None:
        stream = sys.stderr

    handler = logging.StreamHandler(stream)
    formatter = JsonFormatter() if json_format else SimpleFormatter()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
