"""Driver logging: level control, output selection and per-query context."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import IO

TRACE = 5
PANIC = logging.CRITICAL + 10
DISABLED = PANIC + 10

CONTEXT_FIELDS = ("connId", "corrId", "queryId")

# Ordered from the most to the least verbose.
_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": PANIC,
    "disabled": DISABLED,
}

_ABBREVIATIONS = {
    "trace": "TRC",
    "debug": "DBG",
    "info": "INF",
    "warn": "WRN",
    "error": "ERR",
    "fatal": "FTL",
    "panic": "PNC",
}


def _parse_level(name: str) -> int:
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown level string: {name!r}") from None


def _level_name(levelno: int) -> str:
    name = "trace"
    for candidate, value in _LEVELS.items():
        if candidate != "disabled" and levelno >= value:
            name = candidate
    return name


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if hasattr(record, field)
    }


class _JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc).astimezone()
        data: dict[str, object] = {"level": _level_name(record.levelno)}
        data.update(_context_of(record))
        data["time"] = stamp.isoformat(timespec="seconds")
        if record.exc_info and record.exc_info[1] is not None:
            data["error"] = str(record.exc_info[1])
        data["message"] = record.getMessage()
        return json.dumps(data)


class _ConsoleFormatter(logging.Formatter):
    """Compact human-readable lines for interactive terminals."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%I:%M%p")
        parts = [stamp, _ABBREVIATIONS[_level_name(record.levelno)], record.getMessage()]
        parts.extend(f"{key}={value}" for key, value in _context_of(record).items())
        if record.exc_info and record.exc_info[1] is not None:
            parts.append(f"error={record.exc_info[1]}")
        return " ".join(parts)


_logger = logging.getLogger("dbsqlkit")
_logger.propagate = False
_handler = logging.StreamHandler(sys.stderr)
_logger.addHandler(_handler)


def _is_terminal(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False


def _configure() -> None:
    if _is_terminal(sys.stdout) and os.name != "nt":
        _handler.setFormatter(_ConsoleFormatter())
    else:
        _handler.setFormatter(_JsonFormatter())

    level = logging.WARNING
    _logger.setLevel(level)
    requested = os.environ.get("DATABRICKS_LOG_LEVEL", "")
    if requested:
        try:
            level = _parse_level(requested)
        except ValueError:
            _logger.error("log level %s not recognized", requested)
    _logger.setLevel(level)
    _logger.info("setting log level to %s", _level_name(level))


_configure()


def get_logger() -> logging.Logger:
    """Return the driver's logger."""
    return _logger


def set_log_level(level: str) -> None:
    """Set the log level by name.

    Accepted names: trace, debug, info, warn, error, fatal, panic, disabled.
    Raises ValueError for anything else.
    """
    _logger.setLevel(_parse_level(level))


def set_log_output(stream: IO[str]) -> None:
    """Send log lines, as JSON, to the given text stream."""
    _handler.setStream(stream)
    _handler.setFormatter(_JsonFormatter())


def with_context(
    connection_id: str, correlation_id: str, query_id: str
) -> logging.LoggerAdapter:
    """Return a logger that tags every line with connection, correlation and query ids."""
    return logging.LoggerAdapter(
        _logger,
        {"connId": connection_id, "corrId": correlation_id, "queryId": query_id},
    )


def track(msg: str) -> tuple[str, float]:
    """Return the message together with a start time for use with duration()."""
    return msg, time.monotonic()


def _format_elapsed(seconds: float) -> str:
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.6f}s"


def duration(msg: str, start: float) -> None:
    """Log, at debug level, the time elapsed since start."""
    _logger.debug("%s elapsed time: %s", msg, _format_elapsed(time.monotonic() - start))