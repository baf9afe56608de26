"""
Structured logging for Layover.

The Log transport attaches ``request_id``, ``status``, ``duration`` and
friends to its records through ``extra=``. The formatters here render those
fields either as one JSON object per line or as ``key=value`` pairs, and tag
every record with the correlation ID active in the current task.

Usage:
    from layover.observability import setup_structured_logging, add_correlation_id

    setup_structured_logging(level="INFO", json_format=True)

    with add_correlation_id("sync-orders"):
        response = await client.get(url)  # every record carries correlation_id
"""

import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, TextIO

from layover.utils.logging import get_logger, parse_level

logger = get_logger("layover.observability")

_correlation_id: ContextVar[str | None] = ContextVar("layover_correlation_id", default=None)

# Present on every LogRecord; anything else arrived through ``extra=``.
_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def get_correlation_id() -> str | None:
    """The correlation ID of the current task, if any."""
    return _correlation_id.get()


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Iterator[str]:
    """
    Tag records logged inside the block with a correlation ID.

    Args:
        correlation_id: ID to use (default: 8 random hex characters)

    Yields:
        The active correlation ID
    """
    cid = correlation_id or uuid.uuid4().hex[:8]
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to a record through ``extra=``."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRIBUTES and not key.startswith("_") and key != "correlation_id"
    }


class CorrelationFilter(logging.Filter):
    """Copies the active correlation ID onto each record as ``correlation_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


def _payload(record: logging.LogRecord) -> dict[str, Any]:
    cid = getattr(record, "correlation_id", None) or get_correlation_id()
    payload: dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if cid:
        payload["correlation_id"] = cid
    payload.update(extra_fields(record))
    return payload


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, correlation ID, extra fields and exception."""

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        """
        Args:
            extra_fields: Static fields added to every record (service name, host, ...)
        """
        super().__init__()
        self.static_fields = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        payload = _payload(record)
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        payload.update(self.static_fields)
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    ``[time] [LEVEL] [logger] [correlation_id] message key=value ...``

    ``duration`` is shown in milliseconds.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = _payload(record)
        stamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        head = [f"[{stamp}]", f"[{record.levelname:<8}]", f"[{record.name}]"]
        if "correlation_id" in payload:
            head.append(f"[{payload['correlation_id']}]")
        head.append(payload["message"])

        fields = extra_fields(record)
        if isinstance(fields.get("duration"), int | float):
            fields["duration"] = f"{fields['duration'] * 1000:.1f}ms"
        line = " ".join(head + [f"{key}={value}" for key, value in fields.items()])
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_structured_logging(
    level: str | int = "INFO",
    json_format: bool = False,
    stream: TextIO | None = None,
    extra_fields: dict[str, Any] | None = None,
) -> logging.Handler:
    """
    Replace the handlers of the ``layover`` logger with a structured one.

    Args:
        level: Log level name or number
        json_format: JSON lines (True) or key=value text (False)
        stream: Output stream (default: sys.stderr)
        extra_fields: Static fields for every record (JSON only)

    Returns:
        The installed handler
    """
    level_int = parse_level(level)
    root = logging.getLogger("layover")
    root.setLevel(level_int)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level_int)
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(StructuredFormatter(extra_fields) if json_format else HumanReadableFormatter())
    root.addHandler(handler)

    logger.debug(f"Structured logging enabled (level={logging.getLevelName(level_int)}, json={json_format})")
    return handler
