"""Structured JSON logging for the work-hour approval kernel."""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Request-scoped log fields, isolated per thread and per asyncio task.

    The fields live in one ContextVar holding a dict that is replaced on
    every change and never mutated in place, so ``bind`` restores the
    previous fields with a single token.
    """

    FIELD_NAMES: frozenset[str] = frozenset({
        "correlation_id",
        "actor_email",
        "submitter_email",
        "work_date",
        "trace_id",
    })

    _fields: ContextVar[dict[str, str] | None] = ContextVar(
        "workhour_log_fields", default=None
    )

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Merge fields into the current context. None values are skipped.

        Raises:
            TypeError: a field name outside ``FIELD_NAMES``.
        """
        unknown = set(fields) - cls.FIELD_NAMES
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        cls._fields.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Return a copy of the non-None context fields."""
        return dict(cls._fields.get() or {})

    @classmethod
    def clear(cls) -> None:
        cls._fields.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block.

        Unknown names and None values are ignored; values are stringified.
        """
        token = cls._fields.set(cls._merged(fields))
        try:
            yield cls
        finally:
            cls._fields.reset(token)

    @classmethod
    def _merged(cls, fields: dict[str, Any]) -> dict[str, str]:
        merged = cls.get_all()
        merged.update(
            (name, str(value))
            for name, value in fields.items()
            if value is not None and name in cls.FIELD_NAMES
        )
        return merged


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle UUID, date/datetime and enums in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            # Structured fields of WorkhourKernelError subclasses
            for k, v in vars(exc).items():
                if not k.startswith("_") and k not in ("args", "code"):
                    payload[f"exc_{k}"] = v
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "workhour_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the workhour_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the workhour_kernel logger hierarchy (idempotent)."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
