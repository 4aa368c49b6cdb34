"""
Structured JSON logging for the commission workflow.

Every record is one JSON line: ``ts``, ``level``, ``logger``, ``message``,
the fields bound in ``LogContext`` (which commission or draw is being
worked on, and by whom), then whatever the call site passed in ``extra``.
Errors from the ``CommissionKernelError`` tree add their ``code`` and
structured attributes as ``exc_*`` keys.
"""

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
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

CONTEXT_FIELDS = ("correlation_id", "request_id", "actor_id", "draw_id", "trace_id")

_context: ContextVar[dict[str, str]] = ContextVar("commission_log_context", default={})


def _checked(fields: dict[str, Any]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"unknown log context fields: {sorted(unknown)}")
    return {name: str(value) for name, value in fields.items() if value is not None}


class LogContext:
    """
    Fields attached to every record logged in the current thread or task.

    The bound values live in one ``ContextVar`` holding a dict that is
    replaced, never mutated, so worker threads and tasks see their own copy.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Bind fields until cleared.  ``None`` values leave a field as is."""
        _context.set({**_context.get(), **_checked(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the ``with`` block, restoring the previous set after."""
        token = _context.set({**_context.get(), **_checked(fields)})
        try:
            yield LogContext
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatting
# ---------------------------------------------------------------------------

# attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Loggers
# ---------------------------------------------------------------------------

_ROOT = "commission_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``commission_kernel`` namespace."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``commission_kernel`` logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Drop the handler so tests can configure again."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
