"""
Module: doa_kernel.logging_config
Responsibility: JSON-line logging for every logger under ``doa_kernel``,
    with request-scoped context (which evaluation, which caller) merged into
    each record.

Invariants enforced:
    - One record is one JSON object on one line: ``ts``, ``level``,
      ``logger``, ``message``, then context fields, then ``extra`` fields.
    - Context fields never overwrite the envelope; ``extra`` fields never
      overwrite context.
    - ``configure_logging`` installs at most one handler per process until
      ``reset_logging`` is called.

Failure modes:
    - Values the encoder cannot serialize are rendered with ``str``.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "evaluation_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"doa_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """Request-scoped log fields, safe across threads and tasks.

    ``evaluation_id`` is bound by ``CalculatorService.evaluate`` so the
    engine trace and the service's own events share one id.
    """

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        evaluation_id: str | None = None,
    ) -> None:
        """Set context fields. Only non-None values are updated."""
        values = {
            "correlation_id": correlation_id,
            "actor_id": actor_id,
            "evaluation_id": evaluation_id,
        }
        for name, value in values.items():
            if value is not None:
                _context_vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Non-None context fields."""
        ctx: dict[str, str] = {}
        for name, var in _context_vars.items():
            value = var.get()
            if value is not None:
                ctx[name] = value
        return ctx

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block.

        Unknown names and None values are ignored; previous values are
        restored on exit.
        """
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if name in _context_vars and value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    # Decimal amounts keep their exact text; enums (risk levels, contract
    # types, threshold keys) log by value.
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = self._envelope(record)

        for key, value in LogContext.get_all().items():
            payload.setdefault(key, value)

        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _envelope(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        # DOAKernelError subclasses carry a machine-readable code plus the
        # offending field, country or threshold key as attributes.
        if hasattr(exc, "code"):
            fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_") and name not in ("args", "code"):
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "doa_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger named ``doa_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``doa_kernel`` logger (idempotent).

    The ``doa_kernel`` logger does not propagate, so host applications see
    these records only through this handler.
    """
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
