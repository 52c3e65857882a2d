"""
Structured logging (``payroll_kernel.logging_config``).

Responsibility
--------------
Every record under the ``payroll_kernel`` logger namespace is written as
one JSON object per line.  The payroll run context (batch, helper,
payslip, editor) is merged into each record so a single payslip's
recomputation can be followed across engines, config loads and worker
threads.

Context fields
--------------
* ``correlation_id`` -- one monthly batch run or one edit request.
* ``helper_id``      -- helper whose payslip is being computed.
* ``payslip_id``     -- payslip under recomputation.
* ``actor_id``       -- editor who pinned or edited a value.
* ``trace_id``       -- caller-supplied trace id.

Context lives in a single ``ContextVar`` holding an immutable snapshot;
``LogContext.bind`` swaps the snapshot and restores it on exit.  Pool
threads do not inherit context; callers re-bind explicitly.

Payload encoding
----------------
Decimal amounts are written as strings so no yen is lost to float
conversion.  Dates are ISO-8601, enums their value, sets sorted lists.
Exceptions add ``exc_type``, ``exc_message``, ``traceback`` and, for
``PayrollKernelError``, ``exc_code`` plus every public attribute as
``exc_<name>``.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import IO, Any

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "helper_id",
    "payslip_id",
    "actor_id",
    "trace_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("payroll_log_context", default=_EMPTY)


def _known_fields(fields: Mapping[str, str | None]) -> dict[str, str]:
    return {k: v for k, v in fields.items() if k in CONTEXT_FIELDS and v is not None}


class LogContext:
    """Run-scoped fields attached to every payroll log record."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Add or replace fields; None values leave a field untouched.

        Raises:
            TypeError: for a name outside ``CONTEXT_FIELDS``.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context field(s): {sorted(unknown)}")
        merged = {**_context.get(), **_known_fields(fields)}
        _context.set(MappingProxyType(merged))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a block.

        Unknown names are ignored so a snapshot from ``get_all`` can be
        re-bound in another thread as-is.
        """
        token = _context.set(MappingProxyType({**_context.get(), **_known_fields(fields)}))
        try:
            yield LogContext
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatting
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(v) for v in value), key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, run context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED_ATTRS and name not in payload:
                payload[name] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

ROOT_LOGGER_NAME = "payroll_kernel"

_setup_lock = threading.Lock()
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger ``payroll_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``payroll_kernel`` root.

    Only the first call has any effect; later calls return silently so
    libraries and applications can both call it.
    """
    global _configured
    with _setup_lock:
        if _configured:
            return
        _configured = True

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging`` (tests only)."""
    global _configured
    with _setup_lock:
        _configured = False
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
        root.propagate = True
