"""
payroll_engines.tracer -- PAYROLL_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` marks a pure payroll calculation (premiums,
    withholding, shift aggregation) and writes one log record per call
    naming the engine, its version, how long the call took and a short
    hash of the inputs that determine the result.  Two payslips whose
    traces show the same engine version and fingerprint were computed
    from the same inputs.

Architecture position:
    Engines layer.  Reads call arguments, never changes them; the only
    side effect is the log record on ``payroll_kernel.engines.tracer``.

Invariants enforced:
    - The fingerprint is a pure function of the named arguments:
      ``Decimal("1.0")`` and ``Decimal("1")`` hash alike, mapping keys
      and set members are ordered before hashing.
    - Parameters omitted by the caller are hashed at their declared
      default, so positional, keyword and defaulted calls agree.

Failure modes:
    - A fingerprint field with no bound value and no default hashes as
      "null".
    - Exceptions from the wrapped engine propagate; no trace is written.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

_NULL = "null"


def _canonicalize(value: Any) -> str:
    """Stable text form of an engine argument."""
    if value is None:
        return _NULL
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value
    if isinstance(value, Decimal):
        # normalize() alone would give "1E+3" for 1000
        return format(value.normalize(), "f")
    if isinstance(value, Mapping):
        pairs = sorted(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in value.items())
        return "{" + ",".join(pairs) + "}"
    if isinstance(value, (set, frozenset)):
        return "{" + ",".join(sorted(map(_canonicalize, value))) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonicalize, value)) + "]"
    if isinstance(value, int):
        return str(value)
    return repr(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """First 16 hex digits of SHA-256 over ``name=value`` pairs."""
    text = "|".join(f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap an engine function so each call emits PAYROLL_ENGINE_TRACE.

    Args:
        engine_name: Stable engine identifier, e.g. "withholding_tax".
        engine_version: Bumped whenever the engine's arithmetic changes.
        fingerprint_fields: Parameters that determine the result.
    """

    def decorate(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            bound = signature.bind_partial(*args, **kwargs)
            bound.apply_defaults()
            return compute_input_fingerprint(fingerprint_fields, bound.arguments)

        @functools.wraps(func)
        def traced(*args: Any, **kwargs: Any) -> Any:
            input_fingerprint = fingerprint(args, kwargs)
            started = time.perf_counter()
            result = func(*args, **kwargs)
            logger.info(
                "PAYROLL_ENGINE_TRACE",
                extra={
                    "trace_type": "PAYROLL_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": input_fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return traced

    return decorate
