"""
Values -- Immutable yen/hour value helpers and rounding rules.

Responsibility:
    Provides the numeric primitives every payroll computation uses:
    Decimal coercion (never float), yen rounding at a configurable unit
    (1 yen, 10 yen), and the hour-rounding policy applied to worked
    time.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, config schema and services.

Invariants enforced:
    - All monetary amounts and hours are Decimal; floats are rejected at
      the boundary (to_decimal) so statutory rounding is exact.
    - Rounding is always explicit: callers name the RoundingRule, nothing
      auto-rounds.

Failure modes:
    - TypeError when a float reaches to_decimal.
    - ValueError on unknown rounding modes or non-numeric strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
YEN = Decimal("1")
TEN_YEN = Decimal("10")
MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * 60

_MODES = {
    "half_up": ROUND_HALF_UP,
    "floor": ROUND_FLOOR,
    "ceiling": ROUND_CEILING,
}


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """Coerce int/str/Decimal to Decimal. None becomes zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError(f"{name} must be numeric, not bool")
    if isinstance(value, float):
        raise TypeError(f"{name} must be Decimal, int or str, not float")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e


def quantize_to(amount: Decimal, unit: Decimal, rounding: str) -> Decimal:
    """Round ``amount`` to a multiple of ``unit`` (1, 10, 0.1 ...)."""
    if unit == YEN:
        return amount.quantize(YEN, rounding=rounding)
    steps = (amount / unit).quantize(YEN, rounding=rounding)
    return steps * unit


def round_half_up(amount: Decimal, unit: Decimal = YEN) -> Decimal:
    """Statutory 四捨五入 to the given unit."""
    return quantize_to(amount, unit, ROUND_HALF_UP)


def round_floor(amount: Decimal, unit: Decimal = YEN) -> Decimal:
    """切り捨て to the given unit."""
    return quantize_to(amount, unit, ROUND_FLOOR)


def round_ceiling(amount: Decimal, unit: Decimal = YEN) -> Decimal:
    """切り上げ to the given unit."""
    return quantize_to(amount, unit, ROUND_CEILING)


@dataclass(frozen=True)
class RoundingRule:
    """A named rounding step: unit (e.g. 10 yen) and mode."""

    unit: Decimal = YEN
    mode: str = "half_up"

    def __post_init__(self) -> None:
        if self.mode not in _MODES:
            raise ValueError(
                f"rounding mode must be one of {sorted(_MODES)}, got {self.mode!r}"
            )
        if self.unit <= ZERO:
            raise ValueError("rounding unit must be positive")

    def apply(self, amount: Decimal) -> Decimal:
        return quantize_to(amount, self.unit, _MODES[self.mode])


@dataclass(frozen=True)
class HourRounding:
    """
    Rounding policy for worked minutes converted to hours.

    Durations that are an exact multiple of ``snap_minutes`` are kept as
    exact quarter hours; anything else is rounded half-up to
    ``fallback_places`` decimals.
    """

    snap_minutes: int = 15
    fallback_places: int = 1

    def to_hours(self, minutes: int) -> Decimal:
        hours = Decimal(minutes) / Decimal(MINUTES_PER_HOUR)
        if minutes % self.snap_minutes == 0:
            return hours
        return hours.quantize(
            Decimal(1).scaleb(-self.fallback_places), rounding=ROUND_HALF_UP
        )
