"""
Time Window Splitter (``payroll_engines.time_window``).

Responsibility
--------------
Splits one shift's [start, end) interval into ordinary and night hours
against the statutory night window (22:00-08:00), and parses the
scheduler's "HH:MM" strings.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.

Invariants enforced
-------------------
* An end at or before the start means the shift crosses midnight; the
  end moves to the extended clock (+1440).
* normal + night always equals the shift's total minutes; both parts go
  through the same hour-rounding policy.
* Shifts wholly inside 08:00-22:00 have zero night hours.

Failure modes
-------------
* ``split_time_window`` never fails for minute values.
* ``parse_time_of_day`` raises ``MalformedTimeError``; the aggregator
  records it as a data-quality exclusion.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal

from payroll_config.schema import NightWindow
from payroll_kernel.domain.values import MINUTES_PER_DAY, HourRounding
from payroll_kernel.exceptions import MalformedTimeError

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")

DEFAULT_NIGHT_WINDOW = NightWindow()
DEFAULT_HOUR_ROUNDING = HourRounding()


@dataclass(frozen=True)
class TimeSplit:
    """Ordinary and night hours of one shift."""

    normal_hours: Decimal
    night_hours: Decimal
    normal_minutes: int
    night_minutes: int

    @property
    def total_hours(self) -> Decimal:
        return self.normal_hours + self.night_hours

    @property
    def total_minutes(self) -> int:
        return self.normal_minutes + self.night_minutes


def parse_time_of_day(value: str | None) -> int:
    """
    Parse "H:MM" / "HH:MM" (seconds ignored) to minutes after midnight.

    "24:00" is accepted as the end of the day.

    Raises:
        MalformedTimeError: missing value, bad format or out-of-range time.
    """
    if value is None:
        raise MalformedTimeError(value)
    match = _TIME_PATTERN.match(str(value))
    if not match:
        raise MalformedTimeError(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise MalformedTimeError(value)
    return hours * 60 + minutes


def _overlap(start: int, end: int, lo: int, hi: int) -> int:
    return max(0, min(end, hi) - max(start, lo))


def split_time_window(
    start_minute: int,
    end_minute: int,
    window: NightWindow = DEFAULT_NIGHT_WINDOW,
    rounding: HourRounding = DEFAULT_HOUR_ROUNDING,
) -> TimeSplit:
    """Split [start, end) into normal and night hours.

    >>> split_time_window(21 * 60, 23 * 60 + 30).night_hours
    Decimal('1.5')
    """
    end = end_minute
    if end <= start_minute:
        end += MINUTES_PER_DAY

    night = sum(_overlap(start_minute, end, lo, hi) for lo, hi in window.segments())
    normal = (end - start_minute) - night
    return TimeSplit(
        normal_hours=rounding.to_hours(normal),
        night_hours=rounding.to_hours(night),
        normal_minutes=normal,
        night_minutes=night,
    )


def shift_duration_hours(
    start: str, end: str, rounding: HourRounding = DEFAULT_HOUR_ROUNDING
) -> Decimal:
    """Total hours between two "HH:MM" strings, crossing midnight if needed.

    Raises:
        MalformedTimeError: either time cannot be parsed.
    """
    start_minute = parse_time_of_day(start)
    end_minute = parse_time_of_day(end)
    if end_minute <= start_minute:
        end_minute += MINUTES_PER_DAY
    return rounding.to_hours(end_minute - start_minute)
