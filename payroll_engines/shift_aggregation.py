"""
Shift Aggregator (``payroll_engines.shift_aggregation``).

Responsibility
--------------
Turns one helper's shift records for one payroll period into daily
attendance rows, monthly category totals and day counts.  Records that
carry no payable time are excluded and reported, never merged.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
Consumes ``ShiftRecord`` from the kernel and the night window / hour
rounding from the year's statutory tables.

Invariants enforced
-------------------
* Exclusion happens before classification: deleted records, records
  with no performed time and cancelled-without-time records never
  reach a category total.
* Every input record ends up either in exactly one daily row or in
  ``exclusions`` with a reason.
* Monthly totals are the sum of the daily rows; ``total_work_hours`` is
  the sum of the six category totals.
* Day counts are set cardinalities: a day with both ordinary and
  accompanying work counts once in each set.

Failure modes
-------------
* Data-quality problems (unknown service code, malformed time, date
  outside the period) become ``Exclusion`` records; the aggregation
  itself does not raise.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from payroll_config.schema import NightWindow
from payroll_engines.time_window import (
    DEFAULT_HOUR_ROUNDING,
    DEFAULT_NIGHT_WINDOW,
    parse_time_of_day,
    split_time_window,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.payslip import Attendance, DailyAttendance
from payroll_kernel.domain.shift import (
    SERVICE_TYPE_CATEGORIES,
    ServiceCategory,
    ServiceType,
    ShiftRecord,
    parse_service_type,
)
from payroll_kernel.domain.values import ZERO, HourRounding
from payroll_kernel.exceptions import MalformedTimeError, UnknownServiceTypeError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.shift_aggregation")


class ExclusionReason(str, Enum):
    """Why a shift record contributed nothing."""

    DELETED = "deleted"
    NO_ACTUAL_TIME = "no_actual_time"
    CANCELLED_WITHOUT_TIME = "cancelled_without_time"
    UNKNOWN_SERVICE_TYPE = "unknown_service_type"
    NON_PAYABLE_SERVICE = "non_payable_service"
    MALFORMED_TIME = "malformed_time"
    OUT_OF_PERIOD = "out_of_period"


@dataclass(frozen=True)
class Exclusion:
    shift: ShiftRecord
    reason: ExclusionReason
    detail: str = ""


@dataclass(frozen=True)
class PayrollPeriod:
    """
    The dates a payslip covers.

    Every month covers its calendar days.  December additionally covers
    the first days of January (year-end/new-year settlement), so work on
    1/1-1/4 is paid with the December payslip.
    """

    year: int
    month: int
    start: date
    end: date  # inclusive

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def dates(self) -> list[date]:
        days = (self.end - self.start).days + 1
        return [self.start + timedelta(days=i) for i in range(days)]


def payroll_period(year: int, month: int, extension_days: int = 4) -> PayrollPeriod:
    """Payroll period for (year, month); December runs into January."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    start = date(year, month, 1)
    end = date(year, month, calendar.monthrange(year, month)[1])
    if month == 12 and extension_days > 0:
        end = date(year + 1, 1, extension_days)
    return PayrollPeriod(year=year, month=month, start=start, end=end)


@dataclass(frozen=True)
class ShiftAggregation:
    """Daily rows, monthly totals and the exclusion report for one period."""

    period: PayrollPeriod
    daily: tuple[DailyAttendance, ...]
    attendance: Attendance
    exclusions: tuple[Exclusion, ...]
    included_count: int

    def exclusion_counts(self) -> dict[ExclusionReason, int]:
        counts: dict[ExclusionReason, int] = {}
        for exclusion in self.exclusions:
            counts[exclusion.reason] = counts.get(exclusion.reason, 0) + 1
        return counts


def summarize_daily(rows: Iterable[DailyAttendance]) -> Attendance:
    """Monthly totals and day counts from daily rows."""
    attendance = Attendance()
    normal_days: set[date] = set()
    accompany_days: set[date] = set()
    work_days: set[date] = set()
    for row in rows:
        attendance.normal_hours += row.normal_work
        attendance.night_normal_hours += row.normal_night
        attendance.accompany_hours += row.accompany_work
        attendance.night_accompany_hours += row.accompany_night
        attendance.office_hours += row.office_work
        attendance.sales_hours += row.sales_work
        if row.has_normal_work:
            normal_days.add(row.work_date)
        if row.has_accompany_work:
            accompany_days.add(row.work_date)
        if row.total_hours > ZERO:
            work_days.add(row.work_date)
    attendance.total_work_hours = attendance.category_hours_sum()
    attendance.normal_work_days = len(normal_days)
    attendance.accompany_days = len(accompany_days)
    attendance.total_work_days = len(work_days)
    return attendance


def _exclusion_reason(shift: ShiftRecord, period: PayrollPeriod) -> ExclusionReason | None:
    if shift.deleted:
        return ExclusionReason.DELETED
    if shift.cancel_status.drops_time:
        return ExclusionReason.CANCELLED_WITHOUT_TIME
    if shift.duration_hours is None or shift.duration_hours <= ZERO:
        return ExclusionReason.NO_ACTUAL_TIME
    if not period.contains(shift.shift_date):
        return ExclusionReason.OUT_OF_PERIOD
    return None


def _add_split_hours(
    row: DailyAttendance,
    shift: ShiftRecord,
    category: ServiceCategory,
    window: NightWindow,
    rounding: HourRounding,
) -> None:
    """Ordinary/accompany hours: split by the night window when times exist."""
    if shift.start_time and shift.end_time:
        split = split_time_window(
            parse_time_of_day(shift.start_time),
            parse_time_of_day(shift.end_time),
            window,
            rounding,
        )
        normal, night = split.normal_hours, split.night_hours
    else:
        normal, night = shift.duration_hours, ZERO

    if category is ServiceCategory.ORDINARY_CARE:
        row.normal_work += normal
        row.normal_night += night
    else:
        row.accompany_work += normal
        row.accompany_night += night


@traced_engine("shift_aggregation", "1.0", fingerprint_fields=("period",))
def aggregate_shifts(
    shifts: Iterable[ShiftRecord],
    period: PayrollPeriod,
    night_window: NightWindow = DEFAULT_NIGHT_WINDOW,
    hour_rounding: HourRounding = DEFAULT_HOUR_ROUNDING,
    classification: Mapping[ServiceType, ServiceCategory | None] = SERVICE_TYPE_CATEGORIES,
) -> ShiftAggregation:
    """
    Aggregate shifts into daily rows (one per period date) and totals.

    Args:
        shifts: Records for one helper; order does not matter.
        period: The payroll period; records outside it are excluded.
        night_window: Night window from the year's tables.
        hour_rounding: Minute-to-hour rounding policy.
        classification: Service type -> category table.

    Returns:
        ShiftAggregation with every record either aggregated or excluded.
    """
    rows = {d: DailyAttendance(work_date=d) for d in period.dates()}
    exclusions: list[Exclusion] = []
    included = 0

    def exclude(shift: ShiftRecord, reason: ExclusionReason, detail: str = "") -> None:
        exclusions.append(Exclusion(shift=shift, reason=reason, detail=detail))
        logger.info(
            "shift_excluded",
            extra={
                "shift_id": shift.shift_id,
                "shift_date": shift.shift_date,
                "service_type": shift.service_type,
                "reason": reason.value,
                "detail": detail,
            },
        )

    for shift in shifts:
        reason = _exclusion_reason(shift, period)
        if reason is not None:
            exclude(shift, reason)
            continue

        try:
            service_type = parse_service_type(shift.service_type)
        except UnknownServiceTypeError as e:
            exclude(shift, ExclusionReason.UNKNOWN_SERVICE_TYPE, str(e))
            continue

        category = classification.get(service_type)
        if category is None:
            exclude(shift, ExclusionReason.NON_PAYABLE_SERVICE, service_type.value)
            continue

        row = rows[shift.shift_date]
        if category is ServiceCategory.OFFICE:
            row.office_work += shift.duration_hours
        elif category is ServiceCategory.SALES:
            row.sales_work += shift.duration_hours
        else:
            try:
                _add_split_hours(row, shift, category, night_window, hour_rounding)
            except MalformedTimeError as e:
                exclude(shift, ExclusionReason.MALFORMED_TIME, str(e))
                continue
        included += 1

    daily = tuple(rows[d] for d in sorted(rows))
    attendance = summarize_daily(daily)

    if exclusions:
        logger.info(
            "shift_aggregation_exclusions",
            extra={
                "period_start": period.start,
                "excluded": len(exclusions),
                "included": included,
            },
        )

    return ShiftAggregation(
        period=period,
        daily=daily,
        attendance=attendance,
        exclusions=tuple(exclusions),
        included_count=included,
    )
