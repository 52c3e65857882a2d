"""
StatutoryTables schema.

Defines the year-versioned statutory data every payroll computation
reads: the night window, hour rounding, social-insurance rates and
standard-remuneration bands, withholding-tax tables for the three
columns, and the pay rules for night and year-end/new-year work.

YAML fragments under ``payroll_config/sets/`` are parsed into these
types by the loader and validated by the validator.  Every type is
frozen; a loaded set is shared read-only across threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_kernel.domain.values import (
    MINUTES_PER_DAY,
    ZERO,
    HourRounding,
    RoundingRule,
)

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NightWindow:
    """
    Night-premium window in minutes from the shift's start-day midnight.

    ``end_minute`` may exceed 1440 (the window crosses midnight).  On
    the extended clock a shift starting day D spans [0, 2880); the
    window then covers the tail of the previous night [0, 08:00), the
    evening [22:00, 24:00) and the following morning [24:00, 32:00).
    """

    start_minute: int = 22 * 60
    end_minute: int = 32 * 60

    def segments(self) -> tuple[tuple[int, int], ...]:
        if self.end_minute <= MINUTES_PER_DAY:
            return ((self.start_minute, self.end_minute),)
        return (
            (0, self.end_minute - MINUTES_PER_DAY),
            (self.start_minute, MINUTES_PER_DAY),
            (MINUTES_PER_DAY, self.end_minute),
        )


# ---------------------------------------------------------------------------
# Social insurance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemunerationBand:
    """Half-open band [lower, upper) mapping gross pay to a standard amount.

    ``upper`` is None for the open top band.
    """

    lower: Decimal
    upper: Decimal | None
    standard: Decimal

    def contains(self, amount: Decimal) -> bool:
        if amount < self.lower:
            return False
        return self.upper is None or amount < self.upper


@dataclass(frozen=True)
class InsuranceRates:
    """Employee-share premium rates (fractions, not percent)."""

    health: Decimal
    care: Decimal
    pension: Decimal
    employment: Decimal
    care_age_threshold: int = 40
    premium_rounding: RoundingRule = field(default_factory=RoundingRule)
    employment_rounding: RoundingRule = field(
        default_factory=lambda: RoundingRule(mode="floor")
    )


@dataclass(frozen=True)
class InsuranceTables:
    rates: InsuranceRates
    health_bands: tuple[RemunerationBand, ...]
    pension_bands: tuple[RemunerationBand, ...]


# ---------------------------------------------------------------------------
# Withholding tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateBracket:
    """Bracket ``amount <= upper`` evaluated as ``amount * rate + offset``.

    ``upper`` is None for the open top bracket.  A fixed amount is a
    bracket with rate 0.
    """

    upper: Decimal | None
    rate: Decimal
    offset: Decimal = ZERO

    def covers(self, amount: Decimal) -> bool:
        return self.upper is None or amount <= self.upper

    def evaluate(self, amount: Decimal) -> Decimal:
        return amount * self.rate + self.offset


@dataclass(frozen=True)
class KouTable:
    """甲欄 monthly computation (electronic computation method)."""

    tax_free_threshold: Decimal
    basic_deduction: Decimal
    dependent_deduction: Decimal
    salary_income_deduction: tuple[RateBracket, ...]
    progressive_brackets: tuple[RateBracket, ...]
    deduction_rounding: RoundingRule = field(
        default_factory=lambda: RoundingRule(mode="ceiling")
    )
    rounding: RoundingRule = field(
        default_factory=lambda: RoundingRule(unit=Decimal("10"), mode="half_up")
    )


@dataclass(frozen=True)
class OtsuTable:
    """乙欄: rate bands that ignore dependents."""

    brackets: tuple[RateBracket, ...]
    rounding: RoundingRule = field(default_factory=lambda: RoundingRule(mode="floor"))


@dataclass(frozen=True)
class DailyTaxRow:
    """日額表 row: daily average in [lower, upper) withholds ``tax`` per day."""

    lower: Decimal
    upper: Decimal
    tax: Decimal


@dataclass(frozen=True)
class HeiTable:
    """
    丙欄 daily table.

    Daily averages below ``tax_free_threshold`` withhold nothing; rows
    cover the table range; at or above ``formula_base`` the daily tax is
    ``floor((avg - formula_base) * formula_rate) + formula_addend``.
    """

    tax_free_threshold: Decimal
    rows: tuple[DailyTaxRow, ...]
    formula_base: Decimal
    formula_rate: Decimal
    formula_addend: Decimal
    daily_rounding: RoundingRule = field(default_factory=lambda: RoundingRule(mode="floor"))
    rounding: RoundingRule = field(
        default_factory=lambda: RoundingRule(unit=Decimal("10"), mode="floor")
    )


@dataclass(frozen=True)
class WithholdingYearTable:
    year: int
    kou: KouTable
    otsu: OtsuTable
    hei: HeiTable


# ---------------------------------------------------------------------------
# Pay rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayRules:
    """
    Pay rules applied to hourly helpers.

    ``year_end_dates`` are (month, day) pairs on which ordinary-care hours
    are paid at ``year_end_hourly_rate``.
    """

    night_multiplier: Decimal = Decimal("1.25")
    year_end_hourly_rate: Decimal = Decimal("3000")
    year_end_dates: frozenset[tuple[int, int]] = frozenset()
    period_extension_days: int = 4  # December covers 1..N January

    def is_year_end_date(self, month: int, day: int) -> bool:
        return (month, day) in self.year_end_dates


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatutoryTables:
    """Everything that varies by statutory year, plus its identity."""

    year: int
    version: int
    night_window: NightWindow
    hour_rounding: HourRounding
    insurance: InsuranceTables
    withholding: WithholdingYearTable
    pay_rules: PayRules
    checksum: str = ""
    source_path: str = ""
