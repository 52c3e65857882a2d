"""
Withholding Tax Calculator (``payroll_engines.withholding``).

Responsibility
--------------
Computes monthly withholding income tax (源泉徴収税額) for the three
columns of the statutory table:

* 甲 (KOU)  -- primary employer.  Electronic computation method: salary
  income deduction, basic deduction and per-dependent deduction are
  subtracted, then the progressive rate brackets apply.
* 乙 (OTSU) -- secondary employer.  Rate bands that ignore dependents.
* 丙 (HEI)  -- daily / short-term.  Daily average looked up in the daily
  table, formula above the table, multiplied back by the days worked.

Architecture position
---------------------
**Engines layer** -- pure functional core.  Year tables arrive as a
parameter; when omitted they are fetched from ``payroll_config``.

Invariants enforced
-------------------
* The year selects its table exactly; there is no fallback to a nearby
  year.
* Non-positive taxable amounts withhold nothing.
* Rounding per column comes from the table (甲 half-up to 10 yen,
  乙 floor to the yen, 丙 floor to 10 yen).

Failure modes
-------------
* ``UnsupportedTaxYearError`` -- no table for the year.
* ``UnsupportedTaxColumnError`` -- column is not 甲/乙/丙.
* ``ValueError`` -- negative dependents, or a table for another year.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_config import get_statutory_tables
from payroll_config.schema import (
    HeiTable,
    KouTable,
    OtsuTable,
    RateBracket,
    WithholdingYearTable,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.profile import TaxColumn
from payroll_kernel.domain.values import ZERO, round_floor
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.withholding")


@dataclass(frozen=True)
class WithholdingTaxResult:
    """Withholding tax and the intermediate values that produced it."""

    year: int
    column: TaxColumn
    taxable_amount: Decimal
    tax: Decimal
    dependents: int = 0
    salary_income_deduction: Decimal | None = None  # 甲
    taxable_income: Decimal | None = None  # 甲
    working_days: int | None = None  # 丙
    daily_average: Decimal | None = None  # 丙
    daily_tax: Decimal | None = None  # 丙


def tax_year_for(year: int, month: int) -> int:
    """Statutory year of a payslip: December pay is paid in January."""
    return year + 1 if month == 12 else year


def _first_bracket(amount: Decimal, brackets: tuple[RateBracket, ...]) -> RateBracket:
    for bracket in brackets:
        if bracket.covers(amount):
            return bracket
    return brackets[-1]


def salary_income_deduction(amount: Decimal, table: KouTable) -> Decimal:
    """Monthly 給与所得控除 for ``amount``."""
    bracket = _first_bracket(amount, table.salary_income_deduction)
    return table.deduction_rounding.apply(bracket.evaluate(amount))


def progressive_tax(taxable_income: Decimal, table: KouTable) -> Decimal:
    """
    Progressive tax on taxable income, rounded per the 甲 rule.

    61,082 falls in the first bracket: 61,082 x 5.105% = 3,118.2, which
    rounds half-up to 3,120.
    """
    if taxable_income <= ZERO:
        return ZERO
    bracket = _first_bracket(taxable_income, table.progressive_brackets)
    return max(ZERO, table.rounding.apply(bracket.evaluate(taxable_income)))


def _kou(
    year: int, amount: Decimal, dependents: int, table: KouTable
) -> WithholdingTaxResult:
    if amount < table.tax_free_threshold:
        return WithholdingTaxResult(
            year=year,
            column=TaxColumn.KOU,
            taxable_amount=amount,
            tax=ZERO,
            dependents=dependents,
        )
    deduction = salary_income_deduction(amount, table)
    taxable_income = max(
        ZERO,
        amount
        - deduction
        - table.basic_deduction
        - table.dependent_deduction * dependents,
    )
    return WithholdingTaxResult(
        year=year,
        column=TaxColumn.KOU,
        taxable_amount=amount,
        tax=progressive_tax(taxable_income, table),
        dependents=dependents,
        salary_income_deduction=deduction,
        taxable_income=taxable_income,
    )


def _otsu(year: int, amount: Decimal, dependents: int, table: OtsuTable) -> WithholdingTaxResult:
    tax = ZERO
    if amount > ZERO:
        bracket = _first_bracket(amount, table.brackets)
        tax = max(ZERO, table.rounding.apply(bracket.evaluate(amount)))
    return WithholdingTaxResult(
        year=year,
        column=TaxColumn.OTSU,
        taxable_amount=amount,
        tax=tax,
        dependents=dependents,
    )


def daily_table_tax(daily_average: Decimal, table: HeiTable) -> Decimal:
    """Per-day 丙 tax for a daily average."""
    if daily_average < table.tax_free_threshold:
        return ZERO
    for row in table.rows:
        if row.lower <= daily_average < row.upper:
            return row.tax
    excess = daily_average - table.formula_base
    return table.daily_rounding.apply(excess * table.formula_rate) + table.formula_addend


def _hei(
    year: int,
    amount: Decimal,
    dependents: int,
    working_days: int | None,
    table: HeiTable,
) -> WithholdingTaxResult:
    days = working_days or 0
    if days <= 0:
        logger.warning(
            "hei_working_days_defaulted",
            extra={"year": year, "working_days": working_days, "used_days": 1},
        )
        days = 1
    if amount <= ZERO:
        return WithholdingTaxResult(
            year=year,
            column=TaxColumn.HEI,
            taxable_amount=amount,
            tax=ZERO,
            dependents=dependents,
            working_days=days,
            daily_average=ZERO,
            daily_tax=ZERO,
        )
    average = round_floor(amount / Decimal(days))
    daily = daily_table_tax(average, table)
    return WithholdingTaxResult(
        year=year,
        column=TaxColumn.HEI,
        taxable_amount=amount,
        tax=table.rounding.apply(daily * days),
        dependents=dependents,
        working_days=days,
        daily_average=average,
        daily_tax=daily,
    )


def _resolve_table(year: int, tables: WithholdingYearTable | None) -> WithholdingYearTable:
    if tables is None:
        return get_statutory_tables(year).withholding
    if tables.year != year:
        raise ValueError(f"withholding table is for {tables.year}, not {year}")
    return tables


@traced_engine(
    "withholding_tax",
    "1.0",
    fingerprint_fields=("year", "taxable_amount", "dependents", "column", "working_days"),
)
def calculate_withholding_tax(
    year: int,
    taxable_amount: Decimal,
    dependents: int,
    column: TaxColumn | str,
    working_days: int | None = None,
    tables: WithholdingYearTable | None = None,
) -> WithholdingTaxResult:
    """
    Withholding tax for one month's taxable amount.

    Args:
        year: Payment year selecting the table.
        taxable_amount: Pay after social insurance and non-taxable lines.
        dependents: Number of dependents (甲 only).
        column: 甲/乙/丙 or an accepted alias.
        working_days: Days worked in the period (丙 only).
        tables: Year table; fetched from configuration when omitted.

    Raises:
        UnsupportedTaxYearError: no table for ``year``.
        UnsupportedTaxColumnError: unknown column.
    """
    tax_column = TaxColumn.parse(column)
    if dependents < 0:
        raise ValueError("dependents cannot be negative")
    table = _resolve_table(year, tables)

    if tax_column is TaxColumn.KOU:
        return _kou(year, taxable_amount, dependents, table.kou)
    if tax_column is TaxColumn.OTSU:
        return _otsu(year, taxable_amount, dependents, table.otsu)
    return _hei(year, taxable_amount, dependents, working_days, table.hei)
