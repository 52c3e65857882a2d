"""
Configuration Validator (``payroll_config.validator``).

Responsibility
--------------
Validates a parsed ``StatutoryTables`` set before it is cached and
served, so a typo in a band table is caught at load time instead of
producing a wrong premium months later.

Architecture position
---------------------
**Config layer** -- load-time validation.  Called by
``payroll_config.get_statutory_tables`` after parsing.

Invariants enforced
-------------------
* Band tables start at zero, are ordered, contiguous and disjoint, and
  end in exactly one open top band.
* Bracket tables are ordered by upper bound and end in one open bracket.
* The 丙 daily rows are contiguous and sit between the tax-free
  threshold and the formula base.
* Rates are positive, multipliers at least one.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> the set MUST
  NOT be served; the entrypoint raises ``InvalidBracketTableError``.
* Validation warnings  -> the set is served but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import (
    HeiTable,
    RateBracket,
    RemunerationBand,
    StatutoryTables,
)
from payroll_kernel.domain.values import ZERO


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_statutory_tables(tables: StatutoryTables) -> ConfigValidationResult:
    """Validate every table in a year set; a set with errors MUST NOT be served."""
    result = ConfigValidationResult()

    _validate_bands("health_bands", tables.insurance.health_bands, result)
    _validate_bands("pension_bands", tables.insurance.pension_bands, result)
    _validate_rates(tables, result)

    kou = tables.withholding.kou
    _validate_brackets("kou.salary_income_deduction", kou.salary_income_deduction, result)
    _validate_brackets("kou.progressive_brackets", kou.progressive_brackets, result)
    _validate_brackets("otsu.brackets", tables.withholding.otsu.brackets, result)
    _validate_hei(tables.withholding.hei, result)

    if tables.withholding.year != tables.year:
        result.add_error(
            f"withholding year {tables.withholding.year} != set year {tables.year}"
        )
    if tables.pay_rules.night_multiplier < Decimal(1):
        result.add_error("pay_rules.night_multiplier must be >= 1")
    if not tables.pay_rules.year_end_dates:
        result.add_warning("pay_rules.year_end.dates is empty")

    return result


def _validate_bands(
    name: str, bands: tuple[RemunerationBand, ...], result: ConfigValidationResult
) -> None:
    if not bands:
        result.add_error(f"{name}: table is empty")
        return
    if bands[0].lower != ZERO:
        result.add_error(f"{name}: first band must start at 0, got {bands[0].lower}")
    for i, band in enumerate(bands):
        is_last = i == len(bands) - 1
        if band.upper is None:
            if not is_last:
                result.add_error(f"{name}[{i}]: open band before the end of the table")
            continue
        if band.upper <= band.lower:
            result.add_error(f"{name}[{i}]: upper {band.upper} <= lower {band.lower}")
        if is_last:
            result.add_error(f"{name}: last band must be open (upper: null)")
        elif bands[i + 1].lower != band.upper:
            result.add_error(
                f"{name}[{i + 1}]: lower {bands[i + 1].lower} does not continue "
                f"previous upper {band.upper}"
            )
        if i > 0 and band.standard <= bands[i - 1].standard:
            result.add_error(f"{name}[{i}]: standard amounts must increase")


def _validate_brackets(
    name: str, brackets: tuple[RateBracket, ...], result: ConfigValidationResult
) -> None:
    if not brackets:
        result.add_error(f"{name}: table is empty")
        return
    previous: Decimal | None = None
    for i, bracket in enumerate(brackets):
        if bracket.rate < ZERO:
            result.add_error(f"{name}[{i}]: negative rate {bracket.rate}")
        if bracket.upper is None:
            if i != len(brackets) - 1:
                result.add_error(f"{name}[{i}]: open bracket before the end of the table")
            continue
        if previous is not None and bracket.upper <= previous:
            result.add_error(f"{name}[{i}]: upper bounds must increase")
        previous = bracket.upper
    if brackets[-1].upper is not None:
        result.add_error(f"{name}: last bracket must be open (upper: null)")


def _validate_rates(tables: StatutoryTables, result: ConfigValidationResult) -> None:
    rates = tables.insurance.rates
    for label, value in (
        ("health", rates.health),
        ("care", rates.care),
        ("pension", rates.pension),
        ("employment", rates.employment),
    ):
        if value <= ZERO or value >= Decimal(1):
            result.add_error(f"insurance.rates.{label} must be in (0, 1), got {value}")


def _validate_hei(hei: HeiTable, result: ConfigValidationResult) -> None:
    if not hei.rows:
        result.add_error("hei.rows: table is empty")
        return
    if hei.rows[0].lower != hei.tax_free_threshold:
        result.add_error(
            f"hei.rows: first row starts at {hei.rows[0].lower}, "
            f"expected tax-free threshold {hei.tax_free_threshold}"
        )
    for i in range(1, len(hei.rows)):
        if hei.rows[i].lower != hei.rows[i - 1].upper:
            result.add_error(f"hei.rows[{i}]: rows must be contiguous")
        if hei.rows[i].tax < hei.rows[i - 1].tax:
            result.add_error(f"hei.rows[{i}]: tax must not decrease")
    if hei.rows[-1].upper != hei.formula_base:
        result.add_error(
            f"hei.rows: last row ends at {hei.rows[-1].upper}, "
            f"expected formula base {hei.formula_base}"
        )
    if hei.formula_rate <= ZERO:
        result.add_error("hei.formula.rate must be positive")
