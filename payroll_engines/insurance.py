"""
Insurance Premium Calculator (``payroll_engines.insurance``).

Responsibility
--------------
Derives the standard monthly remuneration (標準報酬月額) from gross pay
through the health and pension band tables, and computes the employee
share of health, long-term care, pension and employment insurance.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.  Rates and band
tables arrive as parameters from ``payroll_config``.

Invariants enforced
-------------------
* Band lookup is a linear scan of half-open [lower, upper) bands; the
  first match wins; amounts at or above the top band's lower bound map
  to the capped standard amount.
* Health and pension use separate tables (different caps).
* Health, care and pension round half-up to the yen; employment
  insurance is floored.
* Care insurance is charged only alongside health insurance, and only
  from the care-age threshold or when explicitly enabled.
* A disabled insurance type contributes exactly zero.

Failure modes
-------------
* ``ValueError`` for an empty band table (a configuration defect the
  validator should already have rejected).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from payroll_config.schema import InsuranceRates, InsuranceTables, RemunerationBand
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.profile import InsuranceType
from payroll_kernel.domain.values import ZERO


@dataclass(frozen=True)
class StandardRemuneration:
    """Standard monthly remuneration for health and pension."""

    health: Decimal
    pension: Decimal

    @classmethod
    def pinned(cls, amount: Decimal) -> StandardRemuneration:
        return cls(health=amount, pension=amount)


@dataclass(frozen=True)
class InsurancePremiums:
    """Employee-share premiums; ``applied_types`` records what was charged."""

    health: Decimal
    care: Decimal
    pension: Decimal
    employment: Decimal
    applied_types: frozenset[InsuranceType]

    @property
    def total(self) -> Decimal:
        return self.health + self.care + self.pension + self.employment


def lookup_standard_amount(amount: Decimal, bands: tuple[RemunerationBand, ...]) -> Decimal:
    """Standard amount of the first band containing ``amount``."""
    if not bands:
        raise ValueError("band table is empty")
    if amount < bands[0].lower:
        return bands[0].standard
    for band in bands:
        if band.contains(amount):
            return band.standard
    return bands[-1].standard


def derive_standard_remuneration(
    gross: Decimal, tables: InsuranceTables
) -> StandardRemuneration:
    """Map monthly gross pay to health and pension standard remuneration."""
    return StandardRemuneration(
        health=lookup_standard_amount(gross, tables.health_bands),
        pension=lookup_standard_amount(gross, tables.pension_bands),
    )


@traced_engine(
    "insurance_premiums",
    "1.0",
    fingerprint_fields=(
        "standard_remuneration",
        "monthly_salary_total",
        "age",
        "insurance_types",
        "non_taxable_transport_allowance",
        "pension_standard_remuneration",
    ),
)
def calculate_premiums(
    standard_remuneration: Decimal,
    monthly_salary_total: Decimal,
    age: int,
    insurance_types: Iterable[InsuranceType],
    non_taxable_transport_allowance: Decimal = ZERO,
    *,
    rates: InsuranceRates,
    pension_standard_remuneration: Decimal | None = None,
) -> InsurancePremiums:
    """
    Employee-share premiums for one month.

    Args:
        standard_remuneration: Health standard remuneration; also used
            for pension unless ``pension_standard_remuneration`` is given.
        monthly_salary_total: Gross monthly pay (employment base before
            removing non-taxable transport).
        age: Helper age in years (care insurance threshold).
        insurance_types: Enabled schemes.
        non_taxable_transport_allowance: Removed from the employment base.
        rates: The year's premium rates and rounding.
        pension_standard_remuneration: Pension-table standard amount.

    Returns:
        InsurancePremiums; disabled types are zero.
    """
    types = frozenset(InsuranceType(t) for t in insurance_types)
    pension_base = (
        standard_remuneration
        if pension_standard_remuneration is None
        else pension_standard_remuneration
    )
    applied: set[InsuranceType] = set()

    health = care = pension = employment = ZERO

    if InsuranceType.HEALTH in types:
        health = rates.premium_rounding.apply(standard_remuneration * rates.health)
        applied.add(InsuranceType.HEALTH)
        if age >= rates.care_age_threshold or InsuranceType.CARE in types:
            care = rates.premium_rounding.apply(standard_remuneration * rates.care)
            applied.add(InsuranceType.CARE)

    if InsuranceType.PENSION in types:
        pension = rates.premium_rounding.apply(pension_base * rates.pension)
        applied.add(InsuranceType.PENSION)

    if InsuranceType.EMPLOYMENT in types:
        base = max(ZERO, monthly_salary_total - non_taxable_transport_allowance)
        employment = rates.employment_rounding.apply(base * rates.employment)
        applied.add(InsuranceType.EMPLOYMENT)

    return InsurancePremiums(
        health=health,
        care=care,
        pension=pension,
        employment=employment,
        applied_types=frozenset(applied),
    )
