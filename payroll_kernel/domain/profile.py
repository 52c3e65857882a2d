"""
Helper pay profile -- the read-only pay master for one helper.

Owned by the helper registry; this core only reads it.  Amounts are
coerced to Decimal on construction so callers may pass ints or strings
straight from storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import ZERO, to_decimal
from payroll_kernel.exceptions import UnsupportedTaxColumnError


class SalaryMode(str, Enum):
    """How gross pay is formed."""

    FIXED = "fixed"  # 固定給 (monthly salary)
    HOURLY = "hourly"  # 時給


class TaxColumn(str, Enum):
    """Withholding tax column."""

    KOU = "甲"  # primary employer, dependent-adjusted
    OTSU = "乙"  # secondary employer
    HEI = "丙"  # daily / short-term

    @classmethod
    def parse(cls, value: str | TaxColumn) -> TaxColumn:
        """Accept the kanji or the scheduler's romanized aliases.

        Raises:
            UnsupportedTaxColumnError: for anything else.
        """
        if isinstance(value, TaxColumn):
            return value
        key = str(value).strip().lower()
        column = _COLUMN_ALIASES.get(key)
        if column is None:
            raise UnsupportedTaxColumnError(str(value))
        return column


_COLUMN_ALIASES: dict[str, TaxColumn] = {
    "甲": TaxColumn.KOU,
    "kou": TaxColumn.KOU,
    "main": TaxColumn.KOU,
    "primary": TaxColumn.KOU,
    "乙": TaxColumn.OTSU,
    "otsu": TaxColumn.OTSU,
    "sub": TaxColumn.OTSU,
    "secondary": TaxColumn.OTSU,
    "丙": TaxColumn.HEI,
    "hei": TaxColumn.HEI,
    "daily": TaxColumn.HEI,
}


class InsuranceType(str, Enum):
    """Social insurance schemes a helper may participate in."""

    HEALTH = "health"  # 健康保険
    CARE = "care"  # 介護保険
    PENSION = "pension"  # 厚生年金
    EMPLOYMENT = "employment"  # 雇用保険


@dataclass(frozen=True)
class AllowanceItem:
    """A named allowance line, taxable unless flagged otherwise."""

    name: str
    amount: Decimal
    taxable: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))


_MONEY_FIELDS = (
    "base_salary",
    "treatment_allowance",
    "base_hourly_rate",
    "treatment_allowance_per_hour",
    "office_hourly_rate",
    "resident_tax",
    "transport_allowance",
    "expense_reimbursement",
)


@dataclass(frozen=True)
class HelperPayProfile:
    """
    Pay master for one helper.

    Fixed-mode helpers use ``base_salary`` and the monthly
    ``treatment_allowance``; hourly helpers use the per-hour rates.
    ``accompany_hourly_rate`` defaults to the normal hourly rate when
    absent.  ``pinned_standard_remuneration`` replaces the bracket
    lookup for health, care and pension premiums.
    """

    helper_id: str
    salary_mode: SalaryMode
    name: str = ""

    base_salary: Decimal = ZERO
    treatment_allowance: Decimal = ZERO
    base_hourly_rate: Decimal = ZERO
    treatment_allowance_per_hour: Decimal = ZERO
    accompany_hourly_rate: Decimal | None = None
    office_hourly_rate: Decimal = ZERO

    insurance_types: frozenset[InsuranceType] = frozenset()
    age: int = 0
    dependents: int = 0
    tax_column: TaxColumn = TaxColumn.KOU
    pinned_standard_remuneration: Decimal | None = None
    withholding_enabled: bool = True
    prefers_cash: bool = False

    resident_tax: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    expense_reimbursement: Decimal = ZERO
    other_allowances: tuple[AllowanceItem, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.salary_mode, SalaryMode):
            object.__setattr__(self, "salary_mode", SalaryMode(self.salary_mode))
        object.__setattr__(self, "tax_column", TaxColumn.parse(self.tax_column))
        object.__setattr__(
            self,
            "insurance_types",
            frozenset(InsuranceType(t) for t in self.insurance_types),
        )
        object.__setattr__(self, "other_allowances", tuple(self.other_allowances))
        for name in _MONEY_FIELDS:
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if self.accompany_hourly_rate is not None:
            object.__setattr__(
                self,
                "accompany_hourly_rate",
                to_decimal(self.accompany_hourly_rate, "accompany_hourly_rate"),
            )
        if self.pinned_standard_remuneration is not None:
            object.__setattr__(
                self,
                "pinned_standard_remuneration",
                to_decimal(
                    self.pinned_standard_remuneration, "pinned_standard_remuneration"
                ),
            )
        if self.dependents < 0:
            raise ValueError("dependents cannot be negative")
        if self.age < 0:
            raise ValueError("age cannot be negative")

    @property
    def total_hourly_rate(self) -> Decimal:
        """基本時給 + 処遇改善加算 (per hour)."""
        return self.base_hourly_rate + self.treatment_allowance_per_hour

    @property
    def effective_accompany_rate(self) -> Decimal:
        if self.accompany_hourly_rate is None:
            return self.total_hourly_rate
        return self.accompany_hourly_rate

    def has_insurance(self, insurance_type: InsuranceType) -> bool:
        return insurance_type in self.insurance_types
