"""
Payslip -- the derived pay-statement aggregate.

Responsibility:
    Holds one helper's pay statement for one (year, month): daily
    attendance rows, attendance totals, payment lines, deductions and
    the net/bank/cash totals, plus a typed override state for every
    derived numeric field.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Mutated only by the
    recalculation engine (which works on a copy) and by editors pinning
    values.

Override model:
    Each derived field is either ``COMPUTED`` (the engine owns it) or
    ``Pinned(value)`` (a human typed it; the value is authoritative and
    flows unchanged into downstream formulas).  ``Payslip.pin`` writes
    the value and records the pin in one step; ``Payslip.resolve`` is
    the single call a recomputation stage makes per field.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum, unique

from payroll_kernel.domain.profile import AllowanceItem, SalaryMode
from payroll_kernel.domain.values import ZERO, to_decimal
from payroll_kernel.exceptions import UnknownPayslipFieldError


# ---------------------------------------------------------------------------
# Override state
# ---------------------------------------------------------------------------


class Computed:
    """Override state: the engine derives the value."""

    _instance: Computed | None = None

    def __new__(cls) -> Computed:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "COMPUTED"

    def __deepcopy__(self, memo: dict) -> Computed:
        return self


COMPUTED = Computed()


@dataclass(frozen=True)
class Pinned:
    """Override state: value set by a human, never recomputed."""

    value: Decimal | int


FieldOverride = Computed | Pinned


@unique
class PayslipField(str, Enum):
    """Every derived numeric field of a payslip, as ``section.attribute``."""

    # Attendance
    NORMAL_WORK_DAYS = "attendance.normal_work_days"
    ACCOMPANY_DAYS = "attendance.accompany_days"
    TOTAL_WORK_DAYS = "attendance.total_work_days"
    NORMAL_HOURS = "attendance.normal_hours"
    NIGHT_NORMAL_HOURS = "attendance.night_normal_hours"
    ACCOMPANY_HOURS = "attendance.accompany_hours"
    NIGHT_ACCOMPANY_HOURS = "attendance.night_accompany_hours"
    OFFICE_HOURS = "attendance.office_hours"
    SALES_HOURS = "attendance.sales_hours"
    TOTAL_WORK_HOURS = "attendance.total_work_hours"

    # Payments
    BASE_PAY = "payments.base_pay"
    TREATMENT_ALLOWANCE_PAY = "payments.treatment_allowance_pay"
    NORMAL_WORK_PAY = "payments.normal_work_pay"
    NIGHT_NORMAL_PAY = "payments.night_normal_pay"
    ACCOMPANY_PAY = "payments.accompany_pay"
    NIGHT_ACCOMPANY_PAY = "payments.night_accompany_pay"
    OFFICE_PAY = "payments.office_pay"
    SALES_PAY = "payments.sales_pay"
    YEAR_END_NEW_YEAR_ALLOWANCE = "payments.year_end_new_year_allowance"
    TOTAL_PAYMENT = "payments.total_payment"

    # Deductions
    HEALTH_STANDARD_REMUNERATION = "deductions.health_standard_remuneration"
    PENSION_STANDARD_REMUNERATION = "deductions.pension_standard_remuneration"
    HEALTH_INSURANCE = "deductions.health_insurance"
    CARE_INSURANCE = "deductions.care_insurance"
    PENSION_INSURANCE = "deductions.pension_insurance"
    EMPLOYMENT_INSURANCE = "deductions.employment_insurance"
    SOCIAL_INSURANCE_TOTAL = "deductions.social_insurance_total"
    TAXABLE_AMOUNT = "deductions.taxable_amount"
    INCOME_TAX = "deductions.income_tax"
    DEDUCTION_TOTAL = "deductions.deduction_total"
    TOTAL_DEDUCTION = "deductions.total_deduction"

    # Totals
    NET_PAYMENT = "totals.net_payment"
    BANK_TRANSFER = "totals.bank_transfer"
    CASH_PAYMENT = "totals.cash_payment"

    @property
    def section(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def attribute(self) -> str:
        return self.value.split(".", 1)[1]

    @property
    def is_count(self) -> bool:
        return self.attribute.endswith("_days")

    @classmethod
    def parse(cls, name: str | PayslipField) -> PayslipField:
        """Look up by enum value ("deductions.income_tax") or name ("INCOME_TAX")."""
        if isinstance(name, PayslipField):
            return name
        try:
            return cls(name)
        except ValueError:
            pass
        try:
            return cls[name.upper()]
        except KeyError as e:
            raise UnknownPayslipFieldError(name) from e


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass
class DailyAttendance:
    """One calendar day of the payroll period."""

    work_date: date
    normal_work: Decimal = ZERO
    normal_night: Decimal = ZERO
    accompany_work: Decimal = ZERO
    accompany_night: Decimal = ZERO
    office_work: Decimal = ZERO
    sales_work: Decimal = ZERO

    @property
    def total_hours(self) -> Decimal:
        return (
            self.normal_work
            + self.normal_night
            + self.accompany_work
            + self.accompany_night
            + self.office_work
            + self.sales_work
        )

    @property
    def has_normal_work(self) -> bool:
        return self.normal_work + self.normal_night > ZERO

    @property
    def has_accompany_work(self) -> bool:
        return self.accompany_work + self.accompany_night > ZERO


@dataclass
class Attendance:
    """勤怠: day counts and category hour totals."""

    normal_work_days: int = 0
    accompany_days: int = 0
    total_work_days: int = 0

    normal_hours: Decimal = ZERO
    night_normal_hours: Decimal = ZERO
    accompany_hours: Decimal = ZERO
    night_accompany_hours: Decimal = ZERO
    office_hours: Decimal = ZERO
    sales_hours: Decimal = ZERO
    total_work_hours: Decimal = ZERO

    def category_hours_sum(self) -> Decimal:
        return (
            self.normal_hours
            + self.night_normal_hours
            + self.accompany_hours
            + self.night_accompany_hours
            + self.office_hours
            + self.sales_hours
        )


# Lines that form 給与 (salary); everything else in Payments is either
# a non-taxable reimbursement or an other-allowance item.
SALARY_LINES: tuple[str, ...] = (
    "base_pay",
    "treatment_allowance_pay",
    "normal_work_pay",
    "night_normal_pay",
    "accompany_pay",
    "night_accompany_pay",
    "office_pay",
    "sales_pay",
    "year_end_new_year_allowance",
    "overtime_pay",
    "night_allowance",
)

NON_TAXABLE_LINES: tuple[str, ...] = (
    "transport_allowance",
    "expense_reimbursement",
    "emergency_allowance",
)


@dataclass
class Payments:
    """支給: per-category pay lines, input lines and other allowances."""

    # derived
    base_pay: Decimal = ZERO
    treatment_allowance_pay: Decimal = ZERO
    normal_work_pay: Decimal = ZERO
    night_normal_pay: Decimal = ZERO
    accompany_pay: Decimal = ZERO
    night_accompany_pay: Decimal = ZERO
    office_pay: Decimal = ZERO
    sales_pay: Decimal = ZERO
    year_end_new_year_allowance: Decimal = ZERO

    # entered
    overtime_pay: Decimal = ZERO
    night_allowance: Decimal = ZERO
    emergency_allowance: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    expense_reimbursement: Decimal = ZERO
    other_allowances: list[AllowanceItem] = field(default_factory=list)

    total_payment: Decimal = ZERO

    def salary_lines_total(self) -> Decimal:
        return sum((getattr(self, name) for name in SALARY_LINES), ZERO)

    def taxable_other_allowances(self) -> Decimal:
        return sum((a.amount for a in self.other_allowances if a.taxable), ZERO)

    def non_taxable_other_allowances(self) -> Decimal:
        return sum((a.amount for a in self.other_allowances if not a.taxable), ZERO)

    def non_taxable_total(self) -> Decimal:
        lines = sum((getattr(self, name) for name in NON_TAXABLE_LINES), ZERO)
        return lines + self.non_taxable_other_allowances()

    def lines_total(self) -> Decimal:
        return (
            self.salary_lines_total()
            + self.taxable_other_allowances()
            + self.non_taxable_total()
        )


@dataclass
class DeductionItem:
    """A named deduction line (advance payment, year-end adjustment ...)."""

    name: str
    amount: Decimal

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount, "amount")


@dataclass
class Deductions:
    """控除: insurance premiums, taxes and other deduction items."""

    health_standard_remuneration: Decimal = ZERO
    pension_standard_remuneration: Decimal = ZERO

    health_insurance: Decimal = ZERO
    care_insurance: Decimal = ZERO
    pension_insurance: Decimal = ZERO
    employment_insurance: Decimal = ZERO
    social_insurance_total: Decimal = ZERO

    taxable_amount: Decimal = ZERO
    income_tax: Decimal = ZERO
    resident_tax: Decimal = ZERO
    other_items: list[DeductionItem] = field(default_factory=list)
    deduction_total: Decimal = ZERO  # 控除計: taxes + other items
    total_deduction: Decimal = ZERO  # 控除合計: social insurance + 控除計

    def insurance_lines_total(self) -> Decimal:
        return (
            self.health_insurance
            + self.care_insurance
            + self.pension_insurance
            + self.employment_insurance
        )

    def other_items_total(self) -> Decimal:
        return sum((item.amount for item in self.other_items), ZERO)


@dataclass
class Totals:
    """合計: net payment and its bank/cash split."""

    net_payment: Decimal = ZERO
    bank_transfer: Decimal = ZERO
    cash_payment: Decimal = ZERO


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


@dataclass
class Payslip:
    """
    Pay statement for one helper and one payroll month.

    Created once by generation, then edited: editors call ``pin`` when a
    user types a derived value and edit entered lines (overtime,
    resident tax, other items, daily rows) directly.  Every edit is
    followed by a recomputation pass over a copy.
    """

    helper_id: str
    year: int
    month: int
    salary_mode: SalaryMode
    payslip_id: str = ""

    attendance: Attendance = field(default_factory=Attendance)
    daily_attendance: list[DailyAttendance] = field(default_factory=list)
    payments: Payments = field(default_factory=Payments)
    deductions: Deductions = field(default_factory=Deductions)
    totals: Totals = field(default_factory=Totals)
    overrides: dict[PayslipField, Pinned] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")
        if not isinstance(self.salary_mode, SalaryMode):
            self.salary_mode = SalaryMode(self.salary_mode)
        if not self.payslip_id:
            self.payslip_id = f"{self.helper_id}-{self.year:04d}{self.month:02d}"

    # -- field access -------------------------------------------------------

    def get(self, payslip_field: PayslipField | str) -> Decimal | int:
        f = PayslipField.parse(payslip_field)
        return getattr(getattr(self, f.section), f.attribute)

    def _set(self, f: PayslipField, value: Decimal | int) -> None:
        setattr(getattr(self, f.section), f.attribute, value)

    @staticmethod
    def _coerce(f: PayslipField, value: Decimal | int | str) -> Decimal | int:
        if f.is_count:
            return int(value)
        return to_decimal(value, f.value)

    # -- overrides ----------------------------------------------------------

    def override(self, payslip_field: PayslipField | str) -> FieldOverride:
        return self.overrides.get(PayslipField.parse(payslip_field), COMPUTED)

    def is_pinned(self, payslip_field: PayslipField | str) -> bool:
        return PayslipField.parse(payslip_field) in self.overrides

    def pin(self, payslip_field: PayslipField | str, value: Decimal | int | str) -> None:
        """Record a user-entered value; recomputation will keep it."""
        f = PayslipField.parse(payslip_field)
        coerced = self._coerce(f, value)
        self.overrides[f] = Pinned(coerced)
        self._set(f, coerced)

    def unpin(self, payslip_field: PayslipField | str) -> None:
        """Hand the field back to the engine (value refreshed on next pass)."""
        self.overrides.pop(PayslipField.parse(payslip_field), None)

    def pinned_fields(self) -> frozenset[PayslipField]:
        return frozenset(self.overrides)

    def resolve(self, f: PayslipField, computed: Decimal | int) -> Decimal | int:
        """Write the pinned value if any, else ``computed``; return what was written."""
        state = self.override(f)
        value = state.value if isinstance(state, Pinned) else computed
        self._set(f, value)
        return value

    def copy(self) -> Payslip:
        return copy.deepcopy(self)

    # -- construction -------------------------------------------------------

    @classmethod
    def empty(
        cls,
        helper_id: str,
        year: int,
        month: int,
        salary_mode: SalaryMode,
        period_dates: list[date] | None = None,
    ) -> Payslip:
        """Blank payslip with one zero row per day of the payroll period."""
        payslip = cls(
            helper_id=helper_id,
            year=year,
            month=month,
            salary_mode=salary_mode,
        )
        payslip.daily_attendance = [DailyAttendance(work_date=d) for d in period_dates or ()]
        return payslip
