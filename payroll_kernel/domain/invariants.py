"""
Payslip Invariants Contract.

These invariants are structural law for every recomputed payslip.  No
statutory table, profile flag or user pin may turn them off; a pin that
makes a sum disagree is reported, never silently repaired.

``check_invariants`` evaluates every rule and returns all failures in a
single pass so a rejected recomputation lists every anomaly at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, unique

from payroll_kernel.domain.payslip import Payslip
from payroll_kernel.domain.values import ZERO


@unique
class PayslipInvariant(str, Enum):
    """Sum rules that hold on every recomputed payslip."""

    HOURS_CONSISTENT = "hours_consistent"
    """attendance.total_work_hours equals the sum of the six category
    hour totals and the sum of the daily attendance rows."""

    SOCIAL_INSURANCE_SUM = "social_insurance_sum"
    """social_insurance_total equals health + care + pension +
    employment."""

    TOTAL_DEDUCTION_SUM = "total_deduction_sum"
    """total_deduction equals social_insurance_total + income_tax +
    resident_tax + every other deduction item."""

    NET_PAYMENT = "net_payment"
    """net_payment equals total_payment - total_deduction."""

    PAYMENT_SPLIT = "payment_split"
    """bank_transfer + cash_payment equals net_payment."""


ALL_PAYSLIP_INVARIANTS: frozenset[PayslipInvariant] = frozenset(PayslipInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "payroll_config",
    "payroll_engines",
    "payroll_services",
)


@dataclass(frozen=True)
class InvariantViolation:
    """One failed sum rule with the values that disagree."""

    invariant: PayslipInvariant
    expected: Decimal
    actual: Decimal
    message: str

    def to_dict(self) -> dict:
        return {
            "invariant": self.invariant.value,
            "expected": str(self.expected),
            "actual": str(self.actual),
            "message": self.message,
        }


def check_invariants(payslip: Payslip) -> list[InvariantViolation]:
    """Evaluate every payslip invariant; empty list means consistent."""
    violations: list[InvariantViolation] = []

    def expect(invariant: PayslipInvariant, expected: Decimal, actual: Decimal, what: str) -> None:
        if expected != actual:
            violations.append(
                InvariantViolation(
                    invariant=invariant,
                    expected=expected,
                    actual=actual,
                    message=f"{what}: expected {expected}, got {actual}",
                )
            )

    attendance = payslip.attendance
    deductions = payslip.deductions
    totals = payslip.totals

    expect(
        PayslipInvariant.HOURS_CONSISTENT,
        attendance.category_hours_sum(),
        attendance.total_work_hours,
        "total_work_hours vs category hours",
    )
    daily_sum = sum((row.total_hours for row in payslip.daily_attendance), ZERO)
    expect(
        PayslipInvariant.HOURS_CONSISTENT,
        daily_sum,
        attendance.total_work_hours,
        "total_work_hours vs daily rows",
    )
    expect(
        PayslipInvariant.SOCIAL_INSURANCE_SUM,
        deductions.insurance_lines_total(),
        deductions.social_insurance_total,
        "social_insurance_total",
    )
    expect(
        PayslipInvariant.TOTAL_DEDUCTION_SUM,
        deductions.social_insurance_total
        + deductions.income_tax
        + deductions.resident_tax
        + deductions.other_items_total(),
        deductions.total_deduction,
        "total_deduction",
    )
    expect(
        PayslipInvariant.NET_PAYMENT,
        payslip.payments.total_payment - deductions.total_deduction,
        totals.net_payment,
        "net_payment",
    )
    expect(
        PayslipInvariant.PAYMENT_SPLIT,
        totals.net_payment,
        totals.bank_transfer + totals.cash_payment,
        "bank_transfer + cash_payment",
    )
    return violations
