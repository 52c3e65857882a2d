"""
Pure domain layer.

This module contains the payroll data objects and domain logic
with NO dependencies on:
- Statutory configuration files
- Engines or services
- Time/clock
- I/O

Inputs (shifts, profiles) are immutable; the Payslip aggregate is
mutable but only ever recomputed on a copy.
"""

from payroll_kernel.domain.invariants import (
    ALL_PAYSLIP_INVARIANTS,
    InvariantViolation,
    PayslipInvariant,
    check_invariants,
)
from payroll_kernel.domain.payslip import (
    COMPUTED,
    Attendance,
    Computed,
    DailyAttendance,
    DeductionItem,
    Deductions,
    Payments,
    Payslip,
    PayslipField,
    Pinned,
    Totals,
)
from payroll_kernel.domain.profile import (
    AllowanceItem,
    HelperPayProfile,
    InsuranceType,
    SalaryMode,
    TaxColumn,
)
from payroll_kernel.domain.shift import (
    SERVICE_TYPE_CATEGORIES,
    CancelStatus,
    ServiceCategory,
    ServiceType,
    ShiftRecord,
    classify_service_type,
    parse_service_type,
)
from payroll_kernel.domain.values import (
    ZERO,
    HourRounding,
    RoundingRule,
    round_floor,
    round_half_up,
    to_decimal,
)

__all__ = [
    "ALL_PAYSLIP_INVARIANTS",
    "COMPUTED",
    "SERVICE_TYPE_CATEGORIES",
    "ZERO",
    "AllowanceItem",
    "Attendance",
    "CancelStatus",
    "Computed",
    "DailyAttendance",
    "DeductionItem",
    "Deductions",
    "HelperPayProfile",
    "HourRounding",
    "InsuranceType",
    "InvariantViolation",
    "Payments",
    "Payslip",
    "PayslipField",
    "PayslipInvariant",
    "Pinned",
    "RoundingRule",
    "SalaryMode",
    "ServiceCategory",
    "ServiceType",
    "ShiftRecord",
    "TaxColumn",
    "Totals",
    "check_invariants",
    "classify_service_type",
    "parse_service_type",
    "round_floor",
    "round_half_up",
    "to_decimal",
]
