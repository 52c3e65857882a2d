"""
Payroll services -- orchestration over engines, kernel and configuration.

- PayslipRecalculationEngine: the single generate/recalculate pipeline
- PayslipService: generate, edit-and-recalculate, monthly fan-out
"""

from payroll_services.payslip_service import (
    HelperBatch,
    MonthlyGenerationResult,
    PayslipService,
)
from payroll_services.recalculation import (
    IssueSeverity,
    PayslipRecalculationEngine,
    RecalculationIssue,
    RecalculationResult,
)

__all__ = [
    "HelperBatch",
    "IssueSeverity",
    "MonthlyGenerationResult",
    "PayslipRecalculationEngine",
    "PayslipService",
    "RecalculationIssue",
    "RecalculationResult",
]
