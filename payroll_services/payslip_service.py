"""
payroll_services.payslip_service -- Entry point for generating and editing payslips.

Responsibility:
    Wraps the recalculation engine with the operations callers use:
    generate one payslip from a shift batch, recalculate after an edit,
    pin a field and recalculate, and fan a whole month out over helpers.

Architecture position:
    Services -- stateless orchestration.  Persistence is the caller's
    concern: every method returns new objects.

Concurrency:
    ``generate_month`` runs one task per helper on a
    ``concurrent.futures.ThreadPoolExecutor``.  Tasks share only frozen
    inputs (profiles, shifts, cached statutory tables), so no locking is
    needed.  A failure for one helper is recorded against that helper
    and does not abort the others.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from decimal import Decimal

from payroll_kernel.domain.payslip import Payslip, PayslipField
from payroll_kernel.domain.profile import HelperPayProfile
from payroll_kernel.domain.shift import ShiftRecord
from payroll_kernel.exceptions import PayrollKernelError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.recalculation import (
    PayslipRecalculationEngine,
    RecalculationResult,
)

logger = get_logger("services.payslip")


@dataclass(frozen=True)
class HelperBatch:
    """One helper's inputs for a monthly run."""

    profile: HelperPayProfile
    shifts: tuple[ShiftRecord, ...] = ()


@dataclass
class MonthlyGenerationResult:
    """Per-helper results and failures of ``generate_month``."""

    year: int
    month: int
    results: dict[str, RecalculationResult] = field(default_factory=dict)
    failures: dict[str, PayrollKernelError] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures

    @property
    def payslips(self) -> list[Payslip]:
        return [self.results[k].payslip for k in sorted(self.results)]


class PayslipService:
    """Generate, edit and recalculate helper payslips."""

    def __init__(
        self,
        engine: PayslipRecalculationEngine | None = None,
        max_workers: int | None = None,
    ):
        self._engine = engine or PayslipRecalculationEngine()
        self._max_workers = max_workers

    def generate(
        self,
        profile: HelperPayProfile,
        shifts: Iterable[ShiftRecord],
        year: int,
        month: int,
    ) -> RecalculationResult:
        """Create the payslip for (helper, year, month) from its shifts."""
        return self._engine.generate(profile, shifts, year, month)

    def recalculate(self, payslip: Payslip, profile: HelperPayProfile) -> RecalculationResult:
        """Recompute after an edit; pinned fields survive."""
        return self._engine.recalculate(payslip, profile)

    def pin_and_recalculate(
        self,
        payslip: Payslip,
        profile: HelperPayProfile,
        payslip_field: PayslipField | str,
        value: Decimal | int | str,
    ) -> RecalculationResult:
        """Record a user-typed value for a derived field and recompute dependents."""
        edited = payslip.copy()
        edited.pin(payslip_field, value)
        return self._engine.recalculate(edited, profile)

    def unpin_and_recalculate(
        self,
        payslip: Payslip,
        profile: HelperPayProfile,
        payslip_field: PayslipField | str,
    ) -> RecalculationResult:
        """Hand a field back to the engine and recompute."""
        edited = payslip.copy()
        edited.unpin(payslip_field)
        return self._engine.recalculate(edited, profile)

    def generate_month(
        self,
        batches: Iterable[HelperBatch],
        year: int,
        month: int,
        correlation_id: str | None = None,
    ) -> MonthlyGenerationResult:
        """Generate every helper's payslip for one month in parallel."""
        batch_list = list(batches)
        outcome = MonthlyGenerationResult(year=year, month=month)
        context = LogContext.get_all()
        if correlation_id is not None:
            context["correlation_id"] = correlation_id

        def run(batch: HelperBatch) -> RecalculationResult:
            # contextvars do not flow into pool threads
            with LogContext.bind(**context):
                return self._engine.generate(batch.profile, batch.shifts, year, month)

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {pool.submit(run, batch): batch.profile.helper_id for batch in batch_list}
            for future in as_completed(futures):
                helper_id = futures[future]
                try:
                    outcome.results[helper_id] = future.result()
                except PayrollKernelError as e:
                    logger.error(
                        "payslip_generation_failed",
                        extra={"helper_id": helper_id, "error_code": e.code},
                        exc_info=True,
                    )
                    outcome.failures[helper_id] = e

        logger.info(
            "monthly_generation_completed",
            extra={
                "year": year,
                "month": month,
                "helpers": len(batch_list),
                "succeeded": len(outcome.results),
                "failed": len(outcome.failures),
            },
        )
        return outcome
