"""
payroll_services.recalculation -- The payslip recomputation pipeline.

Responsibility:
    Recomputes every derived field of a payslip from its daily rows,
    entered lines and the helper's pay profile, honouring per-field
    override pins.  Generation and recalculation share this one pipeline;
    generation only differs in how the daily rows are obtained.

Architecture position:
    Services -- orchestration over engines + kernel + config.
    Calls the shift aggregator, insurance and withholding engines; reads
    statutory tables through an injected provider (defaults to
    ``payroll_config.get_statutory_tables``).

Pipeline (strictly ordered):
    1. daily rows          -> attendance totals and day counts
    2. attendance + rates  -> payment lines
    3. payment lines       -> total payment
    4. taxability split    -> insurance base
    5. insurance engine    -> standard remuneration, premiums, their sum
    6. total - non-taxable - insurance -> taxable amount (floored at 0)
    7. withholding engine  -> income tax (0 when withholding is disabled)
    8.                     -> deduction total and total deduction
    9.                     -> net payment
    10.                    -> cash / bank split

Invariants enforced:
    - The input payslip is never mutated; the pass works on a copy.
    - A pinned field keeps its value and that value feeds every later
      stage.
    - Recomputing a consistent payslip yields an identical payslip.
    - Every payslip invariant is evaluated after the pass; all failures
      are reported together.

Failure modes:
    - ``PayslipMismatchError`` -- profile belongs to another helper or
      salary mode.
    - ``UnsupportedTaxYearError`` / ``UnsupportedTaxColumnError`` --
      propagated from configuration and the withholding engine.
    - Invariant violations are returned in the result, not raised;
      ``RecalculationResult.raise_for_violations()`` raises
      ``PayslipInvariantError`` with the complete list.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_config import get_statutory_tables
from payroll_config.schema import StatutoryTables
from payroll_engines.insurance import (
    InsurancePremiums,
    StandardRemuneration,
    calculate_premiums,
    derive_standard_remuneration,
)
from payroll_engines.shift_aggregation import (
    ShiftAggregation,
    aggregate_shifts,
    payroll_period,
    summarize_daily,
)
from payroll_engines.withholding import (
    WithholdingTaxResult,
    calculate_withholding_tax,
    tax_year_for,
)
from payroll_kernel.domain.invariants import InvariantViolation, check_invariants
from payroll_kernel.domain.payslip import Payslip, PayslipField
from payroll_kernel.domain.profile import HelperPayProfile, SalaryMode
from payroll_kernel.domain.shift import ShiftRecord
from payroll_kernel.domain.values import ZERO, round_half_up
from payroll_kernel.exceptions import PayslipInvariantError, PayslipMismatchError
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.recalculation")

TablesProvider = Callable[[int], StatutoryTables]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class IssueSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class RecalculationIssue:
    """Something the caller should see: a bypass, an exclusion, a broken sum."""

    code: str
    severity: IssueSeverity
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecalculationResult:
    """
    Outcome of one generation or recalculation pass.

    ``payslip`` is a new object; the caller decides whether to persist it.
    ``violations`` is empty when every invariant holds.
    """

    payslip: Payslip
    issues: tuple[RecalculationIssue, ...]
    violations: tuple[InvariantViolation, ...]
    tax_year: int
    premiums: InsurancePremiums | None = None
    withholding: WithholdingTaxResult | None = None
    aggregation: ShiftAggregation | None = None

    @property
    def is_consistent(self) -> bool:
        return not self.violations

    def raise_for_violations(self) -> None:
        """Raise PayslipInvariantError carrying every violation, if any."""
        if self.violations:
            raise PayslipInvariantError(self.payslip.payslip_id, list(self.violations))


# ---------------------------------------------------------------------------
# Pass state
# ---------------------------------------------------------------------------


@dataclass
class _Pass:
    payslip: Payslip
    profile: HelperPayProfile
    tables: StatutoryTables
    tax_year: int
    issues: list[RecalculationIssue] = field(default_factory=list)

    salary_core: Decimal = ZERO
    monthly_salary_total: Decimal = ZERO
    non_taxable_other: Decimal = ZERO
    non_taxable_total: Decimal = ZERO
    premiums: InsurancePremiums | None = None
    withholding: WithholdingTaxResult | None = None

    def issue(
        self, code: str, severity: IssueSeverity, message: str, **details: Any
    ) -> None:
        self.issues.append(
            RecalculationIssue(code=code, severity=severity, message=message, details=details)
        )


_ATTENDANCE_FIELDS: tuple[PayslipField, ...] = tuple(
    f for f in PayslipField if f.section == "attendance"
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class PayslipRecalculationEngine:
    """Runs the ten-stage pipeline over a copy of a payslip.

    Usage:
        engine = PayslipRecalculationEngine()
        result = engine.recalculate(payslip, profile)
        result.raise_for_violations()
    """

    def __init__(self, tables_provider: TablesProvider = get_statutory_tables):
        self._tables_provider = tables_provider

    # -- public ---------------------------------------------------------------

    def generate(
        self,
        profile: HelperPayProfile,
        shifts: Iterable[ShiftRecord],
        year: int,
        month: int,
    ) -> RecalculationResult:
        """Build a payslip for (helper, year, month) from a shift batch."""
        tables = self._tables_provider(year)
        period = payroll_period(year, month, tables.pay_rules.period_extension_days)

        with LogContext.bind(helper_id=profile.helper_id):
            aggregation = aggregate_shifts(
                shifts,
                period,
                night_window=tables.night_window,
                hour_rounding=tables.hour_rounding,
            )

            payslip = Payslip.empty(
                helper_id=profile.helper_id,
                year=year,
                month=month,
                salary_mode=profile.salary_mode,
            )
            payslip.daily_attendance = [replace(row) for row in aggregation.daily]
            payslip.payments.transport_allowance = profile.transport_allowance
            payslip.payments.expense_reimbursement = profile.expense_reimbursement
            payslip.payments.other_allowances = list(profile.other_allowances)
            payslip.deductions.resident_tax = profile.resident_tax

            logger.info(
                "payslip_generated",
                extra={
                    "payslip_id": payslip.payslip_id,
                    "included_shifts": aggregation.included_count,
                    "excluded_shifts": len(aggregation.exclusions),
                },
            )

        result = self._run(payslip, profile, mutate=True)
        exclusion_issues = tuple(
            RecalculationIssue(
                code="shift_excluded",
                severity=IssueSeverity.INFO,
                message=f"{count} shift(s) excluded: {reason.value}",
                details={"reason": reason.value, "count": count},
            )
            for reason, count in sorted(
                aggregation.exclusion_counts().items(), key=lambda kv: kv[0].value
            )
        )
        return RecalculationResult(
            payslip=result.payslip,
            issues=exclusion_issues + result.issues,
            violations=result.violations,
            tax_year=result.tax_year,
            premiums=result.premiums,
            withholding=result.withholding,
            aggregation=aggregation,
        )

    def recalculate(self, payslip: Payslip, profile: HelperPayProfile) -> RecalculationResult:
        """Recompute every unpinned derived field; the input is not mutated."""
        return self._run(payslip, profile, mutate=False)

    # -- pipeline -------------------------------------------------------------

    def _run(self, payslip: Payslip, profile: HelperPayProfile, mutate: bool) -> RecalculationResult:
        _check_match(payslip, profile)
        working = payslip if mutate else payslip.copy()
        tax_year = tax_year_for(working.year, working.month)

        with LogContext.bind(helper_id=profile.helper_id, payslip_id=working.payslip_id):
            state = _Pass(
                payslip=working,
                profile=profile,
                tables=self._tables_provider(working.year),
                tax_year=tax_year,
            )

            self._stage_attendance(state)
            self._stage_payment_lines(state)
            self._stage_total_payment(state)
            self._stage_insurance_base(state)
            self._stage_insurance(state)
            self._stage_taxable_amount(state)
            self._stage_income_tax(state)
            self._stage_deductions(state)
            self._stage_net_payment(state)
            self._stage_payment_split(state)

            violations = check_invariants(working)
            for violation in violations:
                logger.warning(
                    "payslip_invariant_violation",
                    extra=violation.to_dict(),
                )
                state.issue(
                    "invariant_violation",
                    IssueSeverity.ERROR,
                    violation.message,
                    invariant=violation.invariant.value,
                )

            logger.info(
                "payslip_recalculated",
                extra={
                    "tax_year": tax_year,
                    "pinned_fields": sorted(f.value for f in working.pinned_fields()),
                    "net_payment": working.totals.net_payment,
                    "violations": len(violations),
                },
            )

        return RecalculationResult(
            payslip=working,
            issues=tuple(state.issues),
            violations=tuple(violations),
            tax_year=tax_year,
            premiums=state.premiums,
            withholding=state.withholding,
        )

    # 1
    def _stage_attendance(self, state: _Pass) -> None:
        computed = summarize_daily(state.payslip.daily_attendance)
        for f in _ATTENDANCE_FIELDS:
            state.payslip.resolve(f, getattr(computed, f.attribute))

    # 2
    def _stage_payment_lines(self, state: _Pass) -> None:
        payslip, profile = state.payslip, state.profile
        attendance = payslip.attendance
        resolve = payslip.resolve
        lines: dict[PayslipField, Decimal] = dict.fromkeys(
            (
                PayslipField.BASE_PAY,
                PayslipField.TREATMENT_ALLOWANCE_PAY,
                PayslipField.NORMAL_WORK_PAY,
                PayslipField.NIGHT_NORMAL_PAY,
                PayslipField.ACCOMPANY_PAY,
                PayslipField.NIGHT_ACCOMPANY_PAY,
                PayslipField.OFFICE_PAY,
                PayslipField.SALES_PAY,
                PayslipField.YEAR_END_NEW_YEAR_ALLOWANCE,
            ),
            ZERO,
        )

        if profile.salary_mode is SalaryMode.FIXED:
            lines[PayslipField.BASE_PAY] = profile.base_salary
            lines[PayslipField.TREATMENT_ALLOWANCE_PAY] = profile.treatment_allowance
        else:
            night = state.tables.pay_rules.night_multiplier
            rate = profile.total_hourly_rate
            accompany_rate = profile.effective_accompany_rate
            lines[PayslipField.NORMAL_WORK_PAY] = round_half_up(attendance.normal_hours * rate)
            lines[PayslipField.NIGHT_NORMAL_PAY] = round_half_up(
                attendance.night_normal_hours * rate * night
            )
            lines[PayslipField.ACCOMPANY_PAY] = round_half_up(
                attendance.accompany_hours * accompany_rate
            )
            lines[PayslipField.NIGHT_ACCOMPANY_PAY] = round_half_up(
                attendance.night_accompany_hours * accompany_rate * night
            )
            lines[PayslipField.OFFICE_PAY] = round_half_up(
                attendance.office_hours * profile.office_hourly_rate
            )
            lines[PayslipField.SALES_PAY] = round_half_up(
                attendance.sales_hours * profile.office_hourly_rate
            )
            lines[PayslipField.YEAR_END_NEW_YEAR_ALLOWANCE] = self._year_end_allowance(state)

        for f, amount in lines.items():
            resolve(f, amount)

    def _year_end_allowance(self, state: _Pass) -> Decimal:
        """Top-up to the year-end hourly rate for ordinary care on 12/31-1/4."""
        rules = state.tables.pay_rules
        diff = max(ZERO, rules.year_end_hourly_rate - state.profile.total_hourly_rate)
        if diff == ZERO:
            return ZERO
        allowance = ZERO
        for row in state.payslip.daily_attendance:
            if rules.is_year_end_date(row.work_date.month, row.work_date.day):
                allowance += diff * row.normal_work
                allowance += diff * row.normal_night * rules.night_multiplier
        return round_half_up(allowance)

    # 3
    def _stage_total_payment(self, state: _Pass) -> None:
        state.payslip.resolve(PayslipField.TOTAL_PAYMENT, state.payslip.payments.lines_total())

    # 4
    def _stage_insurance_base(self, state: _Pass) -> None:
        payments = state.payslip.payments
        state.salary_core = payments.salary_lines_total() + payments.taxable_other_allowances()
        state.non_taxable_other = payments.non_taxable_other_allowances()
        state.monthly_salary_total = state.salary_core + state.non_taxable_other
        state.non_taxable_total = payments.non_taxable_total()

    # 5
    def _stage_insurance(self, state: _Pass) -> None:
        payslip, profile = state.payslip, state.profile
        insurance = state.tables.insurance

        if profile.pinned_standard_remuneration is not None:
            standard = StandardRemuneration.pinned(profile.pinned_standard_remuneration)
        else:
            standard = derive_standard_remuneration(state.salary_core, insurance)

        health_standard = payslip.resolve(
            PayslipField.HEALTH_STANDARD_REMUNERATION, standard.health
        )
        pension_standard = payslip.resolve(
            PayslipField.PENSION_STANDARD_REMUNERATION, standard.pension
        )

        premiums = calculate_premiums(
            health_standard,
            state.monthly_salary_total,
            profile.age,
            profile.insurance_types,
            state.non_taxable_other,
            rates=insurance.rates,
            pension_standard_remuneration=pension_standard,
        )
        state.premiums = premiums

        health = payslip.resolve(PayslipField.HEALTH_INSURANCE, premiums.health)
        care = payslip.resolve(PayslipField.CARE_INSURANCE, premiums.care)
        pension = payslip.resolve(PayslipField.PENSION_INSURANCE, premiums.pension)
        employment = payslip.resolve(PayslipField.EMPLOYMENT_INSURANCE, premiums.employment)
        payslip.resolve(
            PayslipField.SOCIAL_INSURANCE_TOTAL, health + care + pension + employment
        )

    # 6
    def _stage_taxable_amount(self, state: _Pass) -> None:
        payslip = state.payslip
        taxable = (
            payslip.payments.total_payment
            - state.non_taxable_total
            - payslip.deductions.social_insurance_total
        )
        payslip.resolve(PayslipField.TAXABLE_AMOUNT, max(ZERO, taxable))

    # 7
    def _stage_income_tax(self, state: _Pass) -> None:
        payslip, profile = state.payslip, state.profile
        if not profile.withholding_enabled:
            state.issue(
                "withholding_disabled",
                IssueSeverity.INFO,
                "Withholding disabled for this helper; income tax set to 0",
            )
            payslip.resolve(PayslipField.INCOME_TAX, ZERO)
            return
        # pinned tax needs no table; the tax year may have none yet
        if payslip.is_pinned(PayslipField.INCOME_TAX):
            payslip.resolve(PayslipField.INCOME_TAX, ZERO)
            return

        tables = (
            state.tables
            if state.tax_year == state.tables.year
            else self._tables_provider(state.tax_year)
        )
        result = calculate_withholding_tax(
            state.tax_year,
            payslip.deductions.taxable_amount,
            profile.dependents,
            profile.tax_column,
            working_days=payslip.attendance.total_work_days,
            tables=tables.withholding,
        )
        state.withholding = result
        payslip.resolve(PayslipField.INCOME_TAX, result.tax)

    # 8
    def _stage_deductions(self, state: _Pass) -> None:
        deductions = state.payslip.deductions
        deduction_total = state.payslip.resolve(
            PayslipField.DEDUCTION_TOTAL,
            deductions.income_tax + deductions.resident_tax + deductions.other_items_total(),
        )
        state.payslip.resolve(
            PayslipField.TOTAL_DEDUCTION,
            deductions.social_insurance_total + deduction_total,
        )

    # 9
    def _stage_net_payment(self, state: _Pass) -> None:
        payslip = state.payslip
        payslip.resolve(
            PayslipField.NET_PAYMENT,
            payslip.payments.total_payment - payslip.deductions.total_deduction,
        )

    # 10
    def _stage_payment_split(self, state: _Pass) -> None:
        payslip = state.payslip
        net = payslip.totals.net_payment

        if payslip.is_pinned(PayslipField.BANK_TRANSFER) and not payslip.is_pinned(
            PayslipField.CASH_PAYMENT
        ):
            bank = payslip.totals.bank_transfer
            payslip.resolve(PayslipField.CASH_PAYMENT, net - bank)
            return

        cash = payslip.resolve(
            PayslipField.CASH_PAYMENT, net if state.profile.prefers_cash else ZERO
        )
        payslip.resolve(PayslipField.BANK_TRANSFER, net - cash)


def _check_match(payslip: Payslip, profile: HelperPayProfile) -> None:
    if payslip.helper_id != profile.helper_id:
        raise PayslipMismatchError(
            payslip.payslip_id,
            f"profile is for helper {profile.helper_id!r}",
        )
    if payslip.salary_mode is not profile.salary_mode:
        raise PayslipMismatchError(
            payslip.payslip_id,
            f"payslip salary mode {payslip.salary_mode.value!r} != "
            f"profile {profile.salary_mode.value!r}",
        )
