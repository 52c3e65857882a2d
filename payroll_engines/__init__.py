"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for higher layers (payroll_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import payroll_kernel and payroll_config (statutory data types).
    MUST NOT import payroll_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Periods and years are passed in as explicit parameters.
    - Decimal-only arithmetic: all amounts and hours use ``Decimal``;
      floats are forbidden.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE log
    records that include engine name, version, input fingerprint, and
    duration.

Usage:
    from payroll_engines.time_window import split_time_window
    from payroll_engines.shift_aggregation import aggregate_shifts, payroll_period
    from payroll_engines.insurance import calculate_premiums
    from payroll_engines.withholding import calculate_withholding_tax
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.insurance import (
    InsurancePremiums,
    StandardRemuneration,
    calculate_premiums,
    derive_standard_remuneration,
    lookup_standard_amount,
)
from payroll_engines.shift_aggregation import (
    Exclusion,
    ExclusionReason,
    PayrollPeriod,
    ShiftAggregation,
    aggregate_shifts,
    payroll_period,
    summarize_daily,
)
from payroll_engines.time_window import (
    TimeSplit,
    parse_time_of_day,
    shift_duration_hours,
    split_time_window,
)
from payroll_engines.tracer import compute_input_fingerprint, traced_engine
from payroll_engines.withholding import (
    WithholdingTaxResult,
    calculate_withholding_tax,
    daily_table_tax,
    progressive_tax,
    salary_income_deduction,
    tax_year_for,
)

__all__ = [
    # Time window
    "TimeSplit",
    "parse_time_of_day",
    "shift_duration_hours",
    "split_time_window",
    # Shift aggregation
    "Exclusion",
    "ExclusionReason",
    "PayrollPeriod",
    "ShiftAggregation",
    "aggregate_shifts",
    "payroll_period",
    "summarize_daily",
    # Insurance
    "InsurancePremiums",
    "StandardRemuneration",
    "calculate_premiums",
    "derive_standard_remuneration",
    "lookup_standard_amount",
    # Withholding
    "WithholdingTaxResult",
    "calculate_withholding_tax",
    "daily_table_tax",
    "progressive_tax",
    "salary_income_deduction",
    "tax_year_for",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]
