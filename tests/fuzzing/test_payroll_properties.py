"""
Hypothesis-based property tests.

Properties checked on generated inputs:
- Time splitting: day shifts carry no night hours; normal + night
  always equals the shift length.
- Generation: every generated payslip satisfies every sum invariant.
- Recalculation: idempotent on its own output.
- Pins on non-sum fields survive recalculation unchanged and never
  break an invariant.
"""

from datetime import date
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from payroll_engines.time_window import split_time_window
from payroll_kernel.domain import (
    HelperPayProfile,
    InsuranceType,
    PayslipField,
    SalaryMode,
    ShiftRecord,
    TaxColumn,
    check_invariants,
)
from payroll_services.recalculation import PayslipRecalculationEngine

ENGINE = PayslipRecalculationEngine()

FUZZ_SETTINGS = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

PAYABLE_CODES = ["shintai", "kaji", "shinya", "doko", "shinya_doko", "jimu", "eigyo"]

# Fields whose pins cannot contradict a sum rule on their own.
LEAF_FIELDS = [
    PayslipField.NORMAL_WORK_DAYS,
    PayslipField.TOTAL_WORK_DAYS,
    PayslipField.BASE_PAY,
    PayslipField.NORMAL_WORK_PAY,
    PayslipField.NIGHT_ACCOMPANY_PAY,
    PayslipField.YEAR_END_NEW_YEAR_ALLOWANCE,
    PayslipField.HEALTH_STANDARD_REMUNERATION,
    PayslipField.HEALTH_INSURANCE,
    PayslipField.PENSION_INSURANCE,
    PayslipField.EMPLOYMENT_INSURANCE,
    PayslipField.TAXABLE_AMOUNT,
    PayslipField.INCOME_TAX,
    PayslipField.BANK_TRANSFER,
]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

minutes_of_day = st.integers(min_value=0, max_value=24 * 60 - 1)
yen = st.integers(min_value=0, max_value=2_000_000).map(Decimal)


def clock(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


@st.composite
def shift_records(draw):
    start = draw(st.integers(min_value=0, max_value=95)) * 15
    length = draw(st.integers(min_value=1, max_value=40)) * 15
    with_times = draw(st.booleans())
    return ShiftRecord(
        shift_date=date(2026, 1, draw(st.integers(min_value=1, max_value=31))),
        service_type=draw(st.sampled_from(PAYABLE_CODES)),
        start_time=clock(start) if with_times else None,
        end_time=clock((start + length) % (24 * 60)) if with_times else None,
        duration_hours=Decimal(length) / Decimal(60),
        deleted=draw(st.booleans()) and draw(st.booleans()),
    )


@st.composite
def profiles(draw):
    mode = draw(st.sampled_from([SalaryMode.HOURLY, SalaryMode.FIXED]))
    return HelperPayProfile(
        helper_id="h-fuzz",
        salary_mode=mode,
        base_salary=draw(st.integers(min_value=0, max_value=600_000)),
        treatment_allowance=draw(st.integers(min_value=0, max_value=60_000)),
        base_hourly_rate=draw(st.integers(min_value=900, max_value=3500)),
        treatment_allowance_per_hour=draw(st.integers(min_value=0, max_value=500)),
        office_hourly_rate=draw(st.integers(min_value=900, max_value=2000)),
        insurance_types=draw(st.frozensets(st.sampled_from(list(InsuranceType)))),
        age=draw(st.integers(min_value=18, max_value=75)),
        dependents=draw(st.integers(min_value=0, max_value=7)),
        tax_column=draw(st.sampled_from(list(TaxColumn))),
        withholding_enabled=draw(st.booleans()),
        prefers_cash=draw(st.booleans()),
        resident_tax=draw(st.integers(min_value=0, max_value=30_000)),
        transport_allowance=draw(st.integers(min_value=0, max_value=30_000)),
    )


# ---------------------------------------------------------------------------
# Time splitting
# ---------------------------------------------------------------------------


class TestTimeSplitProperties:
    @FUZZ_SETTINGS
    @given(start=st.integers(min_value=8 * 60, max_value=22 * 60 - 1), data=st.data())
    def test_day_shift_has_no_night_hours(self, start, data):
        end = data.draw(st.integers(min_value=start + 1, max_value=22 * 60))
        split = split_time_window(start, end)
        assert split.night_minutes == 0
        assert split.night_hours == Decimal("0")

    @FUZZ_SETTINGS
    @given(start=minutes_of_day, end=minutes_of_day)
    def test_components_cover_the_shift(self, start, end):
        split = split_time_window(start, end)
        expected = (end - start) % (24 * 60) or 24 * 60
        assert split.normal_minutes + split.night_minutes == expected
        assert split.normal_minutes >= 0
        assert split.night_minutes >= 0

    @FUZZ_SETTINGS
    @given(start=st.integers(min_value=0, max_value=95), end=st.integers(min_value=0, max_value=95))
    def test_quarter_hours_are_exact(self, start, end):
        split = split_time_window(start * 15, end * 15)
        assert split.total_hours * 60 == split.total_minutes


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class TestPipelineProperties:
    @FUZZ_SETTINGS
    @given(profile=profiles(), shifts=st.lists(shift_records(), max_size=12))
    def test_generated_payslip_is_consistent(self, profile, shifts):
        result = ENGINE.generate(profile, shifts, 2026, 1)
        assert check_invariants(result.payslip) == []
        assert result.payslip.deductions.taxable_amount >= 0

    @FUZZ_SETTINGS
    @given(profile=profiles(), shifts=st.lists(shift_records(), max_size=12))
    def test_recalculation_is_idempotent(self, profile, shifts):
        generated = ENGINE.generate(profile, shifts, 2026, 1).payslip
        once = ENGINE.recalculate(generated, profile).payslip
        twice = ENGINE.recalculate(once, profile).payslip
        assert once == generated
        assert twice == once

    @FUZZ_SETTINGS
    @given(
        profile=profiles(),
        shifts=st.lists(shift_records(), max_size=8),
        pins=st.dictionaries(st.sampled_from(LEAF_FIELDS), yen, max_size=4),
    )
    def test_leaf_pins_survive_and_keep_invariants(self, profile, shifts, pins):
        payslip = ENGINE.generate(profile, shifts, 2026, 1).payslip
        for payslip_field, value in pins.items():
            payslip.pin(payslip_field, value)
        result = ENGINE.recalculate(payslip, profile)
        for payslip_field, value in pins.items():
            assert result.payslip.get(payslip_field) == value
        assert result.violations == ()
        assert result.payslip.pinned_fields() == frozenset(pins)
