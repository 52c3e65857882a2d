"""
Tests for the payslip aggregate, pay profile and shift record.

Covers:
- Field override states (pin / unpin / resolve)
- Field name parsing and unknown fields
- Copy independence
- Value coercion and rounding helpers
- Profile normalization (columns, insurance types, money fields)
- Service type classification
- Invariant detection on hand-built payslips
"""

from datetime import date
from decimal import Decimal

import pytest

from payroll_kernel.domain import (
    COMPUTED,
    AllowanceItem,
    DailyAttendance,
    DeductionItem,
    InsuranceType,
    Payslip,
    PayslipField,
    PayslipInvariant,
    Pinned,
    SalaryMode,
    ServiceCategory,
    ServiceType,
    ShiftRecord,
    TaxColumn,
    check_invariants,
    classify_service_type,
)
from payroll_kernel.domain.values import (
    HourRounding,
    RoundingRule,
    round_ceiling,
    round_floor,
    round_half_up,
    to_decimal,
)
from payroll_kernel.exceptions import (
    PayslipInvariantError,
    UnknownPayslipFieldError,
    UnknownServiceTypeError,
    UnsupportedTaxColumnError,
)


def blank(**kwargs) -> Payslip:
    values = dict(helper_id="h-1", year=2026, month=1, salary_mode=SalaryMode.HOURLY)
    values.update(kwargs)
    return Payslip(**values)


def consistent_payslip() -> Payslip:
    """A hand-filled payslip that satisfies every sum rule."""
    p = Payslip.empty("h-1", 2026, 1, SalaryMode.HOURLY, [date(2026, 1, 1), date(2026, 1, 2)])
    p.daily_attendance[0].normal_work = Decimal("3")
    p.daily_attendance[1].accompany_night = Decimal("1.5")
    p.attendance.normal_hours = Decimal("3")
    p.attendance.night_accompany_hours = Decimal("1.5")
    p.attendance.total_work_hours = Decimal("4.5")
    p.payments.total_payment = Decimal("100000")
    p.deductions.health_insurance = Decimal("5000")
    p.deductions.pension_insurance = Decimal("9000")
    p.deductions.social_insurance_total = Decimal("14000")
    p.deductions.income_tax = Decimal("1000")
    p.deductions.resident_tax = Decimal("2000")
    p.deductions.other_items = [DeductionItem("前払", Decimal("3000"))]
    p.deductions.deduction_total = Decimal("6000")
    p.deductions.total_deduction = Decimal("20000")
    p.totals.net_payment = Decimal("80000")
    p.totals.bank_transfer = Decimal("80000")
    return p


class TestPayslipField:
    def test_parse_by_value_and_name(self):
        assert PayslipField.parse("deductions.income_tax") is PayslipField.INCOME_TAX
        assert PayslipField.parse("income_tax") is PayslipField.INCOME_TAX
        assert PayslipField.parse("INCOME_TAX") is PayslipField.INCOME_TAX
        assert PayslipField.parse(PayslipField.NET_PAYMENT) is PayslipField.NET_PAYMENT

    def test_unknown_field(self):
        with pytest.raises(UnknownPayslipFieldError) as exc_info:
            PayslipField.parse("payments.overtime_pay")
        assert exc_info.value.code == "UNKNOWN_PAYSLIP_FIELD"

    def test_section_and_attribute(self):
        f = PayslipField.HEALTH_INSURANCE
        assert f.section == "deductions"
        assert f.attribute == "health_insurance"
        assert not f.is_count
        assert PayslipField.NORMAL_WORK_DAYS.is_count


class TestOverrides:
    def test_fields_start_computed(self):
        p = blank()
        assert p.override(PayslipField.INCOME_TAX) is COMPUTED
        assert not p.is_pinned(PayslipField.INCOME_TAX)
        assert p.pinned_fields() == frozenset()

    def test_pin_writes_value(self):
        p = blank()
        p.pin(PayslipField.INCOME_TAX, "1234")
        assert p.deductions.income_tax == Decimal("1234")
        assert p.override("income_tax") == Pinned(Decimal("1234"))

    def test_pin_count_field_is_int(self):
        p = blank()
        p.pin(PayslipField.TOTAL_WORK_DAYS, "12")
        assert p.attendance.total_work_days == 12

    def test_pin_rejects_float(self):
        with pytest.raises(TypeError):
            blank().pin(PayslipField.INCOME_TAX, 12.5)

    def test_resolve_prefers_pin(self):
        p = blank()
        p.pin(PayslipField.HEALTH_INSURANCE, Decimal("5000"))
        assert p.resolve(PayslipField.HEALTH_INSURANCE, Decimal("7000")) == Decimal("5000")
        assert p.deductions.health_insurance == Decimal("5000")

    def test_resolve_writes_computed(self):
        p = blank()
        assert p.resolve(PayslipField.HEALTH_INSURANCE, Decimal("7000")) == Decimal("7000")
        assert p.get("health_insurance") == Decimal("7000")

    def test_unpin(self):
        p = blank()
        p.pin(PayslipField.INCOME_TAX, 100)
        p.unpin("deductions.income_tax")
        assert p.override(PayslipField.INCOME_TAX) is COMPUTED
        p.unpin(PayslipField.INCOME_TAX)  # no-op

    def test_copy_is_independent(self):
        p = consistent_payslip()
        p.pin(PayslipField.INCOME_TAX, 1000)
        clone = p.copy()
        clone.pin(PayslipField.CASH_PAYMENT, 1)
        clone.daily_attendance[0].normal_work = Decimal("9")
        clone.deductions.other_items.append(DeductionItem("x", 1))
        assert p.daily_attendance[0].normal_work == Decimal("3")
        assert len(p.deductions.other_items) == 1
        assert p.pinned_fields() == frozenset({PayslipField.INCOME_TAX})
        assert clone.override(PayslipField.INCOME_TAX) == p.override(PayslipField.INCOME_TAX)


class TestPayslipConstruction:
    def test_default_payslip_id(self):
        assert blank(month=3).payslip_id == "h-1-202603"

    def test_explicit_payslip_id_kept(self):
        assert blank(payslip_id="abc").payslip_id == "abc"

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, month):
        with pytest.raises(ValueError):
            blank(month=month)

    def test_salary_mode_coerced(self):
        assert blank(salary_mode="fixed").salary_mode is SalaryMode.FIXED

    def test_empty_has_one_row_per_day(self):
        days = [date(2026, 2, d) for d in range(1, 29)]
        p = Payslip.empty("h-1", 2026, 2, SalaryMode.FIXED, days)
        assert [r.work_date for r in p.daily_attendance] == days
        assert all(r.total_hours == Decimal("0") for r in p.daily_attendance)

    def test_payment_groupings(self):
        p = blank()
        p.payments.base_pay = Decimal("100000")
        p.payments.overtime_pay = Decimal("5000")
        p.payments.transport_allowance = Decimal("8000")
        p.payments.other_allowances = [
            AllowanceItem("資格手当", Decimal("3000")),
            AllowanceItem("通信費", Decimal("2000"), taxable=False),
        ]
        assert p.payments.salary_lines_total() == Decimal("105000")
        assert p.payments.taxable_other_allowances() == Decimal("3000")
        assert p.payments.non_taxable_total() == Decimal("10000")
        assert p.payments.lines_total() == Decimal("118000")

    def test_daily_row_flags(self):
        row = DailyAttendance(work_date=date(2026, 1, 1), accompany_night=Decimal("1"))
        assert row.has_accompany_work
        assert not row.has_normal_work


class TestInvariants:
    def test_consistent_payslip_passes(self):
        assert check_invariants(consistent_payslip()) == []

    def test_hours_mismatch(self):
        p = consistent_payslip()
        p.attendance.total_work_hours = Decimal("5")
        violations = check_invariants(p)
        assert {v.invariant for v in violations} == {PayslipInvariant.HOURS_CONSISTENT}
        assert len(violations) == 2

    def test_daily_rows_mismatch(self):
        p = consistent_payslip()
        p.daily_attendance[0].normal_work = Decimal("2")
        [violation] = check_invariants(p)
        assert violation.invariant is PayslipInvariant.HOURS_CONSISTENT
        assert "daily rows" in violation.message

    def test_social_insurance_sum(self):
        p = consistent_payslip()
        p.deductions.care_insurance = Decimal("100")
        invariants = [v.invariant for v in check_invariants(p)]
        assert invariants == [PayslipInvariant.SOCIAL_INSURANCE_SUM]

    def test_total_deduction(self):
        p = consistent_payslip()
        p.deductions.resident_tax = Decimal("2500")
        invariants = [v.invariant for v in check_invariants(p)]
        assert invariants == [PayslipInvariant.TOTAL_DEDUCTION_SUM]

    def test_net_payment(self):
        p = consistent_payslip()
        p.payments.total_payment = Decimal("100001")
        invariants = [v.invariant for v in check_invariants(p)]
        assert invariants == [PayslipInvariant.NET_PAYMENT]

    def test_payment_split(self):
        p = consistent_payslip()
        p.totals.cash_payment = Decimal("1")
        [violation] = check_invariants(p)
        assert violation.invariant is PayslipInvariant.PAYMENT_SPLIT
        assert violation.expected == Decimal("80000")
        assert violation.actual == Decimal("80001")
        assert violation.to_dict()["invariant"] == "payment_split"

    def test_invariant_error_carries_violations(self):
        p = consistent_payslip()
        p.totals.cash_payment = Decimal("1")
        error = PayslipInvariantError(p.payslip_id, check_invariants(p))
        assert error.code == "PAYSLIP_INVARIANT_VIOLATION"
        assert len(error.violations) == 1


class TestValues:
    def test_to_decimal(self):
        assert to_decimal("1.5") == Decimal("1.5")
        assert to_decimal(None) == Decimal("0")
        with pytest.raises(TypeError):
            to_decimal(1.5)
        with pytest.raises(TypeError):
            to_decimal(True)
        with pytest.raises(ValueError):
            to_decimal("abc")

    def test_rounding_helpers(self):
        assert round_half_up(Decimal("2.5")) == Decimal("3")
        assert round_half_up(Decimal("8295.625"), Decimal("10")) == Decimal("8300")
        assert round_floor(Decimal("2.9")) == Decimal("2")
        assert round_floor(Decimal("1315"), Decimal("10")) == Decimal("1310")
        assert round_ceiling(Decimal("82732.3")) == Decimal("82733")

    def test_rounding_rule(self):
        assert RoundingRule(Decimal("10"), "floor").apply(Decimal("129")) == Decimal("120")
        with pytest.raises(ValueError):
            RoundingRule(mode="banker")
        with pytest.raises(ValueError):
            RoundingRule(unit=Decimal("0"))

    def test_hour_rounding(self):
        rounding = HourRounding()
        assert rounding.to_hours(45) == Decimal("0.75")
        assert rounding.to_hours(10) == Decimal("0.2")
        assert rounding.to_hours(50) == Decimal("0.8")


class TestProfile:
    def test_column_aliases(self, make_profile):
        assert make_profile(tax_column="main").tax_column is TaxColumn.KOU
        assert make_profile(tax_column="乙").tax_column is TaxColumn.OTSU
        assert make_profile(tax_column="daily").tax_column is TaxColumn.HEI

    def test_unknown_column(self, make_profile):
        with pytest.raises(UnsupportedTaxColumnError):
            make_profile(tax_column="丁")

    def test_insurance_types_normalized(self, make_profile):
        profile = make_profile(insurance_types=["health", InsuranceType.PENSION])
        assert profile.insurance_types == frozenset({InsuranceType.HEALTH, InsuranceType.PENSION})
        assert profile.has_insurance(InsuranceType.HEALTH)

    def test_money_fields_coerced(self, make_profile):
        profile = make_profile(base_hourly_rate="1300", resident_tax=5000)
        assert profile.base_hourly_rate == Decimal("1300")
        assert profile.resident_tax == Decimal("5000")
        assert profile.total_hourly_rate == Decimal("1500")

    def test_float_rejected(self, make_profile):
        with pytest.raises(TypeError):
            make_profile(base_hourly_rate=1200.0)

    def test_accompany_rate_defaults_to_hourly(self, make_profile):
        assert make_profile().effective_accompany_rate == Decimal("1400")
        assert make_profile(accompany_hourly_rate="1000").effective_accompany_rate == Decimal("1000")

    @pytest.mark.parametrize("field_name", ["dependents", "age"])
    def test_negative_counts_rejected(self, make_profile, field_name):
        with pytest.raises(ValueError):
            make_profile(**{field_name: -1})


class TestShiftRecord:
    def test_classification(self):
        assert classify_service_type("shintai") is ServiceCategory.ORDINARY_CARE
        assert classify_service_type(ServiceType.SHINYA_DOKO) is ServiceCategory.ACCOMPANY
        assert classify_service_type("jimu") is ServiceCategory.OFFICE
        assert classify_service_type("eigyo") is ServiceCategory.SALES
        assert classify_service_type("yasumi_kibou") is None

    def test_unknown_code(self):
        with pytest.raises(UnknownServiceTypeError):
            classify_service_type("unknown")

    def test_duration_coerced(self):
        shift = ShiftRecord(shift_date=date(2026, 1, 1), service_type="shintai", duration_hours="2.5")
        assert shift.duration_hours == Decimal("2.5")

    def test_float_duration_rejected(self):
        with pytest.raises(TypeError):
            ShiftRecord(shift_date=date(2026, 1, 1), service_type="shintai", duration_hours=2.5)

    def test_cancel_status_coerced(self):
        shift = ShiftRecord(
            shift_date=date(2026, 1, 1), service_type="shintai", cancel_status="removed-without-time"
        )
        assert shift.cancel_status.drops_time
