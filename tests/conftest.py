"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured logging setup and a JSON log capture fixture
- The shipped statutory tables (2025, 2026)
- Factories for helper pay profiles and shift records
- Recalculation engine and payslip service instances
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from payroll_config import get_statutory_tables
from payroll_kernel.domain.profile import (
    HelperPayProfile,
    InsuranceType,
    SalaryMode,
    TaxColumn,
)
from payroll_kernel.domain.shift import CancelStatus, ShiftRecord
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_services.payslip_service import PayslipService
from payroll_services.recalculation import PayslipRecalculationEngine

ALL_INSURANCE = frozenset(InsuranceType)


# ---- Logging fixtures ----


@pytest.fixture(autouse=True, scope="session")
def _json_logging():
    """JSON log lines at DEBUG for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _empty_log_context():
    """No helper or run ids leak from one test into the next."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.recalculate(...)
            logs = captured_logs()
            assert any(r["message"] == "payslip_recalculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# ---- Statutory tables ----


@pytest.fixture(scope="session")
def tables_2026():
    return get_statutory_tables(2026)


@pytest.fixture(scope="session")
def tables_2025():
    return get_statutory_tables(2025)


# ---- Factories ----


@pytest.fixture
def make_profile():
    """Factory for HelperPayProfile with hourly defaults.

    Defaults: ¥1,200 base + ¥200 treatment per hour, no insurance,
    0 dependents, 甲 column.
    """

    def _make(**overrides) -> HelperPayProfile:
        values = dict(
            helper_id="h-001",
            salary_mode=SalaryMode.HOURLY,
            name="テスト ヘルパー",
            base_hourly_rate=Decimal("1200"),
            treatment_allowance_per_hour=Decimal("200"),
            office_hourly_rate=Decimal("1100"),
            age=30,
            dependents=0,
            tax_column=TaxColumn.KOU,
        )
        values.update(overrides)
        return HelperPayProfile(**values)

    return _make


@pytest.fixture
def hourly_profile(make_profile):
    return make_profile()


@pytest.fixture
def fixed_profile(make_profile):
    """Monthly-salaried helper with full insurance, 45 years old."""
    return make_profile(
        helper_id="h-100",
        salary_mode=SalaryMode.FIXED,
        base_salary=Decimal("250000"),
        treatment_allowance=Decimal("44000"),
        base_hourly_rate=Decimal("0"),
        treatment_allowance_per_hour=Decimal("0"),
        insurance_types=ALL_INSURANCE,
        age=45,
    )


@pytest.fixture
def make_shift():
    """Factory for ShiftRecord.

    Defaults to a 09:00-12:00 身体 shift on 2026-01-15 with 3 performed
    hours.
    """

    def _make(**overrides) -> ShiftRecord:
        values = dict(
            shift_date=date(2026, 1, 15),
            service_type="shintai",
            start_time="09:00",
            end_time="12:00",
            duration_hours=Decimal("3"),
            cancel_status=CancelStatus.NONE,
        )
        values.update(overrides)
        return ShiftRecord(**values)

    return _make


# ---- Services ----


@pytest.fixture
def engine():
    return PayslipRecalculationEngine()


@pytest.fixture
def service(engine):
    return PayslipService(engine=engine, max_workers=4)
