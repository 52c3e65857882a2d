"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads one year file from ``payroll_config/sets/`` and parses it into
typed ``payroll_config.schema`` dataclass instances.  This is internal
tooling -- no engine or service should call it directly.  The single
public entry point for runtime config is
``payroll_config.get_statutory_tables()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends only on the kernel
value types; never on engines or services.

Invariants enforced
-------------------
* Every amount and rate is parsed to ``Decimal`` through its string
  form, so a YAML float such as ``0.0512`` keeps its written digits.
* Parsing yields only frozen ``schema.py`` dataclasses.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* No file for the year: ``FileNotFoundError``.
* Broken YAML syntax: ``yaml.YAMLError``.
* A required section or key absent: ``KeyError``.
* A non-numeric amount, bad clock time or unknown rounding mode:
  ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    DailyTaxRow,
    HeiTable,
    InsuranceRates,
    InsuranceTables,
    KouTable,
    NightWindow,
    OtsuTable,
    PayRules,
    RateBracket,
    RemunerationBand,
    StatutoryTables,
    WithholdingYearTable,
)
from payroll_kernel.domain.values import MINUTES_PER_DAY, HourRounding, RoundingRule


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parsed mapping of one year file; an empty file gives ``{}``."""
    with path.open(encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def parse_decimal(value: Any, name: str = "value") -> Decimal:
    """Parse a YAML scalar (int, str or float) to Decimal via its text."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name}: not a number: {value!r}") from e


def parse_optional_decimal(value: Any, name: str = "value") -> Decimal | None:
    if value is None:
        return None
    return parse_decimal(value, name)


def parse_clock(value: Any) -> int:
    """Parse "HH:MM" to minutes after midnight."""
    text = str(value)
    hours, sep, minutes = text.partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid clock time: {value!r}")
    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        raise ValueError(f"Invalid clock time: {value!r}")
    return h * 60 + m


def parse_month_day(value: Any) -> tuple[int, int]:
    """Parse "MM-DD" to a (month, day) pair."""
    month, sep, day = str(value).partition("-")
    if not sep:
        raise ValueError(f"Invalid month-day: {value!r}")
    return int(month), int(day)


def parse_rounding(data: dict[str, Any] | None, default: RoundingRule) -> RoundingRule:
    if not data:
        return default
    return RoundingRule(
        unit=parse_decimal(data.get("unit", 1), "rounding.unit"),
        mode=data.get("mode", default.mode),
    )


def parse_night_window(data: dict[str, Any]) -> NightWindow:
    """Wrap an end time at or before the start onto the next day."""
    start = parse_clock(data["start"])
    end = parse_clock(data["end"])
    if end <= start:
        end += MINUTES_PER_DAY
    return NightWindow(start_minute=start, end_minute=end)


def parse_hour_rounding(data: dict[str, Any] | None) -> HourRounding:
    data = data or {}
    return HourRounding(
        snap_minutes=int(data.get("snap_minutes", 15)),
        fallback_places=int(data.get("fallback_places", 1)),
    )


def parse_bands(rows: list[Any], name: str) -> tuple[RemunerationBand, ...]:
    """Parse ``[lower, upper, standard]`` triples."""
    bands = []
    for i, row in enumerate(rows):
        lower, upper, standard = row
        bands.append(
            RemunerationBand(
                lower=parse_decimal(lower, f"{name}[{i}].lower"),
                upper=parse_optional_decimal(upper, f"{name}[{i}].upper"),
                standard=parse_decimal(standard, f"{name}[{i}].standard"),
            )
        )
    return tuple(bands)


def parse_brackets(rows: list[dict[str, Any]], name: str) -> tuple[RateBracket, ...]:
    return tuple(
        RateBracket(
            upper=parse_optional_decimal(row.get("upper"), f"{name}[{i}].upper"),
            rate=parse_decimal(row["rate"], f"{name}[{i}].rate"),
            offset=parse_decimal(row.get("offset", 0), f"{name}[{i}].offset"),
        )
        for i, row in enumerate(rows)
    )


def parse_insurance(data: dict[str, Any]) -> InsuranceTables:
    rates_data = data["rates"]
    rounding = data.get("rounding", {})
    defaults = InsuranceRates(
        health=Decimal(0), care=Decimal(0), pension=Decimal(0), employment=Decimal(0)
    )
    rates = InsuranceRates(
        health=parse_decimal(rates_data["health"], "rates.health"),
        care=parse_decimal(rates_data["care"], "rates.care"),
        pension=parse_decimal(rates_data["pension"], "rates.pension"),
        employment=parse_decimal(rates_data["employment"], "rates.employment"),
        care_age_threshold=int(rates_data.get("care_age_threshold", 40)),
        premium_rounding=parse_rounding(rounding.get("premium"), defaults.premium_rounding),
        employment_rounding=parse_rounding(
            rounding.get("employment"), defaults.employment_rounding
        ),
    )
    return InsuranceTables(
        rates=rates,
        health_bands=parse_bands(data["health_bands"], "health_bands"),
        pension_bands=parse_bands(data["pension_bands"], "pension_bands"),
    )


def parse_kou(data: dict[str, Any]) -> KouTable:
    return KouTable(
        tax_free_threshold=parse_decimal(data["tax_free_threshold"], "kou.tax_free_threshold"),
        basic_deduction=parse_decimal(data["basic_deduction"], "kou.basic_deduction"),
        dependent_deduction=parse_decimal(
            data["dependent_deduction"], "kou.dependent_deduction"
        ),
        salary_income_deduction=parse_brackets(
            data["salary_income_deduction"], "kou.salary_income_deduction"
        ),
        progressive_brackets=parse_brackets(
            data["progressive_brackets"], "kou.progressive_brackets"
        ),
        deduction_rounding=parse_rounding(
            data.get("deduction_rounding"), RoundingRule(mode="ceiling")
        ),
        rounding=parse_rounding(
            data.get("rounding"), RoundingRule(unit=Decimal("10"), mode="half_up")
        ),
    )


def parse_otsu(data: dict[str, Any]) -> OtsuTable:
    return OtsuTable(
        brackets=parse_brackets(data["brackets"], "otsu.brackets"),
        rounding=parse_rounding(data.get("rounding"), RoundingRule(mode="floor")),
    )


def parse_hei(data: dict[str, Any]) -> HeiTable:
    rows = tuple(
        DailyTaxRow(
            lower=parse_decimal(lower, f"hei.rows[{i}].lower"),
            upper=parse_decimal(upper, f"hei.rows[{i}].upper"),
            tax=parse_decimal(tax, f"hei.rows[{i}].tax"),
        )
        for i, (lower, upper, tax) in enumerate(data["rows"])
    )
    formula = data["formula"]
    return HeiTable(
        tax_free_threshold=parse_decimal(data["tax_free_threshold"], "hei.tax_free_threshold"),
        rows=rows,
        formula_base=parse_decimal(formula["base"], "hei.formula.base"),
        formula_rate=parse_decimal(formula["rate"], "hei.formula.rate"),
        formula_addend=parse_decimal(formula["addend"], "hei.formula.addend"),
        daily_rounding=parse_rounding(data.get("daily_rounding"), RoundingRule(mode="floor")),
        rounding=parse_rounding(
            data.get("rounding"), RoundingRule(unit=Decimal("10"), mode="floor")
        ),
    )


def parse_withholding(year: int, data: dict[str, Any]) -> WithholdingYearTable:
    return WithholdingYearTable(
        year=year,
        kou=parse_kou(data["kou"]),
        otsu=parse_otsu(data["otsu"]),
        hei=parse_hei(data["hei"]),
    )


def parse_pay_rules(data: dict[str, Any] | None) -> PayRules:
    data = data or {}
    year_end = data.get("year_end", {})
    defaults = PayRules()
    return PayRules(
        night_multiplier=parse_decimal(
            data.get("night_multiplier", defaults.night_multiplier), "night_multiplier"
        ),
        year_end_hourly_rate=parse_decimal(
            year_end.get("hourly_rate", defaults.year_end_hourly_rate),
            "year_end.hourly_rate",
        ),
        year_end_dates=frozenset(parse_month_day(d) for d in year_end.get("dates", ())),
        period_extension_days=int(
            data.get("period_extension_days", defaults.period_extension_days)
        ),
    )


def parse_statutory_tables(data: dict[str, Any], source_path: str = "") -> StatutoryTables:
    """
    Parse a full year document into ``StatutoryTables``.

    Postconditions:
        - ``checksum`` is the SHA-256 of the raw document.
    Raises:
        KeyError: if required sections are missing.
        ValueError: if a value cannot be parsed.
    """
    year = int(data["year"])
    time = data.get("time", {})
    return StatutoryTables(
        year=year,
        version=int(data.get("version", 1)),
        night_window=parse_night_window(time["night_window"]),
        hour_rounding=parse_hour_rounding(time.get("hour_rounding")),
        insurance=parse_insurance(data["insurance"]),
        withholding=parse_withholding(year, data["withholding"]),
        pay_rules=parse_pay_rules(data.get("pay_rules")),
        checksum=compute_checksum(data),
        source_path=source_path,
    )


def load_statutory_tables(path: Path) -> StatutoryTables:
    """Load and parse one year file."""
    return parse_statutory_tables(load_yaml_file(path), source_path=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the year document as key-sorted JSON.

    Two loads of an unchanged file always report the same checksum.
    """
    text = json.dumps(data, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
