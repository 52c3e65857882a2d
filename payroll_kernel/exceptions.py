"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A pay statement that silently falls back to a nearby tax table misstates
statutory tax.  Callers must be able to tell "this year has no table"
apart from "this column is not supported" apart from "the recomputed
payslip does not add up" without parsing message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example:
    try:
        result = calculate_withholding_tax(year=2031, ...)
    except UnsupportedTaxYearError as e:
        log.error("no table", extra={"year": e.year, "supported": e.supported_years})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PayrollKernelError:

    PayrollKernelError (base)
    |
    +-- ConfigurationError
    |   +-- UnsupportedTaxYearError
    |   +-- UnsupportedTaxColumnError
    |   +-- InvalidBracketTableError
    |
    +-- ShiftDataError
    |   +-- MalformedTimeError
    |   +-- UnknownServiceTypeError
    |
    +-- PayslipError
        +-- PayslipInvariantError
        +-- UnknownPayslipFieldError
        +-- PayslipMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | UNSUPPORTED_TAX_YEAR        | No statutory tables for the year
                | UNSUPPORTED_TAX_COLUMN      | Column is not 甲/乙/丙
                | INVALID_BRACKET_TABLE       | YAML band table fails validation
----------------|-----------------------------|-----------------------------------------
Shift data      | MALFORMED_TIME              | Time-of-day string cannot be parsed
                | UNKNOWN_SERVICE_TYPE        | Service code not in the classification
----------------|-----------------------------|-----------------------------------------
Payslip         | PAYSLIP_INVARIANT_VIOLATION | Recomputed payslip breaks a sum rule
                | UNKNOWN_PAYSLIP_FIELD       | Pin requested for a non-derived field
                | PAYSLIP_MISMATCH            | Profile and payslip belong to
                |                             | different helpers / salary modes

Shift data errors are raised by the parsing helpers only.  The shift
aggregator converts them into recorded exclusions; they never abort a
monthly aggregation.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(PayrollKernelError):
    """Base exception for statutory configuration errors. Always fatal."""

    code: str = "CONFIGURATION_ERROR"


class UnsupportedTaxYearError(ConfigurationError):
    """No statutory table set exists for the requested year."""

    code: str = "UNSUPPORTED_TAX_YEAR"

    def __init__(self, year: int, supported_years: tuple[int, ...] = ()):
        self.year = year
        self.supported_years = tuple(supported_years)
        supported = ", ".join(str(y) for y in self.supported_years) or "none"
        super().__init__(
            f"No statutory tables for year {year} (supported: {supported})"
        )


class UnsupportedTaxColumnError(ConfigurationError):
    """Requested withholding column is not one of 甲/乙/丙."""

    code: str = "UNSUPPORTED_TAX_COLUMN"

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Unsupported withholding tax column: {column!r}")


class InvalidBracketTableError(ConfigurationError):
    """A band or bracket table in a configuration set is malformed."""

    code: str = "INVALID_BRACKET_TABLE"

    def __init__(self, table_name: str, errors: list[str]):
        self.table_name = table_name
        self.errors = list(errors)
        super().__init__(
            f"Invalid table {table_name}: {len(self.errors)} error(s): "
            + "; ".join(self.errors)
        )


# Shift data exceptions


class ShiftDataError(PayrollKernelError):
    """Base exception for data-quality problems in shift records."""

    code: str = "SHIFT_DATA_ERROR"


class MalformedTimeError(ShiftDataError):
    """A time-of-day value is not a valid "HH:MM" string."""

    code: str = "MALFORMED_TIME"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Malformed time of day: {value!r}")


class UnknownServiceTypeError(ShiftDataError):
    """A service-type code has no entry in the classification table."""

    code: str = "UNKNOWN_SERVICE_TYPE"

    def __init__(self, service_type: str):
        self.service_type = service_type
        super().__init__(f"Unknown service type: {service_type!r}")


# Payslip exceptions


class PayslipError(PayrollKernelError):
    """Base exception for payslip aggregate errors."""

    code: str = "PAYSLIP_ERROR"


class PayslipInvariantError(PayslipError):
    """
    A recomputed payslip violates one or more sum invariants.

    Carries the complete list of violations found in a single pass so
    the caller can reject the recomputation with every anomaly at once.
    """

    code: str = "PAYSLIP_INVARIANT_VIOLATION"

    def __init__(self, payslip_id: str, violations: list):
        self.payslip_id = payslip_id
        self.violations = list(violations)
        names = ", ".join(v.invariant for v in self.violations)
        super().__init__(
            f"Payslip {payslip_id} failed {len(self.violations)} invariant(s): {names}"
        )


class UnknownPayslipFieldError(PayslipError):
    """A pin was requested for a field that is not a derived payslip field."""

    code: str = "UNKNOWN_PAYSLIP_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Not a derived payslip field: {field_name!r}")


class PayslipMismatchError(PayslipError):
    """Profile and payslip do not describe the same helper and salary mode."""

    code: str = "PAYSLIP_MISMATCH"

    def __init__(self, payslip_id: str, reason: str):
        self.payslip_id = payslip_id
        self.reason = reason
        super().__init__(f"Payslip {payslip_id} does not match profile: {reason}")
