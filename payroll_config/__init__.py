"""
payroll_config -- single public entrypoint for statutory configuration.

Responsibility:
    Provides the ONLY way to obtain year-versioned statutory tables at
    runtime through ``get_statutory_tables()``.  No engine or service
    reads YAML files directly.  Returns a frozen ``StatutoryTables``.

Architecture position:
    Configuration -- YAML-driven statutory data, load-time validation.
    This package sits above ``payroll_kernel`` and below
    ``payroll_engines`` / ``payroll_services``.  The kernel MUST NEVER
    import from ``payroll_config``.

Invariants enforced:
    - Single entrypoint: all runtime statutory data flows through
      ``get_statutory_tables()``.
    - Load-time validation: a set must pass band, bracket and rate
      validation before it is served.
    - Exact year match: a year without a set raises
      ``UnsupportedTaxYearError``; there is no nearest-year fallback.
    - Deterministic identity: the same YAML always yields the same
      checksum.

Failure modes:
    - ``UnsupportedTaxYearError`` -- no set for the requested year.
    - ``InvalidBracketTableError`` -- the set failed validation.
    - ``KeyError`` / ``ValueError`` / ``yaml.YAMLError`` -- malformed file.

Audit relevance:
    Every load emits a ``PAYROLL_CONFIG_TRACE`` log entry with the year,
    version and checksum, tying each payslip back to the exact table
    revision that priced it.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from payroll_config.loader import load_statutory_tables
from payroll_config.schema import StatutoryTables
from payroll_config.validator import validate_statutory_tables
from payroll_kernel.exceptions import InvalidBracketTableError, UnsupportedTaxYearError

_logger = logging.getLogger("payroll_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

_cache: dict[tuple[Path, int], StatutoryTables] = {}
_cache_lock = threading.Lock()


def supported_years(config_dir: Path | None = None) -> tuple[int, ...]:
    """Years that have a ``<year>.yaml`` set, ascending."""
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    if not sets_dir.is_dir():
        return ()
    return tuple(sorted(int(p.stem) for p in sets_dir.glob("*.yaml") if p.stem.isdigit()))


def get_statutory_tables(year: int, config_dir: Path | None = None) -> StatutoryTables:
    """The ONLY public configuration entrypoint.

    Loads, validates and caches the set for ``year``.  Sets are frozen;
    the cached instance is shared across threads.

    Args:
        year: Statutory (payment) year.
        config_dir: Override path to the sets directory.
            Defaults to payroll_config/sets/.

    Raises:
        UnsupportedTaxYearError: no set exists for ``year``.
        InvalidBracketTableError: the set failed validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    key = (sets_dir, year)

    with _cache_lock:
        cached = _cache.get(key)
        if cached is not None:
            return cached

        path = sets_dir / f"{year}.yaml"
        if not path.is_file():
            raise UnsupportedTaxYearError(year, supported_years(sets_dir))

        tables = load_statutory_tables(path)
        if tables.year != year:
            raise InvalidBracketTableError(
                path.name, [f"file declares year {tables.year}, expected {year}"]
            )

        validation = validate_statutory_tables(tables)
        if not validation.is_valid:
            raise InvalidBracketTableError(path.name, validation.errors)
        for warning in validation.warnings:
            _logger.warning(
                "config_validation_warning",
                extra={"year": year, "warning": warning},
            )

        _logger.info(
            "PAYROLL_CONFIG_TRACE",
            extra={
                "trace_type": "PAYROLL_CONFIG_TRACE",
                "year": tables.year,
                "version": tables.version,
                "checksum": tables.checksum,
                "source_path": tables.source_path,
            },
        )

        _cache[key] = tables
        return tables


def clear_cache() -> None:
    """Drop every cached set (tests and hot reload only)."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "StatutoryTables",
    "clear_cache",
    "get_statutory_tables",
    "supported_years",
]
