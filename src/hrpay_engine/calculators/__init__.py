"""Payroll calculators: pure computation plus the orchestrating engine."""

from hrpay_engine.calculators.dates import DateRange
from hrpay_engine.calculators.engine import (
    PayrollCalculation,
    PayrollEngine,
    PayrollInputLoader,
)
from hrpay_engine.calculators.types import EntryCalculation, ScenarioToggles

__all__ = [
    "DateRange",
    "EntryCalculation",
    "PayrollCalculation",
    "PayrollEngine",
    "PayrollInputLoader",
    "ScenarioToggles",
]
