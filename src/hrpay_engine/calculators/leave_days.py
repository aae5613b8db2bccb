"""Vacation-day counting and working-day proration."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from hrpay_engine.calculators.dates import DateRange, count_distinct_days
from hrpay_engine.exceptions import ComputationError

CENTS = Decimal("0.01")


def count_vacation_days(vacations: Iterable[DateRange], period: DateRange) -> int:
    """Days of approved leave inside the period.

    Requests are clipped to the period and merged first, so two approved
    requests covering the same day count that day once.
    """
    return count_distinct_days(vacations, bounds=period)


def actual_working_days(standard_working_days: int, vacation_days: int) -> int:
    """Working days left after leave, never below zero."""
    return max(0, standard_working_days - vacation_days)


def prorate_salary(
    salary: Decimal,
    standard_working_days: int,
    vacation_days: int,
) -> tuple[int, Decimal]:
    """Return (actual_working_days, base_salary) for a monthly salary.

    The employee's own standard working days is the denominator.
    """
    if standard_working_days <= 0:
        raise ComputationError(
            "Standard working days must be positive",
            {"standard_working_days": standard_working_days},
        )
    if salary < 0:
        raise ComputationError("Salary must not be negative", {"salary": str(salary)})

    actual = actual_working_days(standard_working_days, vacation_days)
    base = (salary * actual / standard_working_days).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )
    return actual, base
