"""Payroll period validation and duplicate-period guard."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.calculators.dates import DateRange
from hrpay_engine.exceptions import ConflictError, ValidationError
from hrpay_engine.models import PayrollRun

logger = logging.getLogger(__name__)


class PeriodGuard:
    """First gate of payroll generation.

    Runs before any employee, loan, vacation or event read so a duplicate
    request is rejected cheaply and without side effects.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def validate(period: str | None, start_date: date | None, end_date: date | None) -> DateRange:
        """Check required fields and ordering, returning the window."""
        if not period or not period.strip():
            raise ValidationError("Period label is required")
        if start_date is None or end_date is None:
            raise ValidationError("Start date and end date are required")
        if end_date < start_date:
            raise ValidationError(
                "End date must not precede start date",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        return DateRange(start_date, end_date)

    async def find_overlapping(self, window: DateRange) -> PayrollRun | None:
        """Existing run sharing at least one day with the window."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(
                PayrollRun.start_date <= window.end,
                PayrollRun.end_date >= window.start,
            )
            .order_by(PayrollRun.start_date)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def ensure_available(self, window: DateRange) -> None:
        """Raise ConflictError naming the overlapping run, if any."""
        existing = await self.find_overlapping(window)
        if existing is None:
            return
        logger.info(
            "Payroll period %s..%s overlaps run %s (%s)",
            window.start,
            window.end,
            existing.payroll_run_id,
            existing.period,
        )
        raise ConflictError(
            "A payroll run already exists for an overlapping period",
            {
                "payroll_run_id": str(existing.payroll_run_id),
                "period": existing.period,
                "start_date": existing.start_date.isoformat(),
                "end_date": existing.end_date.isoformat(),
            },
        )
