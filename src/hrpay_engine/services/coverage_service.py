"""Concurrent-leave coverage analysis and leave conflict checks."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.calculators.dates import DateRange
from hrpay_engine.config import get_settings
from hrpay_engine.exceptions import ConflictError, ValidationError
from hrpay_engine.models import Department, Employee, VacationRequest
from hrpay_engine.services.state_machine import VacationStatus

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"


@dataclass
class CoverageDay:
    """Employees on approved leave for one date, by department."""

    day: date
    departments: dict[str, int] = field(default_factory=dict)
    flagged_departments: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.departments.values())

    @property
    def flagged(self) -> bool:
        return bool(self.flagged_departments)


@dataclass
class CoverageReport:
    start_date: date
    end_date: date
    threshold: int
    days: list[CoverageDay]

    @property
    def flagged_dates(self) -> list[date]:
        return [d.day for d in self.days if d.flagged]


class CoverageService:
    """Buckets approved leave by day and department."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_coverage(
        self,
        start_date: date,
        end_date: date,
        threshold: int | None = None,
    ) -> CoverageReport:
        """Per-day, per-department leave counts over an inclusive range.

        A department is flagged on a day when its count meets or exceeds
        `threshold`. Each employee counts once per day even when several
        approved requests cover it.
        """
        if threshold is None:
            threshold = get_settings().coverage_threshold
        if threshold < 1:
            raise ValidationError("Coverage threshold must be at least 1", {"threshold": threshold})
        if end_date < start_date:
            raise ValidationError(
                "End date must not precede start date",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        window = DateRange(start_date, end_date)

        result = await self.session.execute(
            select(
                VacationRequest.employee_id,
                VacationRequest.start_date,
                VacationRequest.end_date,
                Department.name,
            )
            .join(Employee, Employee.employee_id == VacationRequest.employee_id)
            .outerjoin(Department, Department.department_id == Employee.department_id)
            .where(
                VacationRequest.status == VacationStatus.APPROVED.value,
                VacationRequest.start_date <= window.end,
                VacationRequest.end_date >= window.start,
            )
        )

        on_leave: dict[date, dict[str, set[UUID]]] = defaultdict(lambda: defaultdict(set))
        for employee_id, start, end, department in result.all():
            clipped = DateRange(start, end).clip(window)
            if clipped is None:
                continue
            for day in clipped.iter_days():
                on_leave[day][department or UNASSIGNED].add(employee_id)

        days: list[CoverageDay] = []
        for day in window.iter_days():
            counts = {name: len(ids) for name, ids in sorted(on_leave.get(day, {}).items())}
            days.append(
                CoverageDay(
                    day=day,
                    departments=counts,
                    flagged_departments=[n for n, c in counts.items() if c >= threshold],
                )
            )

        report = CoverageReport(start_date, end_date, threshold, days)
        if report.flagged_dates:
            logger.info(
                "Coverage check %s..%s flagged %d day(s) at threshold %d",
                start_date,
                end_date,
                len(report.flagged_dates),
                threshold,
            )
        return report

    async def find_leave_on(self, employee_id: UUID, day: date) -> VacationRequest | None:
        """Approved leave of the employee covering `day`, if any."""
        result = await self.session.execute(
            select(VacationRequest)
            .where(
                VacationRequest.employee_id == employee_id,
                VacationRequest.status == VacationStatus.APPROVED.value,
                VacationRequest.start_date <= day,
                VacationRequest.end_date >= day,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def ensure_not_on_leave(self, employee_id: UUID, day: date) -> None:
        """Raise ConflictError when `day` falls inside approved leave."""
        leave = await self.find_leave_on(employee_id, day)
        if leave is None:
            return
        raise ConflictError(
            "Employee is on approved leave on that date",
            {
                "vacation_request_id": str(leave.vacation_request_id),
                "employee_id": str(employee_id),
                "start_date": leave.start_date.isoformat(),
                "end_date": leave.end_date.isoformat(),
            },
        )
