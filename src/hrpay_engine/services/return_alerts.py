"""Alerts for employees whose approved vacation is ending or overdue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.config import get_settings
from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import VacationReturnDue
from hrpay_engine.models import Employee, EmployeeStatus, VacationRequest
from hrpay_engine.services.state_machine import VacationStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnAlert:
    vacation_request_id: UUID
    employee_id: UUID
    employee_name: str
    end_date: date
    days_until_return: int

    @property
    def overdue(self) -> bool:
        return self.days_until_return < 0


class VacationReturnAlertService:
    """Finds on-leave employees due back soon (or overdue) and alerts HR."""

    def __init__(
        self,
        session: AsyncSession,
        emitter: AsyncEventEmitter | None = None,
        lookahead_days: int | None = None,
        overdue_lookback_days: int | None = None,
    ):
        settings = get_settings()
        self.session = session
        self.emitter = emitter or AsyncEventEmitter()
        self.lookahead_days = (
            settings.vacation_return_lookahead_days if lookahead_days is None else lookahead_days
        )
        self.overdue_lookback_days = (
            settings.vacation_return_overdue_lookback_days
            if overdue_lookback_days is None
            else overdue_lookback_days
        )

    async def find_due(self, today: date) -> list[ReturnAlert]:
        """Approved vacations of on-leave employees ending inside the window."""
        window_start = today - timedelta(days=self.overdue_lookback_days)
        window_end = today + timedelta(days=self.lookahead_days)
        result = await self.session.execute(
            select(VacationRequest, Employee)
            .join(Employee, Employee.employee_id == VacationRequest.employee_id)
            .where(
                VacationRequest.status == VacationStatus.APPROVED.value,
                Employee.status == EmployeeStatus.ON_LEAVE,
                VacationRequest.end_date >= window_start,
                VacationRequest.end_date <= window_end,
            )
            .order_by(VacationRequest.end_date)
        )
        alerts = []
        for request, employee in result.all():
            name = f"{employee.first_name.strip()} {employee.last_name.strip()}".strip()
            alerts.append(
                ReturnAlert(
                    vacation_request_id=request.vacation_request_id,
                    employee_id=employee.employee_id,
                    employee_name=name or "the employee",
                    end_date=request.end_date,
                    days_until_return=(request.end_date - today).days,
                )
            )
        return alerts

    async def process(self, today: date | None = None) -> int:
        """Publish an alert per due vacation; returns how many were processed."""
        today = today or date.today()
        alerts = await self.find_due(today)
        processed = 0
        for alert in alerts:
            errors = await self.emitter.emit(
                VacationReturnDue(
                    vacation_request_id=alert.vacation_request_id,
                    employee_id=alert.employee_id,
                    employee_name=alert.employee_name,
                    end_date=alert.end_date,
                    days_until_return=alert.days_until_return,
                )
            )
            if errors:
                logger.warning(
                    "Vacation return alert for request %s failed", alert.vacation_request_id
                )
                continue
            processed += 1
        return processed
