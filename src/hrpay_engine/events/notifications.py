"""Handlers that turn domain events into employee notifications."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import (
    LoanDeductionApplied,
    VacationDeductionApplied,
    VacationReturnDue,
)
from hrpay_engine.models import Notification

logger = logging.getLogger(__name__)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def return_notice(employee_name: str, end_date: str, days_until_return: int) -> tuple[str, str]:
    """Title and message for a vacation return alert."""
    base = "Vacation return overdue" if days_until_return < 0 else "Vacation return due"
    if days_until_return < 0:
        due = f"{_plural(abs(days_until_return), 'day')} overdue"
    elif days_until_return == 0:
        due = "due today"
    else:
        due = f"due in {_plural(days_until_return, 'day')}"
    verb = "ended" if days_until_return < 0 else "ends"
    message = (
        f"Vacation for {employee_name} {verb} on {end_date} ({due}). "
        "Reactivate the employee or adjust the return date if they remain on leave."
    )
    return f"{base} ({end_date})", message


class NotificationWriter:
    """Persists notifications in their own session.

    Runs after the triggering transaction has committed, so a failure
    here never touches payroll or leave data.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def register(self, emitter: AsyncEventEmitter) -> None:
        emitter.on(VacationDeductionApplied, self.on_vacation_deduction)
        emitter.on(LoanDeductionApplied, self.on_loan_deduction)
        emitter.on(VacationReturnDue, self.on_vacation_return_due)

    async def on_vacation_deduction(self, event: VacationDeductionApplied) -> None:
        await self._insert(
            Notification(
                employee_id=event.employee_id,
                type="vacation_approved",
                title="Vacation Deduction Applied",
                message=(
                    f"{event.vacation_days} vacation days deducted from "
                    f"{event.period} payroll"
                ),
                priority="medium",
                status="unread",
                expiry_date=event.end_date,
                days_until_expiry=0,
                reference_id=event.payroll_run_id,
            )
        )

    async def on_loan_deduction(self, event: LoanDeductionApplied) -> None:
        await self._insert(
            Notification(
                employee_id=event.employee_id,
                type="loan_deduction",
                title="Loan Deduction Applied",
                message=f"{event.amount:.2f} deducted for loan repayment in {event.period}",
                priority="low",
                status="unread",
                expiry_date=event.end_date,
                days_until_expiry=0,
                reference_id=event.payroll_run_id,
            )
        )

    async def on_vacation_return_due(self, event: VacationReturnDue) -> None:
        """Create or refresh the alert; one alert per employee and end date."""
        title, message = return_notice(
            event.employee_name, event.end_date.isoformat(), event.days_until_return
        )
        async with self.session_factory() as session:
            result = await session.execute(
                select(Notification).where(
                    Notification.employee_id == event.employee_id,
                    Notification.type == "vacation_return_due",
                    Notification.reference_id == event.vacation_request_id,
                )
            )
            notification = result.scalars().first()
            if notification is None:
                notification = Notification(
                    employee_id=event.employee_id,
                    type="vacation_return_due",
                    reference_id=event.vacation_request_id,
                )
                session.add(notification)
            notification.title = title
            notification.message = message
            notification.priority = "critical"
            notification.status = "unread"
            notification.expiry_date = event.end_date
            notification.days_until_expiry = event.days_until_return
            await session.commit()

    async def _insert(self, notification: Notification) -> None:
        async with self.session_factory() as session:
            session.add(notification)
            await session.commit()
        logger.debug(
            "Notification %r created for employee %s",
            notification.title,
            notification.employee_id,
        )


def build_emitter(session_factory: async_sessionmaker[AsyncSession]) -> AsyncEventEmitter:
    """Emitter with the notification handlers registered."""
    emitter = AsyncEventEmitter()
    NotificationWriter(session_factory).register(emitter)
    return emitter
