"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.calculators.dates import DateRange
from hrpay_engine.calculators.entry_builder import EntryBuilder, compute_run_totals
from hrpay_engine.calculators.event_aggregator import aggregate_events
from hrpay_engine.calculators.leave_days import count_vacation_days, prorate_salary
from hrpay_engine.calculators.loan_scheduler import plan_loan_deductions
from hrpay_engine.calculators.types import (
    EntryCalculation,
    LoanPlan,
    RunTotals,
    ScenarioToggles,
)
from hrpay_engine.exceptions import ComputationError, ValidationError
from hrpay_engine.models import (
    Employee,
    EmployeeEvent,
    EmployeeStatus,
    Loan,
    LoanStatus,
    RecurrenceType,
    VacationRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class PayrollCalculation:
    """Result of calculating every active employee for a period."""

    period: DateRange
    toggles: ScenarioToggles
    entries: list[EntryCalculation]
    totals: RunTotals


class PayrollInputLoader:
    """Reads the data a payroll calculation depends on.

    Each read is a separate method so callers (and tests) can see exactly
    which stores were touched.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employees(self) -> list[Employee]:
        """Employees eligible for payroll (status active)."""
        result = await self.session.execute(
            select(Employee)
            .where(Employee.status == EmployeeStatus.ACTIVE)
            .order_by(Employee.employee_number)
        )
        return list(result.scalars().all())

    async def get_approved_vacations(
        self, employee_ids: list[UUID], period: DateRange
    ) -> dict[UUID, list[DateRange]]:
        """Approved leave intervals intersecting the period, per employee."""
        result = await self.session.execute(
            select(
                VacationRequest.employee_id,
                VacationRequest.start_date,
                VacationRequest.end_date,
            ).where(
                VacationRequest.employee_id.in_(employee_ids),
                VacationRequest.status == "approved",
                VacationRequest.start_date <= period.end,
                VacationRequest.end_date >= period.start,
            )
        )
        by_employee: dict[UUID, list[DateRange]] = defaultdict(list)
        for employee_id, start, end in result.all():
            by_employee[employee_id].append(DateRange(start, end))
        return by_employee

    async def get_events(
        self, employee_ids: list[UUID], period: DateRange
    ) -> dict[UUID, list[EmployeeEvent]]:
        """Events that can produce an occurrence inside the period."""
        one_off = and_(
            EmployeeEvent.recurrence_type != RecurrenceType.MONTHLY,
            EmployeeEvent.event_date >= period.start,
            EmployeeEvent.event_date <= period.end,
        )
        recurring = and_(
            EmployeeEvent.recurrence_type == RecurrenceType.MONTHLY,
            EmployeeEvent.event_date <= period.end,
            or_(
                EmployeeEvent.recurrence_end_date.is_(None),
                EmployeeEvent.recurrence_end_date >= period.start,
            ),
        )
        result = await self.session.execute(
            select(EmployeeEvent).where(
                EmployeeEvent.employee_id.in_(employee_ids),
                EmployeeEvent.affects_payroll.is_(True),
                EmployeeEvent.status == "active",
                or_(one_off, recurring),
            )
        )
        by_employee: dict[UUID, list[EmployeeEvent]] = defaultdict(list)
        for event in result.scalars().all():
            by_employee[event.employee_id].append(event)
        return by_employee

    async def get_loans(self, employee_ids: list[UUID]) -> dict[UUID, list[Loan]]:
        """Active loans with an outstanding balance, per employee."""
        result = await self.session.execute(
            select(Loan).where(
                Loan.employee_id.in_(employee_ids),
                Loan.status == LoanStatus.ACTIVE,
                Loan.remaining_amount > 0,
            )
        )
        by_employee: dict[UUID, list[Loan]] = defaultdict(list)
        for loan in result.scalars().all():
            by_employee[loan.employee_id].append(loan)
        return by_employee


class PayrollEngine:
    """Payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Count merged vacation days inside the period
    2) Prorate salary over the employee's standard working days
    3) Expand and net payroll events (respecting scenario toggles)
    4) Plan loan deductions against the remaining net pay
    5) Compose the entry
    Then sum and balance the run totals.

    Any per-employee failure aborts the whole calculation.
    """

    def __init__(self, session: AsyncSession, loader: PayrollInputLoader | None = None):
        self.session = session
        self.loader = loader or PayrollInputLoader(session)

    async def calculate(
        self,
        period: DateRange,
        toggles: ScenarioToggles | None = None,
    ) -> PayrollCalculation:
        """Calculate entries for all active employees."""
        toggles = toggles or ScenarioToggles()

        employees = await self.loader.get_employees()
        if not employees:
            raise ValidationError("No active employees found for payroll generation")

        employee_ids = [e.employee_id for e in employees]
        vacations = (
            await self.loader.get_approved_vacations(employee_ids, period)
            if toggles.vacations
            else {}
        )
        events = await self.loader.get_events(employee_ids, period)
        loans = await self.loader.get_loans(employee_ids) if toggles.loans else {}

        entries: list[EntryCalculation] = []
        for employee in employees:
            try:
                entry = self.calculate_employee(
                    employee,
                    period,
                    toggles,
                    vacations=vacations.get(employee.employee_id, []),
                    events=events.get(employee.employee_id, []),
                    loans=loans.get(employee.employee_id, []),
                )
            except ComputationError as exc:
                logger.error(
                    "Payroll calculation failed for employee %s: %s",
                    employee.employee_number,
                    exc.message,
                )
                raise ComputationError(
                    f"Payroll calculation failed for employee "
                    f"{employee.employee_number}: {exc.message}",
                    {**exc.details, "employee_id": str(employee.employee_id)},
                ) from exc
            entries.append(entry)

        totals = compute_run_totals(entries)
        return PayrollCalculation(
            period=period, toggles=toggles, entries=entries, totals=totals
        )

    @staticmethod
    def calculate_employee(
        employee: Employee,
        period: DateRange,
        toggles: ScenarioToggles,
        vacations: list[DateRange],
        events: list[EmployeeEvent],
        loans: list[Loan],
    ) -> EntryCalculation:
        """Calculate a single employee's entry from pre-loaded inputs."""
        vacation_days = count_vacation_days(vacations, period) if toggles.vacations else 0
        actual_days, base_salary = prorate_salary(
            employee.salary, employee.standard_working_days, vacation_days
        )

        event_totals = aggregate_events(events, period, toggles)
        gross = EntryBuilder.round_to_cents(base_salary + event_totals.bonus_amount)
        other = min(EntryBuilder.round_to_cents(event_totals.other_deductions), gross)

        # Loans only take what net pay can cover; the unpaid part of the
        # installment stays on the loan for the next run.
        loan_plan = (
            plan_loan_deductions(loans, available=gross - other)
            if toggles.loans
            else LoanPlan()
        )

        return EntryBuilder.build(
            employee_id=employee.employee_id,
            base_salary=base_salary,
            working_days=employee.standard_working_days,
            actual_working_days=actual_days,
            vacation_days=vacation_days,
            events=event_totals,
            loan_plan=loan_plan,
        )
