"""Payroll run service - generation, recalculation and deletion."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrpay_engine.calculators.engine import PayrollCalculation, PayrollEngine
from hrpay_engine.calculators.entry_builder import EntryBuilder
from hrpay_engine.calculators.loan_scheduler import apply_loan_deduction
from hrpay_engine.calculators.types import ZERO, ScenarioToggles
from hrpay_engine.database import PAYROLL_PERIOD_LOCK_KEY, acquire_xact_lock
from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import (
    DomainEvent,
    LoanDeductionApplied,
    PayrollGenerated,
    VacationDeductionApplied,
)
from hrpay_engine.exceptions import ComputationError, ConflictError, NotFoundError, ValidationError
from hrpay_engine.models import Loan, LoanPayment, LoanStatus, PayrollEntry, PayrollRun
from hrpay_engine.services.period_guard import PeriodGuard

logger = logging.getLogger(__name__)


class PayrollService:
    """Service for the payroll run lifecycle.

    Operations:
    - generate_payroll: guard, calculate, write run + entries, apply loans
    - recalculate_run: recompute entry net pay and run totals
    - delete_run: remove a run and its entries (loan ledger untouched)

    generate_payroll owns its transaction: the run, its entries and the
    loan ledger commit together, and notifications are published only
    after that commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        emitter: AsyncEventEmitter | None = None,
        engine: PayrollEngine | None = None,
    ):
        self.session = session
        self.emitter = emitter or AsyncEventEmitter()
        self.engine = engine or PayrollEngine(session)
        self.guard = PeriodGuard(session)

    async def get_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Load a run with its entries, raising NotFoundError."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.payroll_run_id == payroll_run_id)
            .options(selectinload(PayrollRun.entries))
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("PayrollRun", payroll_run_id)
        return run

    async def list_runs(self) -> list[PayrollRun]:
        result = await self.session.execute(
            select(PayrollRun).order_by(PayrollRun.start_date.desc())
        )
        return list(result.scalars().all())

    async def generate_payroll(
        self,
        period: str,
        start_date: date,
        end_date: date,
        scenario_toggles: ScenarioToggles | dict[str, Any] | None = None,
    ) -> PayrollRun:
        """Generate and persist a payroll run for all active employees.

        Raises ValidationError for bad input or no active employees,
        ConflictError when the period overlaps an existing run, and
        ComputationError when any employee fails to calculate. Nothing is
        written in any of those cases.
        """
        window = PeriodGuard.validate(period, start_date, end_date)
        toggles = self._parse_toggles(scenario_toggles)

        try:
            await acquire_xact_lock(self.session, PAYROLL_PERIOD_LOCK_KEY)
            await self.guard.ensure_available(window)

            calculation = await self.engine.calculate(window, toggles)
            run = self._build_run(period.strip(), calculation)
            self.session.add(run)
            await self.session.flush()

            await self._apply_loan_deductions(run, calculation)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                "A payroll run already exists for an overlapping period",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            ) from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Generated payroll run %s (%s) for %d employees, net %s",
            run.payroll_run_id,
            run.period,
            len(calculation.entries),
            run.net_amount,
        )
        await self._publish(run, calculation)
        return run

    async def recalculate_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Recompute each entry's gross and net pay and the run totals.

        Uses the stored component amounts; inputs are not re-read.
        """
        run = await self.get_run(payroll_run_id)

        try:
            gross_total = ZERO
            deductions_total = ZERO
            net_total = ZERO
            for entry in run.entries:
                entry.gross_pay = EntryBuilder.round_to_cents(
                    entry.base_salary + entry.bonus_amount
                )
                deductions = entry.total_deductions
                entry.net_pay = max(ZERO, entry.gross_pay - deductions)
                gross_total += entry.gross_pay
                deductions_total += min(deductions, entry.gross_pay)
                net_total += entry.net_pay

            if gross_total - deductions_total != net_total:
                raise ComputationError(
                    "Payroll totals do not balance",
                    {"payroll_run_id": str(payroll_run_id)},
                )

            run.gross_amount = gross_total
            run.total_deductions = deductions_total
            run.net_amount = net_total
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Recalculated payroll run %s", payroll_run_id)
        return run

    async def delete_run(self, payroll_run_id: UUID) -> None:
        """Delete a run and its entries.

        Loan balances are not restored; their payment rows remain as the
        record of what was withheld.
        """
        run = await self.get_run(payroll_run_id)
        await self.session.delete(run)
        await self.session.commit()
        logger.info("Deleted payroll run %s (%s)", payroll_run_id, run.period)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_toggles(
        toggles: ScenarioToggles | dict[str, Any] | None,
    ) -> ScenarioToggles:
        if isinstance(toggles, ScenarioToggles):
            return toggles
        try:
            return ScenarioToggles.from_dict(toggles)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @staticmethod
    def _build_run(period: str, calculation: PayrollCalculation) -> PayrollRun:
        run = PayrollRun(
            period=period,
            start_date=calculation.period.start,
            end_date=calculation.period.end,
            gross_amount=calculation.totals.gross_amount,
            total_deductions=calculation.totals.total_deductions,
            net_amount=calculation.totals.net_amount,
            status="completed",
            scenario_toggles=calculation.toggles.to_dict(),
        )
        for calc in calculation.entries:
            run.entries.append(
                PayrollEntry(
                    employee_id=calc.employee_id,
                    base_salary=calc.base_salary,
                    bonus_amount=calc.bonus_amount,
                    gross_pay=calc.gross_pay,
                    working_days=calc.working_days,
                    actual_working_days=calc.actual_working_days,
                    vacation_days=calc.vacation_days,
                    tax_deduction=calc.tax_deduction,
                    social_security_deduction=calc.social_security_deduction,
                    health_insurance_deduction=calc.health_insurance_deduction,
                    loan_deduction=calc.loan_deduction,
                    other_deductions=calc.other_deductions,
                    net_pay=calc.net_pay,
                    allowances=(
                        None
                        if calc.allowances is None
                        else {k: str(v) for k, v in calc.allowances.items()}
                    ),
                    adjustment_reason=calc.adjustment_reason,
                )
            )
        return run

    async def _apply_loan_deductions(
        self, run: PayrollRun, calculation: PayrollCalculation
    ) -> None:
        """Mutate loan balances for a flushed run, within its transaction."""
        planned = {
            d.loan_id: (entry.employee_id, d.amount)
            for entry in calculation.entries
            for d in entry.loan_plan.deductions
        }
        if not planned:
            return

        result = await self.session.execute(
            select(Loan)
            .where(Loan.loan_id.in_(list(planned)))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        loans = {loan.loan_id: loan for loan in result.scalars().all()}

        for loan_id, (employee_id, amount) in planned.items():
            loan = loans.get(loan_id)
            if loan is None or loan.status != LoanStatus.ACTIVE or loan.remaining_amount < amount:
                raise ConflictError(
                    "Loan changed during payroll generation",
                    {"loan_id": str(loan_id)},
                )
            applied = apply_loan_deduction(loan, amount)
            self.session.add(
                LoanPayment(
                    loan_id=loan_id,
                    payroll_run_id=run.payroll_run_id,
                    employee_id=employee_id,
                    amount=applied,
                    applied_date=run.end_date,
                )
            )
            logger.debug(
                "Applied %s to loan %s (remaining %s, status %s)",
                applied,
                loan_id,
                loan.remaining_amount,
                loan.status,
            )
        await self.session.flush()

    async def _publish(self, run: PayrollRun, calculation: PayrollCalculation) -> None:
        """Best-effort post-commit notifications; failures are only logged."""
        events: list[DomainEvent] = [
            PayrollGenerated(
                payroll_run_id=run.payroll_run_id,
                period=run.period,
                start_date=run.start_date,
                end_date=run.end_date,
                employee_count=len(calculation.entries),
                net_amount=Decimal(run.net_amount),
            )
        ]
        for entry in calculation.entries:
            if entry.vacation_days > 0:
                events.append(
                    VacationDeductionApplied(
                        payroll_run_id=run.payroll_run_id,
                        employee_id=entry.employee_id,
                        period=run.period,
                        end_date=run.end_date,
                        vacation_days=entry.vacation_days,
                    )
                )
            if entry.loan_deduction > 0:
                events.append(
                    LoanDeductionApplied(
                        payroll_run_id=run.payroll_run_id,
                        employee_id=entry.employee_id,
                        period=run.period,
                        end_date=run.end_date,
                        amount=entry.loan_deduction,
                    )
                )
        try:
            errors = await self.emitter.emit_all(events)
        except Exception:
            logger.exception("Notification publishing failed for run %s", run.payroll_run_id)
            return
        if errors:
            logger.warning(
                "%d notification handler(s) failed for run %s",
                len(errors),
                run.payroll_run_id,
            )
