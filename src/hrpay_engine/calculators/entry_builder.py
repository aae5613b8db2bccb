"""Payroll entry composition and run totals."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from hrpay_engine.calculators.types import (
    ZERO,
    EntryCalculation,
    EventTotals,
    LoanPlan,
    RunTotals,
)
from hrpay_engine.exceptions import ComputationError


class EntryBuilder:
    """Composes one employee's entry from its computed parts.

    Deduction order:
    1) event deductions (deduction, penalty), capped at gross pay
    2) loan deductions, capped at what remains

    Capping keeps net_pay = max(0, gross - loan - other) and lets run
    totals balance exactly.
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(EntryBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @classmethod
    def build(
        cls,
        employee_id: UUID,
        base_salary: Decimal,
        working_days: int,
        actual_working_days: int,
        vacation_days: int,
        events: EventTotals,
        loan_plan: LoanPlan,
    ) -> EntryCalculation:
        """Build an entry. `loan_plan` must already respect the net budget."""
        bonus_amount = cls.round_to_cents(events.bonus_amount)
        gross_pay = cls.round_to_cents(base_salary + bonus_amount)
        other_deductions = min(cls.round_to_cents(events.other_deductions), gross_pay)
        loan_deduction = cls.round_to_cents(loan_plan.total)

        if loan_deduction > gross_pay - other_deductions:
            raise ComputationError(
                "Loan plan exceeds available net pay",
                {"employee_id": str(employee_id), "loan_deduction": str(loan_deduction)},
            )

        net_pay = max(ZERO, gross_pay - (loan_deduction + other_deductions))

        allowances = None
        if events.allowances is not None:
            allowances = {
                key: cls.round_to_cents(value)
                for key, value in sorted(events.allowances.items())
            }

        reason = cls.adjustment_reason(
            vacation_days=vacation_days,
            loan_deduction=loan_deduction,
            deductions_capped=other_deductions < events.other_deductions,
        )

        return EntryCalculation(
            employee_id=employee_id,
            base_salary=cls.round_to_cents(base_salary),
            bonus_amount=bonus_amount,
            gross_pay=gross_pay,
            working_days=working_days,
            actual_working_days=actual_working_days,
            vacation_days=vacation_days,
            loan_deduction=loan_deduction,
            other_deductions=other_deductions,
            net_pay=net_pay,
            allowances=allowances,
            adjustment_reason=reason,
            loan_plan=loan_plan,
        )

    @staticmethod
    def adjustment_reason(
        vacation_days: int,
        loan_deduction: Decimal,
        deductions_capped: bool = False,
    ) -> str | None:
        """Human-readable summary of what changed the entry."""
        parts: list[str] = []
        if vacation_days > 0:
            parts.append(f"{vacation_days} vacation days")
        if loan_deduction > 0:
            parts.append(f"Loan deduction: {loan_deduction:.2f}")
        if deductions_capped:
            parts.append("Deductions capped at gross pay")
        if not parts:
            return None
        return ". ".join(parts) + "."


def compute_run_totals(entries: Iterable[EntryCalculation]) -> RunTotals:
    """Sum entries and verify gross - deductions == net."""
    gross = ZERO
    deductions = ZERO
    net = ZERO
    for entry in entries:
        gross += entry.gross_pay
        deductions += entry.total_deductions
        net += entry.net_pay

    if gross - deductions != net:
        raise ComputationError(
            "Payroll totals do not balance",
            {"gross": str(gross), "deductions": str(deductions), "net": str(net)},
        )
    if gross < 0 or net < 0:
        raise ComputationError(
            "Payroll totals must not be negative",
            {"gross": str(gross), "net": str(net)},
        )
    return RunTotals(gross_amount=gross, total_deductions=deductions, net_amount=net)
