"""Loan deduction planning and ledger application."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from hrpay_engine.calculators.types import ZERO, LoanDeduction, LoanPlan
from hrpay_engine.exceptions import ComputationError
from hrpay_engine.models.compensation import LoanStatus

if TYPE_CHECKING:
    from hrpay_engine.models.compensation import Loan


def _repayment_order(loan: Loan) -> tuple:
    # Unflushed loans have no created_at yet; sort them last within a start date
    created = loan.created_at or datetime.max
    return (loan.start_date, created.replace(tzinfo=None), str(loan.loan_id))


def deductible_loans(loans: Iterable[Loan]) -> list[Loan]:
    """Active loans with an outstanding balance, oldest first."""
    eligible = [
        loan
        for loan in loans
        if loan.status == LoanStatus.ACTIVE and loan.remaining_amount > 0
    ]
    return sorted(eligible, key=_repayment_order)


def plan_loan_deductions(
    loans: Iterable[Loan],
    available: Decimal | None = None,
) -> LoanPlan:
    """Plan `min(monthly_deduction, remaining_amount)` per eligible loan.

    When `available` is given, the plan never withholds more than that in
    total; loans later in repayment order absorb the shortfall.
    """
    plan = LoanPlan()
    budget = available
    for loan in deductible_loans(loans):
        amount = min(loan.monthly_deduction, loan.remaining_amount)
        if budget is not None:
            amount = min(amount, budget)
            budget -= amount
        if amount <= 0:
            continue
        plan.deductions.append(LoanDeduction(loan_id=loan.loan_id, amount=amount))
    return plan


def apply_loan_deduction(loan: Loan, amount: Decimal) -> Decimal:
    """Reduce the loan balance, returning the amount actually applied.

    The balance floors at zero and the loan is completed exactly when it
    reaches zero.
    """
    if amount < 0:
        raise ComputationError(
            "Loan deduction must not be negative",
            {"loan_id": str(loan.loan_id), "amount": str(amount)},
        )
    remaining = Decimal(loan.remaining_amount)
    new_remaining = max(ZERO, remaining - amount)
    loan.remaining_amount = new_remaining
    if new_remaining == 0:
        loan.status = LoanStatus.COMPLETED
    return remaining - new_remaining
