"""Loans, loan payments and payroll-affecting employee events."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrpay_engine.models.base import Base, Money, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from hrpay_engine.models.employee import Employee


class LoanStatus:
    """Loan status values."""

    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class Loan(Base, TimestampMixin, UpdatedAtMixin):
    """Employee loan repaid through monthly payroll deductions."""

    __tablename__ = "loan"

    loan_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    monthly_deduction: Mapped[Decimal] = mapped_column(Money, nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=LoanStatus.ACTIVE)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Set while the loan is paused by an approved vacation
    paused_by_vacation_id: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "remaining_amount >= 0 AND remaining_amount <= amount",
            name="loan_remaining_bounds",
        ),
        CheckConstraint("monthly_deduction > 0", name="loan_monthly_positive"),
        CheckConstraint(
            "status IN ('pending', 'active', 'paused', 'completed')",
            name="loan_status_check",
        ),
        Index("ix_loan_employee_status", "employee_id", "status"),
    )

    employee: Mapped[Employee] = relationship(back_populates="loans")
    payments: Mapped[list[LoanPayment]] = relationship(
        back_populates="loan",
        cascade="all, delete-orphan",
    )


class LoanPayment(Base, TimestampMixin):
    """Ledger row for a deduction applied to a loan by a payroll run."""

    __tablename__ = "loan_payment"

    loan_payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    loan_id: Mapped[UUID] = mapped_column(
        ForeignKey("loan.loan_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Not a foreign key: the ledger outlives a deleted run
    payroll_run_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    applied_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="loan_payment_positive"),
    )

    loan: Mapped[Loan] = relationship(back_populates="payments")


class EventType:
    """Employee event types and their payroll category."""

    BONUS = "bonus"
    COMMISSION = "commission"
    ALLOWANCE = "allowance"
    OVERTIME = "overtime"
    DEDUCTION = "deduction"
    PENALTY = "penalty"
    VACATION = "vacation"
    OTHER = "other"

    ADDITIONS = frozenset({BONUS, COMMISSION, ALLOWANCE, OVERTIME})
    SUBTRACTIONS = frozenset({DEDUCTION, PENALTY})


class RecurrenceType:
    """Event recurrence values."""

    NONE = "none"
    MONTHLY = "monthly"


class EmployeeEvent(Base, TimestampMixin):
    """A dated event that may add to or subtract from an employee's pay.

    Recurring events are stored once and expanded on read.
    """

    __tablename__ = "employee_event"

    event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    affects_payroll: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    recurrence_type: Mapped[str] = mapped_column(
        String, nullable=False, default=RecurrenceType.NONE
    )
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "recurrence_type IN ('none', 'monthly')",
            name="employee_event_recurrence_check",
        ),
        Index("ix_employee_event_employee_date", "employee_id", "event_date"),
    )

    employee: Mapped[Employee] = relationship(back_populates="events")
