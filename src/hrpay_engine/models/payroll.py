"""Payroll run and entry models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrpay_engine.models.base import Base, JSONType, Money, TimestampMixin


class PayrollRun(Base, TimestampMixin):
    """One payroll computation over a fixed, inclusive date range."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    period: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Money, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    scenario_toggles: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="payroll_run_dates_check"),
        CheckConstraint(
            "net_amount >= 0 AND gross_amount >= 0",
            name="payroll_run_nonnegative",
        ),
        UniqueConstraint("start_date", "end_date", name="payroll_run_range_unique"),
    )

    entries: Mapped[list[PayrollEntry]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PayrollEntry.employee_id",
    )


# Interval overlap cannot be expressed portably; PostgreSQL enforces it with
# an exclusion constraint so concurrent generators cannot both commit.
event.listen(
    PayrollRun.__table__,
    "after_create",
    DDL(
        "ALTER TABLE payroll_run ADD CONSTRAINT payroll_run_no_overlap "
        "EXCLUDE USING gist (daterange(start_date, end_date, '[]') WITH &&)"
    ).execute_if(dialect="postgresql"),
)


class PayrollEntry(Base, TimestampMixin):
    """One employee's pay for a payroll run."""

    __tablename__ = "payroll_entry"

    payroll_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    base_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    bonus_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Money, nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    vacation_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tax_deduction: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    social_security_deduction: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    health_insurance_deduction: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    loan_deduction: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    other_deductions: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    net_pay: Mapped[Decimal] = mapped_column(Money, nullable=False)
    # None means the allowance category was disabled for the run
    allowances: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    adjustment_reason: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_run_id", "employee_id", name="payroll_entry_run_employee_unique"
        ),
        CheckConstraint(
            "actual_working_days >= 0 AND actual_working_days <= working_days",
            name="payroll_entry_days_check",
        ),
        CheckConstraint("net_pay >= 0", name="payroll_entry_net_nonnegative"),
    )

    payroll_run: Mapped[PayrollRun] = relationship(back_populates="entries")

    @property
    def total_deductions(self) -> Decimal:
        """Sum of every deduction category on the entry."""
        return (
            self.tax_deduction
            + self.social_security_deduction
            + self.health_insurance_deduction
            + self.loan_deduction
            + self.other_deductions
        )
