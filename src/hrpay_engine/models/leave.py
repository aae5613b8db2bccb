"""Vacation requests, leave accrual policies and balances."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrpay_engine.models.base import (
    Base,
    DayCount,
    JSONType,
    TimestampMixin,
    UpdatedAtMixin,
)

if TYPE_CHECKING:
    from hrpay_engine.models.employee import Employee


class LeaveType:
    """Leave type values."""

    ANNUAL = "annual"
    SICK = "sick"
    EMERGENCY = "emergency"
    UNPAID = "unpaid"


class VacationRequest(Base, TimestampMixin, UpdatedAtMixin):
    """A leave request moving through an ordered approval chain.

    The chain is an embedded list of step dicts
    ({approver_id, status, delegated_to_id, acted_at, notes}) and
    `current_approval_step` indexes into it. `audit_log` is append-only.
    `version` is bumped on every update; stale writers get a conflict.
    """

    __tablename__ = "vacation_request"

    vacation_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False, default=LeaveType.ANNUAL)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    applied_policy_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("leave_accrual_policy.policy_id", ondelete="SET NULL"),
        nullable=True,
    )
    approval_chain: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    current_approval_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    audit_log: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    pause_loans: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    set_employee_on_leave: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="vacation_request_dates_check"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'completed', 'cancelled')",
            name="vacation_request_status_check",
        ),
        Index("ix_vacation_request_employee_dates", "employee_id", "start_date", "end_date"),
    )

    employee: Mapped[Employee] = relationship(back_populates="vacation_requests")

    @property
    def days(self) -> int:
        """Inclusive calendar days covered by the request."""
        return (self.end_date - self.start_date).days + 1

    @property
    def current_step(self) -> dict[str, Any] | None:
        """The step awaiting action, if any."""
        if 0 <= self.current_approval_step < len(self.approval_chain):
            return self.approval_chain[self.current_approval_step]
        return None


class LeaveAccrualPolicy(Base, TimestampMixin):
    """Rule set governing how a leave-type balance grows."""

    __tablename__ = "leave_accrual_policy"

    policy_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    accrual_rate_per_month: Mapped[Decimal] = mapped_column(DayCount, nullable=False)
    max_balance_days: Mapped[Decimal | None] = mapped_column(DayCount, nullable=True)
    # None means unbounded carryover
    carryover_limit_days: Mapped[Decimal | None] = mapped_column(DayCount, nullable=True)
    allow_negative_balance: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    expires_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("accrual_rate_per_month >= 0", name="accrual_rate_nonnegative"),
    )


class EmployeeLeavePolicy(Base, TimestampMixin):
    """Assignment of an accrual policy to an employee for a window."""

    __tablename__ = "employee_leave_policy"

    employee_leave_policy_id: Mapped[UUID] = mapped_column(
        primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    policy_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_accrual_policy.policy_id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    custom_accrual_rate_per_month: Mapped[Decimal | None] = mapped_column(
        DayCount, nullable=True
    )

    policy: Mapped[LeaveAccrualPolicy] = relationship()


class LeaveBalance(Base, UpdatedAtMixin):
    """Materialized balance for (employee, leave type, year)."""

    __tablename__ = "leave_balance"

    leave_balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    policy_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("leave_accrual_policy.policy_id", ondelete="SET NULL"),
        nullable=True,
    )
    accrued_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))
    used_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))
    carryover_days: Mapped[Decimal] = mapped_column(
        DayCount, nullable=False, default=Decimal("0")
    )
    balance_days: Mapped[Decimal] = mapped_column(DayCount, nullable=False, default=Decimal("0"))
    last_accrued_at: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "leave_type", "year", name="leave_balance_employee_type_year"
        ),
    )
