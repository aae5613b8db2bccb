"""Department and employee models."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrpay_engine.models.base import Base, Money, TimestampMixin

if TYPE_CHECKING:
    from hrpay_engine.models.compensation import EmployeeEvent, Loan
    from hrpay_engine.models.leave import VacationRequest


class EmployeeStatus:
    """Employee status values."""

    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    RESIGNED = "resigned"


class Department(Base, TimestampMixin):
    """Organizational department (coverage bucket)."""

    __tablename__ = "department"

    department_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    employees: Mapped[list[Employee]] = relationship(back_populates="department")


class Employee(Base, TimestampMixin):
    """Employee record with monthly salary."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    department_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("department.department_id", ondelete="SET NULL"),
        nullable=True,
    )
    salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    standard_working_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=26
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=EmployeeStatus.ACTIVE
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'on_leave', 'resigned')",
            name="employee_status_check",
        ),
        CheckConstraint("salary >= 0", name="employee_salary_nonnegative"),
    )

    # Relationships
    department: Mapped[Department | None] = relationship(back_populates="employees")
    loans: Mapped[list[Loan]] = relationship(back_populates="employee")
    events: Mapped[list[EmployeeEvent]] = relationship(back_populates="employee")
    vacation_requests: Mapped[list[VacationRequest]] = relationship(
        back_populates="employee"
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"
