"""Notification model (best-effort side channel)."""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hrpay_engine.models.base import Base, TimestampMixin, UpdatedAtMixin


class Notification(Base, TimestampMixin, UpdatedAtMixin):
    """A message for an employee's inbox."""

    __tablename__ = "notification"

    notification_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String, nullable=False, default="unread")
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    days_until_expiry: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Entity the notification is about (payroll run, vacation request)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
