"""Asset assignment model."""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from hrpay_engine.models.base import Base, TimestampMixin


class AssetAssignment(Base, TimestampMixin):
    """Assignment of an asset or vehicle to an employee from a date."""

    __tablename__ = "asset_assignment"

    asset_assignment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    # Asset catalog lives outside this service
    asset_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
