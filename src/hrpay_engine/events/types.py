"""Domain events published by the payroll and leave services.

Events are immutable and self-describing; handlers route on
`event_type` (the class name) or `category`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    PAYROLL = "payroll"
    LEAVE = "leave"


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events.

    Subclasses set `category` as a class attribute.
    """

    category: ClassVar[EventCategory]

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to a JSON-compatible dictionary."""
        return _serialize(asdict(self))


def _serialize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_serialize(v) for v in obj]
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


# =============================================================================
# Payroll Events
# =============================================================================


@dataclass(frozen=True)
class PayrollGenerated(DomainEvent):
    """A payroll run and its entries were committed."""

    payroll_run_id: UUID
    period: str
    start_date: date
    end_date: date
    employee_count: int
    net_amount: Decimal

    category: ClassVar[EventCategory] = EventCategory.PAYROLL


@dataclass(frozen=True)
class VacationDeductionApplied(DomainEvent):
    """An employee's pay was reduced for vacation days in a run."""

    payroll_run_id: UUID
    employee_id: UUID
    period: str
    end_date: date
    vacation_days: int

    category: ClassVar[EventCategory] = EventCategory.PAYROLL


@dataclass(frozen=True)
class LoanDeductionApplied(DomainEvent):
    """Loan repayment was withheld from an employee's pay in a run."""

    payroll_run_id: UUID
    employee_id: UUID
    period: str
    end_date: date
    amount: Decimal

    category: ClassVar[EventCategory] = EventCategory.PAYROLL


# =============================================================================
# Leave Events
# =============================================================================


@dataclass(frozen=True)
class VacationStatusChanged(DomainEvent):
    """A vacation request moved to a new status."""

    vacation_request_id: UUID
    employee_id: UUID
    from_status: str
    to_status: str
    actor_id: UUID | None

    category: ClassVar[EventCategory] = EventCategory.LEAVE


@dataclass(frozen=True)
class VacationReturnDue(DomainEvent):
    """An on-leave employee's approved vacation ends soon or ended recently.

    `days_until_return` is negative when the return is overdue.
    """

    vacation_request_id: UUID
    employee_id: UUID
    employee_name: str
    end_date: date
    days_until_return: int

    category: ClassVar[EventCategory] = EventCategory.LEAVE
