"""Domain events and the post-commit emitter."""

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.notifications import NotificationWriter, build_emitter
from hrpay_engine.events.types import (
    DomainEvent,
    EventCategory,
    LoanDeductionApplied,
    PayrollGenerated,
    VacationDeductionApplied,
    VacationReturnDue,
    VacationStatusChanged,
)

__all__ = [
    "AsyncEventEmitter",
    "DomainEvent",
    "EventCategory",
    "LoanDeductionApplied",
    "NotificationWriter",
    "PayrollGenerated",
    "VacationDeductionApplied",
    "VacationReturnDue",
    "VacationStatusChanged",
    "build_emitter",
]
