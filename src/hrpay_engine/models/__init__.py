"""ORM models."""

from hrpay_engine.models.assets import AssetAssignment
from hrpay_engine.models.base import Base, TimestampMixin
from hrpay_engine.models.compensation import (
    EmployeeEvent,
    EventType,
    Loan,
    LoanPayment,
    LoanStatus,
    RecurrenceType,
)
from hrpay_engine.models.employee import Department, Employee, EmployeeStatus
from hrpay_engine.models.leave import (
    EmployeeLeavePolicy,
    LeaveAccrualPolicy,
    LeaveBalance,
    LeaveType,
    VacationRequest,
)
from hrpay_engine.models.notification import Notification
from hrpay_engine.models.payroll import PayrollEntry, PayrollRun

__all__ = [
    "AssetAssignment",
    "Base",
    "Department",
    "Employee",
    "EmployeeEvent",
    "EmployeeLeavePolicy",
    "EmployeeStatus",
    "EventType",
    "LeaveAccrualPolicy",
    "LeaveBalance",
    "LeaveType",
    "Loan",
    "LoanPayment",
    "LoanStatus",
    "Notification",
    "PayrollEntry",
    "PayrollRun",
    "RecurrenceType",
    "TimestampMixin",
    "VacationRequest",
]
