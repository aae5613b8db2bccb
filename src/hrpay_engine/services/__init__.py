"""Domain services."""

from hrpay_engine.services.accrual_service import LeaveAccrualService
from hrpay_engine.services.approval_service import (
    ApprovalAction,
    ApprovalWorkflowService,
    VacationSubmission,
)
from hrpay_engine.services.asset_service import AssetAssignmentService
from hrpay_engine.services.coverage_service import CoverageReport, CoverageService
from hrpay_engine.services.payroll_service import PayrollService
from hrpay_engine.services.period_guard import PeriodGuard
from hrpay_engine.services.return_alerts import VacationReturnAlertService
from hrpay_engine.services.state_machine import (
    InvalidTransitionError,
    VacationStateMachine,
    VacationStatus,
)

__all__ = [
    "ApprovalAction",
    "ApprovalWorkflowService",
    "AssetAssignmentService",
    "CoverageReport",
    "CoverageService",
    "InvalidTransitionError",
    "LeaveAccrualService",
    "PayrollService",
    "PeriodGuard",
    "VacationReturnAlertService",
    "VacationStateMachine",
    "VacationStatus",
    "VacationSubmission",
]
