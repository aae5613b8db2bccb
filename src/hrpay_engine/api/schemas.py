"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DateRangeRequest(BaseModel):
    """Request body carrying an inclusive start_date..end_date range."""

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class ErrorResponse(BaseModel):
    """Error body returned for every engine error."""

    detail: str
    code: str
    context: dict[str, Any] | None = None


# ============================================================================
# Payroll schemas
# ============================================================================


class ScenarioTogglesSchema(BaseModel):
    """Per-run category switches; omitted switches stay enabled."""

    model_config = ConfigDict(extra="forbid")

    allowances: bool | None = None
    bonuses: bool | None = None
    overtime: bool | None = None
    deductions: bool | None = None
    loans: bool | None = None
    vacations: bool | None = None


class PayrollGenerateRequest(DateRangeRequest):
    """Schema for generating a payroll run."""

    period: str = Field(min_length=1, max_length=100)
    scenario_toggles: ScenarioTogglesSchema | None = None


class PayrollEntryResponse(BaseModel):
    """Schema for one employee's payroll entry."""

    model_config = ConfigDict(from_attributes=True)

    payroll_entry_id: UUID
    employee_id: UUID
    base_salary: Decimal
    bonus_amount: Decimal
    gross_pay: Decimal
    working_days: int
    actual_working_days: int
    vacation_days: int
    tax_deduction: Decimal
    social_security_deduction: Decimal
    health_insurance_deduction: Decimal
    loan_deduction: Decimal
    other_deductions: Decimal
    net_pay: Decimal
    allowances: dict[str, Decimal] | None = None
    adjustment_reason: str | None = None


class PayrollRunResponse(BaseModel):
    """Schema for a payroll run summary."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    period: str
    start_date: date
    end_date: date
    gross_amount: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    status: str
    scenario_toggles: dict[str, bool] | None = None
    created_at: datetime | None = None


class PayrollRunDetailResponse(PayrollRunResponse):
    """Payroll run with entries and the allowance keys they use."""

    entries: list[PayrollEntryResponse] = Field(default_factory=list)
    allowance_keys: list[str] = Field(default_factory=list)

    @classmethod
    def from_run(cls, run: Any) -> "PayrollRunDetailResponse":
        detail = cls.model_validate(run)
        keys: set[str] = set()
        for entry in detail.entries:
            if entry.allowances:
                keys.update(entry.allowances)
        detail.allowance_keys = sorted(keys)
        return detail


class PayrollRunListResponse(BaseModel):
    items: list[PayrollRunResponse]
    total: int


# ============================================================================
# Vacation schemas
# ============================================================================


class ApprovalStepResponse(BaseModel):
    approver_id: UUID
    status: str
    delegated_to_id: UUID | None = None
    acted_at: datetime | None = None
    notes: str | None = None


class AuditEntryResponse(BaseModel):
    action: str
    actor_id: UUID | None = None
    notes: str | None = None
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class VacationSubmitRequest(DateRangeRequest):
    """Schema for submitting a vacation request."""

    employee_id: UUID
    approver_ids: list[UUID] = Field(min_length=1)
    leave_type: Literal["annual", "sick", "emergency", "unpaid"] = "annual"
    reason: str | None = None
    pause_loans: bool = False
    set_employee_on_leave: bool = True
    applied_policy_id: UUID | None = None


class VacationActionRequest(BaseModel):
    """Schema for an approver's action on the current step."""

    action: Literal["approve", "reject", "delegate"]
    delegate_to_id: UUID | None = None
    notes: str | None = None
    expected_version: int | None = None

    @model_validator(mode="after")
    def _delegate_target(self):
        if self.action == "delegate" and self.delegate_to_id is None:
            raise ValueError("delegate_to_id is required to delegate")
        return self


class VacationCancelRequest(BaseModel):
    notes: str | None = None
    expected_version: int | None = None


class VacationCompleteRequest(BaseModel):
    resume_loans: bool = True
    notes: str | None = None
    expected_version: int | None = None


class VacationRequestResponse(BaseModel):
    """Schema for a vacation request with its chain and audit log."""

    model_config = ConfigDict(from_attributes=True)

    vacation_request_id: UUID
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    days: int
    reason: str | None = None
    status: str
    applied_policy_id: UUID | None = None
    current_approval_step: int
    approval_chain: list[ApprovalStepResponse]
    audit_log: list[AuditEntryResponse]
    pause_loans: bool
    set_employee_on_leave: bool
    version: int


class ReturnAlertsRequest(BaseModel):
    today: date | None = None


class ReturnAlertsResponse(BaseModel):
    processed: int


# ============================================================================
# Leave balance, coverage and assignment schemas
# ============================================================================


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    leave_type: str
    year: int
    policy_id: UUID | None = None
    accrued_days: Decimal
    used_days: Decimal
    carryover_days: Decimal
    balance_days: Decimal
    last_accrued_at: date | None = None


class CoverageDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    departments: dict[str, int]
    total: int
    flagged_departments: list[str]


class CoverageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_date: date
    end_date: date
    threshold: int
    days: list[CoverageDayResponse]
    flagged_dates: list[date]


class AssetAssignmentCreate(BaseModel):
    asset_id: UUID
    employee_id: UUID
    assigned_date: date
    notes: str | None = None


class AssetAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset_assignment_id: UUID
    asset_id: UUID
    employee_id: UUID
    assigned_date: date
    status: str
    notes: str | None = None
