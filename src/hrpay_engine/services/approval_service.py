"""Vacation submission and multi-step approval workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import VacationStatusChanged
from hrpay_engine.exceptions import (
    AuthorizationError,
    ComputationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from hrpay_engine.models import (
    Employee,
    EmployeeStatus,
    LeaveType,
    Loan,
    LoanStatus,
    VacationRequest,
)
from hrpay_engine.services.accrual_service import LeaveAccrualService
from hrpay_engine.services.state_machine import (
    ApprovalStepMachine,
    InvalidTransitionError,
    StepStatus,
    VacationStateMachine,
    VacationStatus,
)

logger = logging.getLogger(__name__)


class ApprovalAction:
    """Actions an approver can take on the current step."""

    APPROVE = "approve"
    REJECT = "reject"
    DELEGATE = "delegate"

    ALL = (APPROVE, REJECT, DELEGATE)


@dataclass
class VacationSubmission:
    """Input for a new vacation request."""

    employee_id: UUID
    start_date: date
    end_date: date
    approver_ids: list[UUID] = field(default_factory=list)
    leave_type: str = LeaveType.ANNUAL
    reason: str | None = None
    pause_loans: bool = False
    set_employee_on_leave: bool = True
    applied_policy_id: UUID | None = None
    requested_by: UUID | None = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def audit_entry(
    action: str,
    actor_id: UUID | None,
    notes: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build an immutable audit log record."""
    return {
        "action": action,
        "actor_id": str(actor_id) if actor_id else None,
        "notes": notes,
        "timestamp": _now(),
        "metadata": metadata or {},
    }


class ApprovalWorkflowService:
    """Drives vacation requests through their approval chain.

    Every action appends to the request's audit log; entries are never
    modified. Final approval has explicit side effects on other entities:
    leave balance consumption, optional loan pause and optional on_leave
    status. Completion reverses the status change and, optionally,
    resumes the loans this request paused.
    """

    def __init__(
        self,
        session: AsyncSession,
        emitter: AsyncEventEmitter | None = None,
    ):
        self.session = session
        self.emitter = emitter or AsyncEventEmitter()
        self.accruals = LeaveAccrualService(session)

    async def get_request(self, request_id: UUID) -> VacationRequest:
        request = await self.session.get(VacationRequest, request_id)
        if request is None:
            raise NotFoundError("VacationRequest", request_id)
        return request

    async def list_requests(
        self,
        employee_id: UUID | None = None,
        status: str | None = None,
    ) -> list[VacationRequest]:
        query = select(VacationRequest).order_by(VacationRequest.start_date)
        if employee_id is not None:
            query = query.where(VacationRequest.employee_id == employee_id)
        if status is not None:
            query = query.where(VacationRequest.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def submit_vacation(self, submission: VacationSubmission) -> VacationRequest:
        """Create a pending request with one pending step per approver."""
        if submission.end_date < submission.start_date:
            raise ValidationError(
                "End date must not precede start date",
                {
                    "start_date": submission.start_date.isoformat(),
                    "end_date": submission.end_date.isoformat(),
                },
            )
        if not submission.approver_ids:
            raise ValidationError("Approval chain must contain at least one approver")

        if await self.session.get(Employee, submission.employee_id) is None:
            raise NotFoundError("Employee", submission.employee_id)

        overlapping = await self._find_overlapping(
            submission.employee_id, submission.start_date, submission.end_date
        )
        if overlapping is not None:
            raise ConflictError(
                "Employee already has a vacation request for overlapping dates",
                {
                    "vacation_request_id": str(overlapping.vacation_request_id),
                    "status": overlapping.status,
                    "start_date": overlapping.start_date.isoformat(),
                    "end_date": overlapping.end_date.isoformat(),
                },
            )

        request = VacationRequest(
            employee_id=submission.employee_id,
            leave_type=submission.leave_type,
            start_date=submission.start_date,
            end_date=submission.end_date,
            reason=submission.reason,
            status=VacationStatus.PENDING.value,
            applied_policy_id=submission.applied_policy_id,
            pause_loans=submission.pause_loans,
            set_employee_on_leave=submission.set_employee_on_leave,
            current_approval_step=0,
            approval_chain=[
                {
                    "approver_id": str(approver_id),
                    "status": StepStatus.PENDING.value,
                    "delegated_to_id": None,
                    "acted_at": None,
                    "notes": None,
                }
                for approver_id in submission.approver_ids
            ],
            audit_log=[
                audit_entry(
                    "created",
                    submission.requested_by or submission.employee_id,
                    submission.reason,
                    {"approver_count": len(submission.approver_ids)},
                )
            ],
        )
        self.session.add(request)
        await self._commit()
        logger.info(
            "Vacation request %s submitted for employee %s (%s..%s)",
            request.vacation_request_id,
            request.employee_id,
            request.start_date,
            request.end_date,
        )
        return request

    async def act_on_approval(
        self,
        request_id: UUID,
        actor_id: UUID,
        action: str,
        delegate_to_id: UUID | None = None,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> VacationRequest:
        """Apply an approver's action to the current step.

        Raises AuthorizationError when the actor is neither the step's
        approver nor its delegate; nothing changes in that case.
        """
        if action not in ApprovalAction.ALL:
            raise ValidationError(f"Unknown approval action '{action}'", {"action": action})

        request = await self.get_request(request_id)
        self._check_version(request, expected_version)

        if request.status != VacationStatus.PENDING:
            raise InvalidTransitionError(
                request.status, request.status, "request is not awaiting approval"
            )

        index = request.current_approval_step
        step = request.current_step
        if step is None:
            raise ComputationError(
                "Pending request has no current approval step",
                {"vacation_request_id": str(request_id), "step": index},
            )

        actor = str(actor_id)
        if actor not in (step["approver_id"], step.get("delegated_to_id")):
            raise AuthorizationError(
                "Actor is not the approver or delegate for the current step",
                {"vacation_request_id": str(request_id), "step": index, "actor_id": actor},
            )

        from_status = request.status
        chain = [dict(s) for s in request.approval_chain]
        current = chain[index]

        if action == ApprovalAction.DELEGATE:
            if delegate_to_id is None:
                raise ValidationError("delegate_to_id is required to delegate")
            if str(delegate_to_id) == actor:
                raise ValidationError("Cannot delegate a step to yourself")
            current["delegated_to_id"] = str(delegate_to_id)
            current["notes"] = notes
            entry = audit_entry(
                "delegated", actor_id, notes, {"step": index, "delegated_to_id": str(delegate_to_id)}
            )

        elif action == ApprovalAction.REJECT:
            ApprovalStepMachine.validate_transition(current["status"], StepStatus.REJECTED)
            VacationStateMachine.validate_transition(request.status, VacationStatus.REJECTED)
            current.update(status=StepStatus.REJECTED.value, acted_at=_now(), notes=notes)
            request.status = VacationStatus.REJECTED.value
            entry = audit_entry("rejected", actor_id, notes, {"step": index})

        else:
            ApprovalStepMachine.validate_transition(current["status"], StepStatus.APPROVED)
            current.update(status=StepStatus.APPROVED.value, acted_at=_now(), notes=notes)
            final = index == len(chain) - 1
            if final:
                VacationStateMachine.validate_transition(request.status, VacationStatus.APPROVED)
                request.status = VacationStatus.APPROVED.value
            else:
                request.current_approval_step = index + 1
            entry = audit_entry("approved", actor_id, notes, {"step": index, "final": final})

        request.approval_chain = chain
        request.audit_log = [*request.audit_log, entry]

        try:
            if request.status == VacationStatus.APPROVED:
                await self.session.flush()
                await self._on_approved(request)
            await self._commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError("Vacation request was modified by another action") from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Vacation request %s: %s by %s (status %s)",
            request_id,
            action,
            actor,
            request.status,
        )
        if request.status != from_status:
            await self._publish(request, from_status, actor_id)
        return request

    async def cancel_vacation(
        self,
        request_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> VacationRequest:
        """Cancel a pending or approved request, undoing approval side effects."""
        request = await self.get_request(request_id)
        self._check_version(request, expected_version)
        from_status = request.status
        VacationStateMachine.validate_transition(from_status, VacationStatus.CANCELLED)

        request.status = VacationStatus.CANCELLED.value
        request.audit_log = [*request.audit_log, audit_entry("cancelled", actor_id, notes)]

        try:
            if from_status == VacationStatus.APPROVED:
                await self._restore_employee(request)
                await self._resume_loans(request)
                await self.session.flush()
                await self._refresh_balances(request)
            await self._commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError("Vacation request was modified by another action") from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Vacation request %s cancelled by %s", request_id, actor_id)
        await self._publish(request, from_status, actor_id)
        return request

    async def complete_vacation(
        self,
        request_id: UUID,
        actor_id: UUID,
        resume_loans: bool = True,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> VacationRequest:
        """Mark an approved request completed after the employee returns."""
        request = await self.get_request(request_id)
        self._check_version(request, expected_version)
        from_status = request.status
        VacationStateMachine.validate_transition(from_status, VacationStatus.COMPLETED)

        request.status = VacationStatus.COMPLETED.value
        request.audit_log = [
            *request.audit_log,
            audit_entry("completed", actor_id, notes, {"resume_loans": resume_loans}),
        ]
        try:
            await self._restore_employee(request)
            if resume_loans:
                await self._resume_loans(request)
            await self._commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError("Vacation request was modified by another action") from exc
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Vacation request %s completed by %s", request_id, actor_id)
        await self._publish(request, from_status, actor_id)
        return request

    # -------------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------------

    async def _on_approved(self, request: VacationRequest) -> None:
        """Final-approval side effects, in the request's transaction."""
        await self.accruals.consume(request)

        if request.pause_loans:
            result = await self.session.execute(
                select(Loan).where(
                    Loan.employee_id == request.employee_id,
                    Loan.status == LoanStatus.ACTIVE,
                )
            )
            for loan in result.scalars().all():
                loan.status = LoanStatus.PAUSED
                loan.paused_by_vacation_id = request.vacation_request_id
                logger.debug("Paused loan %s for vacation %s", loan.loan_id, request.vacation_request_id)

        if request.set_employee_on_leave:
            employee = await self.session.get(Employee, request.employee_id)
            if employee is not None and employee.status == EmployeeStatus.ACTIVE:
                employee.status = EmployeeStatus.ON_LEAVE

    async def _restore_employee(self, request: VacationRequest) -> None:
        employee = await self.session.get(Employee, request.employee_id)
        if employee is not None and employee.status == EmployeeStatus.ON_LEAVE:
            employee.status = EmployeeStatus.ACTIVE

    async def _resume_loans(self, request: VacationRequest) -> None:
        result = await self.session.execute(
            select(Loan).where(
                Loan.paused_by_vacation_id == request.vacation_request_id,
                Loan.status == LoanStatus.PAUSED,
            )
        )
        for loan in result.scalars().all():
            loan.status = LoanStatus.ACTIVE if loan.remaining_amount > 0 else LoanStatus.COMPLETED
            loan.paused_by_vacation_id = None

    async def _refresh_balances(self, request: VacationRequest) -> None:
        """Recompute stored balances after leave is released."""
        if not await self.accruals.has_policy(request.employee_id, request.leave_type):
            return
        for year in range(request.start_date.year, request.end_date.year + 1):
            await self.accruals.get_leave_balance(
                request.employee_id,
                request.leave_type,
                year,
                as_of=min(request.end_date, date(year, 12, 31)),
            )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_version(request: VacationRequest, expected_version: int | None) -> None:
        if expected_version is not None and request.version != expected_version:
            raise ConflictError(
                "Vacation request was modified by another action",
                {
                    "vacation_request_id": str(request.vacation_request_id),
                    "expected_version": expected_version,
                    "current_version": request.version,
                },
            )

    async def _find_overlapping(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> VacationRequest | None:
        result = await self.session.execute(
            select(VacationRequest)
            .where(
                VacationRequest.employee_id == employee_id,
                VacationRequest.status.in_([s.value for s in VacationStateMachine.BLOCKING]),
                VacationRequest.start_date <= end_date,
                VacationRequest.end_date >= start_date,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError("Vacation request was modified by another action") from exc

    async def _publish(
        self, request: VacationRequest, from_status: str, actor_id: UUID | None
    ) -> None:
        await self.emitter.emit(
            VacationStatusChanged(
                vacation_request_id=request.vacation_request_id,
                employee_id=request.employee_id,
                from_status=from_status,
                to_status=request.status,
                actor_id=actor_id,
            )
        )
