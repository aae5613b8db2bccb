"""Tests for the vacation approval workflow."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import VacationStatusChanged
from hrpay_engine.exceptions import (
    AuthorizationError,
    ComputationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from hrpay_engine.models import Employee, LeaveBalance
from hrpay_engine.services.accrual_service import LeaveAccrualService
from hrpay_engine.services.approval_service import (
    ApprovalWorkflowService,
    VacationSubmission,
)
from hrpay_engine.services.state_machine import InvalidTransitionError


@pytest.fixture
def approvers():
    return [uuid4(), uuid4()]


@pytest.fixture
def submit(session, approvers):
    """Submit a vacation through the workflow service."""

    async def create(employee, start=date(2024, 6, 10), end=date(2024, 6, 14), **overrides):
        data = {
            "employee_id": employee.employee_id,
            "start_date": start,
            "end_date": end,
            "approver_ids": approvers,
        }
        data.update(overrides)
        return await ApprovalWorkflowService(session).submit_vacation(VacationSubmission(**data))

    return create


class TestSubmission:
    """Test request creation."""

    async def test_submit_creates_pending_chain(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee, reason="Family trip")

        assert request.status == "pending"
        assert request.current_approval_step == 0
        assert [s["approver_id"] for s in request.approval_chain] == [str(a) for a in approvers]
        assert all(s["status"] == "pending" for s in request.approval_chain)
        assert request.audit_log[0]["action"] == "created"
        assert request.audit_log[0]["notes"] == "Family trip"
        assert request.days == 5
        assert request.version == 1

    async def test_empty_chain_rejected(self, session, make_employee, submit):
        employee = await make_employee()
        with pytest.raises(ValidationError):
            await submit(employee, approver_ids=[])

    async def test_inverted_dates_rejected(self, session, make_employee, submit):
        employee = await make_employee()
        with pytest.raises(ValidationError):
            await submit(employee, start=date(2024, 6, 14), end=date(2024, 6, 10))

    async def test_unknown_employee(self, session, approvers):
        service = ApprovalWorkflowService(session)
        with pytest.raises(NotFoundError):
            await service.submit_vacation(
                VacationSubmission(
                    employee_id=uuid4(),
                    start_date=date(2024, 6, 10),
                    end_date=date(2024, 6, 14),
                    approver_ids=approvers,
                )
            )

    async def test_overlapping_request_conflicts(self, session, make_employee, submit):
        employee = await make_employee()
        await submit(employee)

        with pytest.raises(ConflictError):
            await submit(employee, start=date(2024, 6, 14), end=date(2024, 6, 20))

    async def test_rejected_request_does_not_block(self, session, make_employee, make_vacation, submit):
        employee = await make_employee()
        await make_vacation(employee, date(2024, 6, 10), date(2024, 6, 14), status="rejected")

        request = await submit(employee)
        assert request.status == "pending"


class TestApprovalActions:
    """Test approver actions on the current step."""

    async def test_wrong_actor_changes_nothing(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        service = ApprovalWorkflowService(session)

        with pytest.raises(AuthorizationError):
            await service.act_on_approval(request.vacation_request_id, approvers[1], "approve")

        assert request.status == "pending"
        assert request.current_approval_step == 0
        assert request.approval_chain[0]["status"] == "pending"
        assert len(request.audit_log) == 1

    async def test_two_step_approval(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        service = ApprovalWorkflowService(session)

        request = await service.act_on_approval(request.vacation_request_id, approvers[0], "approve")
        assert request.status == "pending"
        assert request.current_approval_step == 1
        assert request.approval_chain[0]["status"] == "approved"
        assert request.approval_chain[0]["acted_at"] is not None

        request = await service.act_on_approval(request.vacation_request_id, approvers[1], "approve")
        assert request.status == "approved"
        assert [e["action"] for e in request.audit_log] == ["created", "approved", "approved"]
        assert request.audit_log[-1]["metadata"] == {"step": 1, "final": True}

    async def test_reject_short_circuits(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        service = ApprovalWorkflowService(session)

        request = await service.act_on_approval(
            request.vacation_request_id, approvers[0], "reject", notes="Peak season"
        )

        assert request.status == "rejected"
        assert request.approval_chain[0]["status"] == "rejected"
        assert request.approval_chain[1]["status"] == "pending"
        assert request.audit_log[-1]["notes"] == "Peak season"

        with pytest.raises(InvalidTransitionError):
            await service.act_on_approval(request.vacation_request_id, approvers[1], "approve")

    async def test_delegate_can_act(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee, approver_ids=[approvers[0]])
        service = ApprovalWorkflowService(session)
        delegate = uuid4()

        request = await service.act_on_approval(
            request.vacation_request_id, approvers[0], "delegate", delegate_to_id=delegate
        )
        assert request.status == "pending"
        assert request.approval_chain[0]["delegated_to_id"] == str(delegate)
        assert request.audit_log[-1]["action"] == "delegated"

        request = await service.act_on_approval(request.vacation_request_id, delegate, "approve")
        assert request.status == "approved"

    async def test_delegate_requires_target(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        service = ApprovalWorkflowService(session)

        with pytest.raises(ValidationError):
            await service.act_on_approval(request.vacation_request_id, approvers[0], "delegate")
        with pytest.raises(ValidationError):
            await service.act_on_approval(
                request.vacation_request_id, approvers[0], "delegate", delegate_to_id=approvers[0]
            )

    async def test_unknown_action(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        with pytest.raises(ValidationError):
            await ApprovalWorkflowService(session).act_on_approval(
                request.vacation_request_id, approvers[0], "escalate"
            )

    async def test_unknown_request(self, session, approvers):
        with pytest.raises(NotFoundError):
            await ApprovalWorkflowService(session).act_on_approval(uuid4(), approvers[0], "approve")

    async def test_stale_version_conflicts(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)
        service = ApprovalWorkflowService(session)

        await service.act_on_approval(
            request.vacation_request_id, approvers[0], "approve", expected_version=1
        )
        with pytest.raises(ConflictError):
            await service.act_on_approval(
                request.vacation_request_id, approvers[1], "approve", expected_version=1
            )

    async def test_status_change_published(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee, approver_ids=[approvers[0]])
        emitter = AsyncEventEmitter()
        received = []

        async def handler(event):
            received.append(event)

        emitter.on(VacationStatusChanged, handler)
        await ApprovalWorkflowService(session, emitter).act_on_approval(
            request.vacation_request_id, approvers[0], "approve"
        )

        assert len(received) == 1
        assert received[0].from_status == "pending"
        assert received[0].to_status == "approved"
        assert received[0].actor_id == approvers[0]


class TestApprovalSideEffects:
    """Test final-approval side effects."""

    async def test_final_approval_effects(
        self, session, make_employee, make_loan, make_policy, submit, approvers
    ):
        employee = await make_employee()
        loan = await make_loan(employee)
        await make_policy(employee)
        request = await submit(employee, approver_ids=[approvers[0]], pause_loans=True)

        await ApprovalWorkflowService(session).act_on_approval(
            request.vacation_request_id, approvers[0], "approve"
        )

        assert employee.status == "on_leave"
        assert loan.status == "paused"
        assert loan.paused_by_vacation_id == request.vacation_request_id

        balance = (
            await session.execute(
                select(LeaveBalance).where(LeaveBalance.employee_id == employee.employee_id)
            )
        ).scalar_one()
        # Feb..Jun credits of 2 days each, less the 5 approved days
        assert balance.accrued_days == Decimal("10")
        assert balance.used_days == Decimal("5")
        assert balance.balance_days == Decimal("5")

    async def test_status_left_alone_when_not_requested(
        self, session, make_employee, submit, approvers
    ):
        employee = await make_employee()
        request = await submit(
            employee, approver_ids=[approvers[0]], set_employee_on_leave=False
        )

        await ApprovalWorkflowService(session).act_on_approval(
            request.vacation_request_id, approvers[0], "approve"
        )

        assert employee.status == "active"

    async def test_insufficient_balance_rolls_back(
        self, session, make_employee, make_policy, submit, approvers
    ):
        employee = await make_employee()
        await make_policy(employee)
        request = await submit(
            employee,
            start=date(2024, 2, 5),
            end=date(2024, 2, 20),
            approver_ids=[approvers[0]],
        )
        request_id = request.vacation_request_id
        employee_id = employee.employee_id

        with pytest.raises(ComputationError):
            await ApprovalWorkflowService(session).act_on_approval(
                request_id, approvers[0], "approve"
            )

        await session.refresh(request)
        assert request.status == "pending"
        assert len(request.audit_log) == 1
        reloaded = await session.get(Employee, employee_id)
        await session.refresh(reloaded)
        assert reloaded.status == "active"

    async def test_later_approved_leave_does_not_block_earlier_request(
        self, session, make_employee, make_policy, submit, approvers
    ):
        employee = await make_employee()
        await make_policy(employee)
        service = ApprovalWorkflowService(session)

        november = await submit(
            employee,
            start=date(2024, 11, 4),
            end=date(2024, 11, 13),
            approver_ids=[approvers[0]],
            set_employee_on_leave=False,
        )
        november = await service.act_on_approval(
            november.vacation_request_id, approvers[0], "approve"
        )
        assert november.status == "approved"

        # Feb and Mar credits cover a 2 day leave in early March
        march = await submit(
            employee,
            start=date(2024, 3, 4),
            end=date(2024, 3, 5),
            approver_ids=[approvers[0]],
            set_employee_on_leave=False,
        )
        march = await service.act_on_approval(
            march.vacation_request_id, approvers[0], "approve"
        )
        assert march.status == "approved"

        balance = await LeaveAccrualService(session).get_leave_balance(
            employee.employee_id, "annual", 2024, as_of=date(2024, 3, 31)
        )
        assert balance.used_days == Decimal("2")
        assert balance.balance_days == Decimal("2")

    async def test_negative_allowed_by_policy(
        self, session, make_employee, make_policy, submit, approvers
    ):
        employee = await make_employee()
        await make_policy(employee, allow_negative_balance=True)
        request = await submit(
            employee,
            start=date(2024, 2, 5),
            end=date(2024, 2, 20),
            approver_ids=[approvers[0]],
        )

        request = await ApprovalWorkflowService(session).act_on_approval(
            request.vacation_request_id, approvers[0], "approve"
        )

        assert request.status == "approved"
        balance = (await session.execute(select(LeaveBalance))).scalar_one()
        assert balance.balance_days == Decimal("-14")


class TestCompletionAndCancellation:
    """Test the post-approval lifecycle."""

    async def _approved(self, session, employee, submit, approver):
        request = await submit(employee, approver_ids=[approver], pause_loans=True)
        return await ApprovalWorkflowService(session).act_on_approval(
            request.vacation_request_id, approver, "approve"
        )

    async def test_complete_restores_employee_and_loans(
        self, session, make_employee, make_loan, submit, approvers
    ):
        employee = await make_employee()
        loan = await make_loan(employee)
        request = await self._approved(session, employee, submit, approvers[0])

        request = await ApprovalWorkflowService(session).complete_vacation(
            request.vacation_request_id, approvers[0]
        )

        assert request.status == "completed"
        assert employee.status == "active"
        assert loan.status == "active"
        assert loan.paused_by_vacation_id is None

    async def test_complete_without_resuming_loans(
        self, session, make_employee, make_loan, submit, approvers
    ):
        employee = await make_employee()
        loan = await make_loan(employee)
        request = await self._approved(session, employee, submit, approvers[0])

        await ApprovalWorkflowService(session).complete_vacation(
            request.vacation_request_id, approvers[0], resume_loans=False
        )

        assert employee.status == "active"
        assert loan.status == "paused"

    async def test_cancel_approved_releases_balance(
        self, session, make_employee, make_policy, submit, approvers
    ):
        employee = await make_employee()
        await make_policy(employee)
        request = await self._approved(session, employee, submit, approvers[0])

        request = await ApprovalWorkflowService(session).cancel_vacation(
            request.vacation_request_id, approvers[0], notes="Plans changed"
        )

        assert request.status == "cancelled"
        assert employee.status == "active"
        balance = (await session.execute(select(LeaveBalance))).scalar_one()
        assert balance.used_days == Decimal("0")
        assert balance.balance_days == Decimal("10")

    async def test_cancel_pending(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)

        request = await ApprovalWorkflowService(session).cancel_vacation(
            request.vacation_request_id, employee.employee_id
        )
        assert request.status == "cancelled"

    async def test_complete_pending_is_invalid(self, session, make_employee, submit, approvers):
        employee = await make_employee()
        request = await submit(employee)

        with pytest.raises(InvalidTransitionError):
            await ApprovalWorkflowService(session).complete_vacation(
                request.vacation_request_id, approvers[0]
            )
