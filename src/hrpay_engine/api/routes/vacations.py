"""Vacation request and approval API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from hrpay_engine.api.dependencies import ActorId, DbSession, Emitter
from hrpay_engine.api.schemas import (
    ErrorResponse,
    ReturnAlertsRequest,
    ReturnAlertsResponse,
    VacationActionRequest,
    VacationCancelRequest,
    VacationCompleteRequest,
    VacationRequestResponse,
    VacationSubmitRequest,
)
from hrpay_engine.services.approval_service import (
    ApprovalWorkflowService,
    VacationSubmission,
)
from hrpay_engine.services.return_alerts import VacationReturnAlertService

router = APIRouter(prefix="/vacations", tags=["vacations"])


@router.post(
    "",
    response_model=VacationRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def submit_vacation(
    db: DbSession,
    emitter: Emitter,
    payload: VacationSubmitRequest,
) -> VacationRequestResponse:
    """Submit a vacation request with its ordered approver chain."""
    service = ApprovalWorkflowService(db, emitter=emitter)
    request = await service.submit_vacation(
        VacationSubmission(**payload.model_dump())
    )
    return VacationRequestResponse.model_validate(request)


@router.get("", response_model=list[VacationRequestResponse])
async def list_vacations(
    db: DbSession,
    employee_id: Annotated[UUID | None, Query()] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[VacationRequestResponse]:
    """List vacation requests, optionally filtered."""
    requests = await ApprovalWorkflowService(db).list_requests(employee_id, status_filter)
    return [VacationRequestResponse.model_validate(r) for r in requests]


@router.get(
    "/{request_id}",
    response_model=VacationRequestResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_vacation(
    db: DbSession,
    request_id: UUID = Path(...),
) -> VacationRequestResponse:
    request = await ApprovalWorkflowService(db).get_request(request_id)
    return VacationRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/actions",
    response_model=VacationRequestResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def act_on_vacation(
    db: DbSession,
    emitter: Emitter,
    actor_id: ActorId,
    payload: VacationActionRequest,
    request_id: UUID = Path(...),
) -> VacationRequestResponse:
    """Approve, reject or delegate the current approval step."""
    service = ApprovalWorkflowService(db, emitter=emitter)
    request = await service.act_on_approval(
        request_id,
        actor_id,
        payload.action,
        delegate_to_id=payload.delegate_to_id,
        notes=payload.notes,
        expected_version=payload.expected_version,
    )
    return VacationRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/cancel",
    response_model=VacationRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def cancel_vacation(
    db: DbSession,
    emitter: Emitter,
    actor_id: ActorId,
    payload: VacationCancelRequest,
    request_id: UUID = Path(...),
) -> VacationRequestResponse:
    service = ApprovalWorkflowService(db, emitter=emitter)
    request = await service.cancel_vacation(
        request_id, actor_id, notes=payload.notes, expected_version=payload.expected_version
    )
    return VacationRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/complete",
    response_model=VacationRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def complete_vacation(
    db: DbSession,
    emitter: Emitter,
    actor_id: ActorId,
    payload: VacationCompleteRequest,
    request_id: UUID = Path(...),
) -> VacationRequestResponse:
    """Mark a vacation completed; restores active status."""
    service = ApprovalWorkflowService(db, emitter=emitter)
    request = await service.complete_vacation(
        request_id,
        actor_id,
        resume_loans=payload.resume_loans,
        notes=payload.notes,
        expected_version=payload.expected_version,
    )
    return VacationRequestResponse.model_validate(request)


@router.post("/return-alerts", response_model=ReturnAlertsResponse)
async def process_return_alerts(
    db: DbSession,
    emitter: Emitter,
    payload: ReturnAlertsRequest,
) -> ReturnAlertsResponse:
    """Alert on on-leave employees whose vacation ends soon or is overdue."""
    service = VacationReturnAlertService(db, emitter=emitter)
    processed = await service.process(payload.today)
    return ReturnAlertsResponse(processed=processed)
