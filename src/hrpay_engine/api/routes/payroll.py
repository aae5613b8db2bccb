"""Payroll run API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Path, status

from hrpay_engine.api.dependencies import DbSession, Emitter
from hrpay_engine.api.schemas import (
    ErrorResponse,
    PayrollGenerateRequest,
    PayrollRunDetailResponse,
    PayrollRunListResponse,
    PayrollRunResponse,
)
from hrpay_engine.services.payroll_service import PayrollService

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/generate",
    response_model=PayrollRunDetailResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_payroll(
    db: DbSession,
    emitter: Emitter,
    payload: PayrollGenerateRequest,
) -> PayrollRunDetailResponse:
    """Generate a payroll run for every active employee.

    Disabled scenario categories are omitted from entries rather than
    reported as zero.
    """
    service = PayrollService(db, emitter=emitter)
    toggles = (
        payload.scenario_toggles.model_dump(exclude_none=True)
        if payload.scenario_toggles
        else None
    )
    run = await service.generate_payroll(
        payload.period, payload.start_date, payload.end_date, toggles
    )
    return PayrollRunDetailResponse.from_run(run)


@router.get("", response_model=PayrollRunListResponse)
async def list_payroll_runs(db: DbSession) -> PayrollRunListResponse:
    """List payroll runs, newest period first."""
    runs = await PayrollService(db).list_runs()
    items = [PayrollRunResponse.model_validate(r) for r in runs]
    return PayrollRunListResponse(items=items, total=len(items))


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    payroll_run_id: UUID = Path(...),
) -> PayrollRunDetailResponse:
    """Get a payroll run with its entries."""
    run = await PayrollService(db).get_run(payroll_run_id)
    return PayrollRunDetailResponse.from_run(run)


@router.post(
    "/{payroll_run_id}/recalculate",
    response_model=PayrollRunDetailResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def recalculate_payroll_run(
    db: DbSession,
    payroll_run_id: UUID = Path(...),
) -> PayrollRunDetailResponse:
    """Recompute entry net pay and run totals from stored amounts."""
    run = await PayrollService(db).recalculate_run(payroll_run_id)
    return PayrollRunDetailResponse.from_run(run)


@router.delete(
    "/{payroll_run_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payroll_run(
    db: DbSession,
    payroll_run_id: UUID = Path(...),
) -> None:
    """Delete a payroll run and its entries."""
    await PayrollService(db).delete_run(payroll_run_id)
