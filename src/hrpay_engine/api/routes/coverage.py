"""Coverage analysis and asset assignment endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, status

from hrpay_engine.api.dependencies import DbSession
from hrpay_engine.api.schemas import (
    AssetAssignmentCreate,
    AssetAssignmentResponse,
    CoverageDayResponse,
    CoverageResponse,
    ErrorResponse,
)
from hrpay_engine.services.asset_service import AssetAssignmentService
from hrpay_engine.services.coverage_service import CoverageService

router = APIRouter(tags=["coverage"])


@router.get(
    "/coverage",
    response_model=CoverageResponse,
    responses={422: {"model": ErrorResponse}},
)
async def check_coverage(
    db: DbSession,
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
    threshold: Annotated[int | None, Query()] = None,
) -> CoverageResponse:
    """Per-day, per-department counts of employees on approved leave."""
    report = await CoverageService(db).check_coverage(start_date, end_date, threshold)
    return CoverageResponse(
        start_date=report.start_date,
        end_date=report.end_date,
        threshold=report.threshold,
        days=[CoverageDayResponse.model_validate(d) for d in report.days],
        flagged_dates=report.flagged_dates,
    )


@router.post(
    "/asset-assignments",
    response_model=AssetAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def assign_asset(
    db: DbSession,
    payload: AssetAssignmentCreate,
) -> AssetAssignmentResponse:
    """Assign an asset unless the date falls inside approved leave."""
    assignment = await AssetAssignmentService(db).assign_asset(
        payload.asset_id,
        payload.employee_id,
        payload.assigned_date,
        notes=payload.notes,
    )
    await db.commit()
    return AssetAssignmentResponse.model_validate(assignment)
