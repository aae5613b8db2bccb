"""Leave balance endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from hrpay_engine.api.dependencies import DbSession
from hrpay_engine.api.schemas import ErrorResponse, LeaveBalanceResponse
from hrpay_engine.services.accrual_service import LeaveAccrualService

router = APIRouter(prefix="/leave-balances", tags=["leave"])


@router.get(
    "/{employee_id}",
    response_model=LeaveBalanceResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_leave_balance(
    db: DbSession,
    year: Annotated[int, Query(ge=1900, le=9999)],
    employee_id: UUID = Path(...),
    leave_type: Annotated[str, Query()] = "annual",
    as_of: Annotated[date | None, Query()] = None,
) -> LeaveBalanceResponse:
    """Compute and store the balance for an employee, leave type and year."""
    balance = await LeaveAccrualService(db).get_leave_balance(
        employee_id, leave_type, year, as_of=as_of
    )
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)
