"""Asset and vehicle assignment."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.exceptions import NotFoundError
from hrpay_engine.models import AssetAssignment, Employee
from hrpay_engine.services.coverage_service import CoverageService

logger = logging.getLogger(__name__)


class AssetAssignmentService:
    """Assigns assets, refusing dates inside the employee's approved leave."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.coverage = CoverageService(session)

    async def assign_asset(
        self,
        asset_id: UUID,
        employee_id: UUID,
        assigned_date: date,
        notes: str | None = None,
    ) -> AssetAssignment:
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        await self.coverage.ensure_not_on_leave(employee_id, assigned_date)

        assignment = AssetAssignment(
            asset_id=asset_id,
            employee_id=employee_id,
            assigned_date=assigned_date,
            status="active",
            notes=notes,
        )
        self.session.add(assignment)
        await self.session.flush()
        logger.info("Asset %s assigned to employee %s on %s", asset_id, employee_id, assigned_date)
        return assignment

    async def list_assignments(self, employee_id: UUID | None = None) -> list[AssetAssignment]:
        query = select(AssetAssignment).order_by(AssetAssignment.assigned_date)
        if employee_id is not None:
            query = query.where(AssetAssignment.employee_id == employee_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())
