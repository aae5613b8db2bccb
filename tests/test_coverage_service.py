"""Tests for coverage analysis, asset assignment and return alerts."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.notifications import build_emitter, return_notice
from hrpay_engine.exceptions import ConflictError, NotFoundError, ValidationError
from hrpay_engine.models import Notification
from hrpay_engine.services.asset_service import AssetAssignmentService
from hrpay_engine.services.coverage_service import CoverageService
from hrpay_engine.services.return_alerts import VacationReturnAlertService


class TestCoverage:
    """Test per-day, per-department leave counts."""

    async def test_counts_by_department(self, session, departments, make_employee, make_vacation):
        ops = departments["Operations"].department_id
        finance = departments["Finance"].department_id
        a = await make_employee(department_id=ops)
        b = await make_employee(department_id=ops)
        c = await make_employee(department_id=finance)
        await make_vacation(a, date(2024, 7, 1), date(2024, 7, 3))
        await make_vacation(b, date(2024, 7, 2), date(2024, 7, 5))
        await make_vacation(c, date(2024, 7, 2), date(2024, 7, 2))

        report = await CoverageService(session).check_coverage(
            date(2024, 7, 1), date(2024, 7, 4), threshold=2
        )

        assert [d.day for d in report.days] == [
            date(2024, 7, 1),
            date(2024, 7, 2),
            date(2024, 7, 3),
            date(2024, 7, 4),
        ]
        assert report.days[0].departments == {"Operations": 1}
        assert report.days[1].departments == {"Finance": 1, "Operations": 2}
        assert report.days[1].total == 3
        assert report.days[1].flagged_departments == ["Operations"]
        assert report.flagged_dates == [date(2024, 7, 2), date(2024, 7, 3)]

    async def test_employee_counted_once_per_day(self, session, make_employee, make_vacation):
        employee = await make_employee()
        await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 3))
        await make_vacation(employee, date(2024, 7, 2), date(2024, 7, 4), leave_type="sick")

        report = await CoverageService(session).check_coverage(
            date(2024, 7, 2), date(2024, 7, 2), threshold=2
        )

        assert report.days[0].departments == {"unassigned": 1}
        assert report.flagged_dates == []

    async def test_only_approved_leave_counts(self, session, make_employee, make_vacation):
        employee = await make_employee()
        other = await make_employee()
        await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 3), status="pending")
        await make_vacation(other, date(2024, 7, 1), date(2024, 7, 3), status="completed")

        report = await CoverageService(session).check_coverage(date(2024, 7, 1), date(2024, 7, 3))

        assert all(d.total == 0 for d in report.days)

    async def test_invalid_arguments(self, session):
        service = CoverageService(session)
        with pytest.raises(ValidationError):
            await service.check_coverage(date(2024, 7, 1), date(2024, 7, 3), threshold=0)
        with pytest.raises(ValidationError):
            await service.check_coverage(date(2024, 7, 3), date(2024, 7, 1))


class TestAssetAssignment:
    """Test assignment conflicts with approved leave."""

    async def test_assignment_during_leave_conflicts(self, session, make_employee, make_vacation):
        employee = await make_employee()
        leave = await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 5))

        with pytest.raises(ConflictError) as exc_info:
            await AssetAssignmentService(session).assign_asset(
                uuid4(), employee.employee_id, date(2024, 7, 5)
            )

        assert exc_info.value.details["vacation_request_id"] == str(leave.vacation_request_id)

    async def test_assignment_outside_leave(self, session, make_employee, make_vacation):
        employee = await make_employee()
        await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 5))
        service = AssetAssignmentService(session)

        assignment = await service.assign_asset(
            uuid4(), employee.employee_id, date(2024, 7, 6), notes="Laptop"
        )

        assert assignment.status == "active"
        assert await service.list_assignments(employee.employee_id) == [assignment]

    async def test_unknown_employee(self, session):
        with pytest.raises(NotFoundError):
            await AssetAssignmentService(session).assign_asset(uuid4(), uuid4(), date(2024, 7, 6))


class TestReturnAlerts:
    """Test vacation return alerts."""

    async def test_finds_due_and_overdue(self, session, make_employee, make_vacation):
        due = await make_employee(status="on_leave", first_name="Ana", last_name="Ruiz")
        overdue = await make_employee(status="on_leave")
        returned = await make_employee(status="active")
        await make_vacation(due, date(2024, 7, 1), date(2024, 7, 12))
        await make_vacation(overdue, date(2024, 6, 20), date(2024, 7, 5))
        await make_vacation(returned, date(2024, 7, 1), date(2024, 7, 11))

        service = VacationReturnAlertService(session, lookahead_days=2, overdue_lookback_days=7)
        alerts = await service.find_due(date(2024, 7, 10))

        assert [(a.employee_id, a.days_until_return) for a in alerts] == [
            (overdue.employee_id, -5),
            (due.employee_id, 2),
        ]
        assert alerts[1].employee_name == "Ana Ruiz"
        assert alerts[0].overdue is True

    async def test_process_upserts_notification(
        self, session, session_factory, make_employee, make_vacation
    ):
        employee = await make_employee(status="on_leave", first_name="Ana", last_name="Ruiz")
        request = await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 12))
        await session.commit()

        service = VacationReturnAlertService(
            session, build_emitter(session_factory), lookahead_days=2, overdue_lookback_days=7
        )
        assert await service.process(date(2024, 7, 10)) == 1
        assert await service.process(date(2024, 7, 11)) == 1

        notifications = (await session.execute(select(Notification))).scalars().all()
        assert len(notifications) == 1
        notification = notifications[0]
        await session.refresh(notification)
        assert notification.reference_id == request.vacation_request_id
        assert notification.priority == "critical"
        assert notification.days_until_expiry == 1
        assert notification.title == "Vacation return due (2024-07-12)"

    async def test_failed_alert_not_counted(self, session, make_employee, make_vacation):
        employee = await make_employee(status="on_leave")
        await make_vacation(employee, date(2024, 7, 1), date(2024, 7, 12))
        emitter = AsyncEventEmitter()

        async def broken(event):
            raise RuntimeError("inbox unavailable")

        emitter.on_all(broken)
        service = VacationReturnAlertService(session, emitter, lookahead_days=2)

        assert await service.process(date(2024, 7, 10)) == 0


class TestReturnNotice:
    """Test alert wording."""

    def test_due_notice(self):
        title, message = return_notice("Ana Ruiz", "2024-07-12", 2)
        assert title == "Vacation return due (2024-07-12)"
        assert "due in 2 days" in message

    def test_overdue_notice(self):
        title, message = return_notice("Ana Ruiz", "2024-07-05", -1)
        assert title == "Vacation return overdue (2024-07-05)"
        assert "1 day overdue" in message
        assert message.endswith("adjust the return date if they remain on leave.")
