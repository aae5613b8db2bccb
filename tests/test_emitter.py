"""Tests for domain events and handler isolation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hrpay_engine.events.emitter import AsyncEventEmitter
from hrpay_engine.events.types import (
    EventCategory,
    LoanDeductionApplied,
    PayrollGenerated,
    VacationStatusChanged,
)


def loan_event() -> LoanDeductionApplied:
    return LoanDeductionApplied(
        payroll_run_id=uuid4(),
        employee_id=uuid4(),
        period="2024-01",
        end_date=date(2024, 1, 31),
        amount=Decimal("150.00"),
    )


def status_event() -> VacationStatusChanged:
    return VacationStatusChanged(
        vacation_request_id=uuid4(),
        employee_id=uuid4(),
        from_status="pending",
        to_status="approved",
        actor_id=None,
    )


class TestDomainEvents:
    """Test event structure."""

    def test_event_type_and_category(self):
        event = loan_event()
        assert event.event_type == "LoanDeductionApplied"
        assert event.category == EventCategory.PAYROLL
        assert status_event().category == EventCategory.LEAVE

    def test_to_dict_is_json_compatible(self):
        event = loan_event()
        data = event.to_dict()
        assert data["amount"] == "150.00"
        assert data["end_date"] == "2024-01-31"
        assert data["payroll_run_id"] == str(event.payroll_run_id)

    def test_events_are_immutable(self):
        event = loan_event()
        with pytest.raises(AttributeError):
            event.amount = Decimal("1")  # type: ignore[misc]


class TestAsyncEventEmitter:
    """Test routing and handler isolation."""

    async def test_routes_by_type(self):
        emitter = AsyncEventEmitter()
        received = []

        async def handler(event):
            received.append(event)

        emitter.on(LoanDeductionApplied, handler)
        await emitter.emit(loan_event())
        await emitter.emit(status_event())

        assert len(received) == 1
        assert received[0].event_type == "LoanDeductionApplied"

    async def test_routes_by_list_of_types(self):
        emitter = AsyncEventEmitter()
        received = []

        async def handler(event):
            received.append(event.event_type)

        emitter.on([LoanDeductionApplied, VacationStatusChanged], handler)
        await emitter.emit_all([loan_event(), status_event()])
        assert received == ["LoanDeductionApplied", "VacationStatusChanged"]

    async def test_routes_by_category(self):
        emitter = AsyncEventEmitter()
        received = []

        async def handler(event):
            received.append(event)

        emitter.on_category(EventCategory.LEAVE, handler)
        await emitter.emit(loan_event())
        await emitter.emit(status_event())
        assert [e.event_type for e in received] == ["VacationStatusChanged"]

    async def test_failing_handler_is_isolated(self, caplog):
        emitter = AsyncEventEmitter()
        received = []

        async def broken(event):
            raise RuntimeError("notification store down")

        async def healthy(event):
            received.append(event)

        emitter.on_all(broken)
        emitter.on_all(healthy)

        errors = await emitter.emit(loan_event())

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert len(received) == 1
        assert "failed for event LoanDeductionApplied" in caplog.text

    async def test_off_unregisters(self):
        emitter = AsyncEventEmitter()
        received = []

        async def handler(event):
            received.append(event)

        emitter.on_all(handler)
        emitter.off(handler)
        await emitter.emit(
            PayrollGenerated(
                payroll_run_id=uuid4(),
                period="2024-01",
                start_date=date(2024, 1, 1),
                end_date=date(2024, 1, 31),
                employee_count=1,
                net_amount=Decimal("1.00"),
            )
        )
        assert received == []
