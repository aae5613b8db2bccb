"""Pytest fixtures for HR payroll engine tests."""

from __future__ import annotations

import itertools
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrpay_engine.models import (
    Base,
    Department,
    Employee,
    EmployeeEvent,
    EmployeeLeavePolicy,
    LeaveAccrualPolicy,
    Loan,
    VacationRequest,
)

# In-memory SQLite shared across sessions of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def departments(session: AsyncSession) -> dict[str, Department]:
    """Create two test departments."""
    ops = Department(name="Operations")
    finance = Department(name="Finance")
    session.add_all([ops, finance])
    await session.flush()
    return {"Operations": ops, "Finance": finance}


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory for flushed employees (active, 3000/month over 30 days)."""
    counter = itertools.count(1)

    async def create(**overrides) -> Employee:
        n = next(counter)
        data = {
            "employee_number": f"EMP{n:03d}",
            "first_name": f"First{n}",
            "last_name": f"Last{n}",
            "salary": Decimal("3000.00"),
            "standard_working_days": 30,
            "status": "active",
        }
        data.update(overrides)
        employee = Employee(**data)
        session.add(employee)
        await session.flush()
        return employee

    return create


@pytest.fixture
def make_loan(session: AsyncSession):
    """Factory for flushed loans."""

    async def create(employee: Employee, **overrides) -> Loan:
        data = {
            "employee_id": employee.employee_id,
            "amount": Decimal("1000.00"),
            "monthly_deduction": Decimal("150.00"),
            "remaining_amount": Decimal("1000.00"),
            "status": "active",
            "start_date": date(2023, 6, 1),
        }
        data.update(overrides)
        loan = Loan(**data)
        session.add(loan)
        await session.flush()
        return loan

    return create


@pytest.fixture
def make_event(session: AsyncSession):
    """Factory for flushed employee events."""

    async def create(employee: Employee, **overrides) -> EmployeeEvent:
        data = {
            "employee_id": employee.employee_id,
            "event_type": "bonus",
            "title": "Bonus",
            "amount": Decimal("100.00"),
            "event_date": date(2024, 1, 10),
            "affects_payroll": True,
            "status": "active",
            "recurrence_type": "none",
        }
        data.update(overrides)
        event = EmployeeEvent(**data)
        session.add(event)
        await session.flush()
        return event

    return create


@pytest.fixture
def make_vacation(session: AsyncSession):
    """Factory for vacation requests inserted directly in a given status."""

    async def create(
        employee: Employee,
        start_date: date,
        end_date: date,
        status: str = "approved",
        **overrides,
    ) -> VacationRequest:
        data = {
            "employee_id": employee.employee_id,
            "start_date": start_date,
            "end_date": end_date,
            "status": status,
            "leave_type": "annual",
            "approval_chain": [
                {
                    "approver_id": str(uuid4()),
                    "status": "approved" if status != "pending" else "pending",
                    "delegated_to_id": None,
                    "acted_at": None,
                    "notes": None,
                }
            ],
            "audit_log": [],
            "current_approval_step": 0,
        }
        data.update(overrides)
        request = VacationRequest(**data)
        session.add(request)
        await session.flush()
        return request

    return create


@pytest.fixture
def make_policy(session: AsyncSession):
    """Factory for an accrual policy assigned to an employee."""

    async def create(
        employee: Employee,
        assigned_from: date | None = None,
        custom_rate: Decimal | None = None,
        **overrides,
    ) -> LeaveAccrualPolicy:
        data = {
            "name": "Annual leave",
            "leave_type": "annual",
            "accrual_rate_per_month": Decimal("2.00"),
            "max_balance_days": None,
            "carryover_limit_days": None,
            "allow_negative_balance": False,
            "effective_from": date(2024, 1, 1),
        }
        data.update(overrides)
        policy = LeaveAccrualPolicy(**data)
        session.add(policy)
        await session.flush()
        session.add(
            EmployeeLeavePolicy(
                employee_id=employee.employee_id,
                policy_id=policy.policy_id,
                effective_from=assigned_from or policy.effective_from,
                custom_accrual_rate_per_month=custom_rate,
            )
        )
        await session.flush()
        return policy

    return create
