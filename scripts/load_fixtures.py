"""Load a small demo data set into the database.

Usage:
    python scripts/load_fixtures.py [--database-url URL]

Creates two departments, four employees, an annual leave policy, a loan
and a recurring housing allowance. Useful for a development environment.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.config import get_settings
from hrpay_engine.database import get_engine
from hrpay_engine.models import (
    Department,
    Employee,
    EmployeeEvent,
    EmployeeLeavePolicy,
    LeaveAccrualPolicy,
    Loan,
)

EMPLOYEES = [
    ("E001", "Ranya", "Hassan", "Operations", Decimal("3000.00"), 30),
    ("E002", "Omar", "Saleh", "Operations", Decimal("2600.00"), None),
    ("E003", "Lina", "Karam", "Finance", Decimal("3400.00"), None),
    ("E004", "Yusuf", "Nasser", "Finance", Decimal("2200.00"), None),
]


async def load_fixtures(database_url: str) -> None:
    """Insert the demo data unless employees already exist."""
    default_days = get_settings().default_standard_working_days
    engine = get_engine(database_url)
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            existing = await session.scalar(select(func.count()).select_from(Employee))
            if existing:
                print(f"Database already has {existing} employees; nothing loaded")
                return

            departments = {name: Department(name=name) for name in ("Operations", "Finance")}
            session.add_all(departments.values())

            policy = LeaveAccrualPolicy(
                name="Annual leave",
                leave_type="annual",
                accrual_rate_per_month=Decimal("2.5"),
                max_balance_days=Decimal("45"),
                carryover_limit_days=Decimal("10"),
                allow_negative_balance=False,
                effective_from=date(2024, 1, 1),
            )
            session.add(policy)

            employees = []
            for number, first, last, dept, salary, days in EMPLOYEES:
                employee = Employee(
                    employee_number=number,
                    first_name=first,
                    last_name=last,
                    department=departments[dept],
                    salary=salary,
                    standard_working_days=days or default_days,
                    status="active",
                )
                employees.append(employee)
            session.add_all(employees)
            await session.flush()

            for employee in employees:
                session.add(
                    EmployeeLeavePolicy(
                        employee_id=employee.employee_id,
                        policy_id=policy.policy_id,
                        effective_from=date(2024, 1, 1),
                    )
                )

            session.add(
                Loan(
                    employee_id=employees[1].employee_id,
                    amount=Decimal("1200.00"),
                    monthly_deduction=Decimal("150.00"),
                    remaining_amount=Decimal("1200.00"),
                    status="active",
                    start_date=date(2024, 1, 1),
                )
            )
            session.add(
                EmployeeEvent(
                    employee_id=employees[0].employee_id,
                    event_type="allowance",
                    title="Housing",
                    amount=Decimal("150.00"),
                    event_date=date(2023, 11, 15),
                    affects_payroll=True,
                    status="active",
                    recurrence_type="monthly",
                )
            )
            await session.commit()
            print(f"Loaded {len(employees)} employees, 1 policy, 1 loan, 1 recurring event")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Load demo fixtures")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args()
    asyncio.run(load_fixtures(args.database_url or get_settings().database_url))


if __name__ == "__main__":
    main()
