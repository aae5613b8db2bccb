"""Leave accrual ledger: balances per employee, leave type and year."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrpay_engine.calculators.dates import DateRange, add_months, merge_ranges
from hrpay_engine.exceptions import ComputationError, NotFoundError, ValidationError
from hrpay_engine.models import (
    Employee,
    EmployeeLeavePolicy,
    LeaveAccrualPolicy,
    LeaveBalance,
    VacationRequest,
)
from hrpay_engine.services.state_machine import VacationStateMachine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class PolicyWindow:
    """An assigned policy and the dates it accrues over."""

    policy: LeaveAccrualPolicy
    rate: Decimal
    start: date
    end: date | None

    def credit_dates(self, within: DateRange) -> list[date]:
        """Monthly anniversaries of `start` inside `within` and the window."""
        last = within.end if self.end is None else min(self.end, within.end)
        dates: list[date] = []
        months = 1
        while True:
            credit = add_months(self.start, months)
            if credit > last:
                break
            if credit >= within.start:
                dates.append(credit)
            months += 1
        return dates


@dataclass
class YearLedger:
    """Simulated movements for one calendar year."""

    year: int
    carryover: Decimal = ZERO
    accrued: Decimal = ZERO
    used: Decimal = ZERO
    balance: Decimal = ZERO
    last_accrued_at: date | None = None
    policy: LeaveAccrualPolicy | None = None
    movements: list[tuple[date, Decimal]] = field(default_factory=list)


class LeaveAccrualService:
    """Computes and stores leave balances.

    Ledger rules:
    - one credit per whole month elapsed since the assignment's effective
      start (the later of assignment and policy start), at the assignment's
      custom rate when set; each credit is capped at max_balance_days
    - approved and completed leave of the type debits its days (merged,
      clipped to the year and to the as-of date) on the day the leave starts
    - at a year boundary at most carryover_limit_days carries forward;
      a policy without a limit carries everything
    - a negative balance is an error unless the policy allows it
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_leave_balance(
        self,
        employee_id: UUID,
        leave_type: str,
        year: int,
        as_of: date | None = None,
    ) -> LeaveBalance:
        """Compute, store and return the balance for one year.

        Credits are counted up to `as_of` (default: today, bounded to the
        year). Raises NotFoundError when no policy covers the leave type.
        """
        if as_of is None:
            as_of = min(max(date.today(), date(year, 1, 1)), date(year, 12, 31))
        elif as_of.year != year:
            raise ValidationError(
                "as_of must fall within the requested year",
                {"year": year, "as_of": as_of.isoformat()},
            )

        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        windows = await self._policy_windows(employee_id, leave_type)
        if not windows:
            raise NotFoundError("LeaveAccrualPolicy", f"{leave_type} for employee {employee_id}")

        usage = await self._usage(employee_id, leave_type)
        ledger = self.simulate(windows, usage, year, as_of)

        if ledger.balance < 0 and not (ledger.policy and ledger.policy.allow_negative_balance):
            raise ComputationError(
                "Leave balance would go negative",
                {
                    "employee_id": str(employee_id),
                    "leave_type": leave_type,
                    "year": year,
                    "balance": str(ledger.balance),
                },
            )

        return await self._store(employee_id, leave_type, ledger)

    async def has_policy(self, employee_id: UUID, leave_type: str) -> bool:
        return bool(await self._policy_windows(employee_id, leave_type))

    async def consume(self, request: VacationRequest) -> list[LeaveBalance]:
        """Re-evaluate balances for every year an approved request touches.

        The request must already be flushed with its consuming status.
        Leave types without an assigned policy are not tracked.
        """
        if not await self.has_policy(request.employee_id, request.leave_type):
            logger.debug(
                "No %s policy for employee %s; balance not tracked",
                request.leave_type,
                request.employee_id,
            )
            return []
        balances = []
        for year in range(request.start_date.year, request.end_date.year + 1):
            as_of = min(request.end_date, date(year, 12, 31))
            balances.append(
                await self.get_leave_balance(
                    request.employee_id, request.leave_type, year, as_of=as_of
                )
            )
        return balances

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    @staticmethod
    def simulate(
        windows: list[PolicyWindow],
        usage: list[DateRange],
        year: int,
        as_of: date,
    ) -> YearLedger:
        """Replay the ledger from the first accrual year through `year`."""
        first_year = min(min(w.start.year for w in windows), year)
        merged_usage = merge_ranges(usage)
        carry = ZERO
        ledger = YearLedger(year=first_year)

        for current in range(first_year, year + 1):
            bounds = DateRange(date(current, 1, 1), date(current, 12, 31))
            cutoff = as_of if current == year else bounds.end
            ledger_span = DateRange(bounds.start, cutoff)
            ledger = YearLedger(year=current, carryover=carry, balance=carry)

            movements: list[tuple[date, int, Decimal, PolicyWindow | None]] = []
            for window in windows:
                for credit in window.credit_dates(ledger_span):
                    # Credits sort before debits on the same day
                    movements.append((credit, 0, window.rate, window))
            for leave in merged_usage:
                # Leave after the cutoff has not been taken yet
                clipped = leave.clip(ledger_span)
                if clipped is not None:
                    movements.append((clipped.start, 1, Decimal(clipped.days), None))
            movements.sort(key=lambda m: (m[0], m[1]))

            ledger.policy = LeaveAccrualService._governing_policy(windows, cutoff)
            for day, kind, amount, window in movements:
                if kind == 0:
                    cap = window.policy.max_balance_days
                    new_balance = ledger.balance + amount
                    if cap is not None and new_balance > cap:
                        new_balance = max(ledger.balance, Decimal(cap))
                    ledger.accrued += new_balance - ledger.balance
                    ledger.balance = new_balance
                    ledger.last_accrued_at = day
                    ledger.movements.append((day, amount))
                else:
                    ledger.used += amount
                    ledger.balance -= amount
                    ledger.movements.append((day, -amount))

            if current < year:
                limit = ledger.policy.carryover_limit_days if ledger.policy else None
                carry = ledger.balance if limit is None else min(ledger.balance, Decimal(limit))

        return ledger

    @staticmethod
    def _governing_policy(windows: list[PolicyWindow], on: date) -> LeaveAccrualPolicy:
        """Policy of the latest window started by `on` (or the earliest)."""
        started = [w for w in windows if w.start <= on]
        chosen = max(started, key=lambda w: w.start) if started else windows[0]
        return chosen.policy

    # -------------------------------------------------------------------------
    # Data access
    # -------------------------------------------------------------------------

    async def _policy_windows(self, employee_id: UUID, leave_type: str) -> list[PolicyWindow]:
        result = await self.session.execute(
            select(EmployeeLeavePolicy, LeaveAccrualPolicy)
            .join(LeaveAccrualPolicy, EmployeeLeavePolicy.policy_id == LeaveAccrualPolicy.policy_id)
            .where(
                EmployeeLeavePolicy.employee_id == employee_id,
                LeaveAccrualPolicy.leave_type == leave_type,
            )
            .order_by(EmployeeLeavePolicy.effective_from)
        )
        windows: list[PolicyWindow] = []
        for assignment, policy in result.all():
            ends = [d for d in (assignment.effective_to, policy.expires_on) if d is not None]
            rate = assignment.custom_accrual_rate_per_month
            windows.append(
                PolicyWindow(
                    policy=policy,
                    rate=Decimal(policy.accrual_rate_per_month if rate is None else rate),
                    start=max(assignment.effective_from, policy.effective_from),
                    end=min(ends) if ends else None,
                )
            )
        return windows

    async def _usage(self, employee_id: UUID, leave_type: str) -> list[DateRange]:
        result = await self.session.execute(
            select(VacationRequest.start_date, VacationRequest.end_date).where(
                VacationRequest.employee_id == employee_id,
                VacationRequest.leave_type == leave_type,
                VacationRequest.status.in_([s.value for s in VacationStateMachine.CONSUMING]),
            )
        )
        return [DateRange(start, end) for start, end in result.all()]

    async def _store(self, employee_id: UUID, leave_type: str, ledger: YearLedger) -> LeaveBalance:
        """Upsert the ledger result into leave_balance."""
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.leave_type == leave_type,
                LeaveBalance.year == ledger.year,
            )
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            balance = LeaveBalance(employee_id=employee_id, leave_type=leave_type, year=ledger.year)
            self.session.add(balance)

        balance.policy_id = ledger.policy.policy_id if ledger.policy else None
        balance.carryover_days = ledger.carryover
        balance.accrued_days = ledger.accrued
        balance.used_days = ledger.used
        balance.balance_days = ledger.balance
        balance.last_accrued_at = ledger.last_accrued_at
        await self.session.flush()
        return balance
