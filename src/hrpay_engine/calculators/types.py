"""Type definitions for the payroll calculation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from hrpay_engine.models.compensation import EventType

ZERO = Decimal("0")


@dataclass(frozen=True)
class ScenarioToggles:
    """Per-run switches; a disabled category is suppressed entirely."""

    allowances: bool = True
    bonuses: bool = True
    overtime: bool = True
    deductions: bool = True
    loans: bool = True
    vacations: bool = True

    # event_type -> toggle attribute
    EVENT_CATEGORY = {
        EventType.ALLOWANCE: "allowances",
        EventType.BONUS: "bonuses",
        EventType.COMMISSION: "bonuses",
        EventType.OVERTIME: "overtime",
        EventType.DEDUCTION: "deductions",
        EventType.PENALTY: "deductions",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScenarioToggles:
        """Build from a partial mapping; missing or None keys stay enabled."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown scenario toggles: {sorted(unknown)}")
        return cls(**{k: bool(v) for k, v in data.items() if v is not None})

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    def allows_event(self, event_type: str) -> bool:
        """Whether events of this type contribute to pay."""
        attr = self.EVENT_CATEGORY.get(event_type)
        return True if attr is None else getattr(self, attr)


@dataclass(frozen=True)
class EventOccurrence:
    """An event (or a projected recurrence of one) dated inside a period."""

    event_id: UUID
    event_type: str
    title: str
    amount: Decimal
    occurs_on: date


@dataclass
class EventTotals:
    """Aggregated event amounts for one employee and period."""

    bonus_amount: Decimal = ZERO
    other_deductions: Decimal = ZERO
    # None when the allowance category is disabled
    allowances: dict[str, Decimal] | None = field(default_factory=dict)
    occurrences: list[EventOccurrence] = field(default_factory=list)


@dataclass(frozen=True)
class LoanDeduction:
    """Planned deduction against one loan."""

    loan_id: UUID
    amount: Decimal


@dataclass
class LoanPlan:
    """All loan deductions planned for one employee."""

    deductions: list[LoanDeduction] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)


@dataclass
class EntryCalculation:
    """Computed payroll entry for one employee, before persistence."""

    employee_id: UUID
    base_salary: Decimal
    bonus_amount: Decimal
    gross_pay: Decimal
    working_days: int
    actual_working_days: int
    vacation_days: int
    loan_deduction: Decimal
    other_deductions: Decimal
    net_pay: Decimal
    allowances: dict[str, Decimal] | None
    adjustment_reason: str | None
    loan_plan: LoanPlan = field(default_factory=LoanPlan)
    # Statutory placeholders; no policy computes them yet
    tax_deduction: Decimal = ZERO
    social_security_deduction: Decimal = ZERO
    health_insurance_deduction: Decimal = ZERO

    @property
    def total_deductions(self) -> Decimal:
        return (
            self.tax_deduction
            + self.social_security_deduction
            + self.health_insurance_deduction
            + self.loan_deduction
            + self.other_deductions
        )


@dataclass(frozen=True)
class RunTotals:
    """Run-level sums over all entries."""

    gross_amount: Decimal
    total_deductions: Decimal
    net_amount: Decimal
