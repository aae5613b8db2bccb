"""Tests for recurring-event projection and category netting."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from hrpay_engine.calculators.dates import DateRange
from hrpay_engine.calculators.event_aggregator import (
    aggregate_events,
    allowance_key,
    project_occurrence,
    project_occurrences,
)
from hrpay_engine.calculators.types import ScenarioToggles

JANUARY = DateRange(date(2024, 1, 1), date(2024, 1, 31))
FEBRUARY = DateRange(date(2024, 2, 1), date(2024, 2, 29))


def make_event(
    event_type: str = "bonus",
    amount: str = "100.00",
    event_date: date = date(2024, 1, 10),
    recurrence_type: str = "none",
    recurrence_end_date: date | None = None,
    affects_payroll: bool = True,
    status: str = "active",
    title: str | None = None,
):
    return SimpleNamespace(
        event_id=uuid4(),
        event_type=event_type,
        title=title or event_type.title(),
        amount=Decimal(amount),
        event_date=event_date,
        recurrence_type=recurrence_type,
        recurrence_end_date=recurrence_end_date,
        affects_payroll=affects_payroll,
        status=status,
    )


class TestProjection:
    """Test occurrence projection into a period."""

    def test_one_off_event_inside_period(self):
        event = make_event(event_date=date(2024, 1, 20))
        assert project_occurrences(event, JANUARY) == [date(2024, 1, 20)]

    def test_one_off_event_outside_period(self):
        event = make_event(event_date=date(2023, 12, 20))
        assert project_occurrences(event, JANUARY) == []

    def test_monthly_event_projects_to_same_day(self):
        event = make_event(event_date=date(2023, 11, 15), recurrence_type="monthly")
        assert project_occurrence(event, JANUARY) == date(2024, 1, 15)

    def test_monthly_event_clips_to_month_end(self):
        event = make_event(event_date=date(2024, 1, 31), recurrence_type="monthly")
        assert project_occurrence(event, FEBRUARY) == date(2024, 2, 29)

    def test_monthly_event_not_before_its_start(self):
        event = make_event(event_date=date(2024, 2, 10), recurrence_type="monthly")
        assert project_occurrences(event, JANUARY) == []

    def test_monthly_event_after_recurrence_end(self):
        event = make_event(
            event_date=date(2023, 6, 15),
            recurrence_type="monthly",
            recurrence_end_date=date(2024, 1, 10),
        )
        assert project_occurrences(event, JANUARY) == []
        assert project_occurrences(event, DateRange(date(2023, 12, 1), date(2023, 12, 31))) == [
            date(2023, 12, 15)
        ]

    def test_multi_month_window_yields_one_per_month(self):
        event = make_event(event_date=date(2023, 11, 15), recurrence_type="monthly")
        quarter = DateRange(date(2024, 1, 1), date(2024, 3, 31))
        assert project_occurrences(event, quarter) == [
            date(2024, 1, 15),
            date(2024, 2, 15),
            date(2024, 3, 15),
        ]


class TestAggregation:
    """Test netting of event amounts into pay components."""

    def test_recurring_housing_allowance(self):
        housing = make_event(
            event_type="allowance",
            amount="150.00",
            title="Housing",
            event_date=date(2023, 11, 15),
            recurrence_type="monthly",
        )
        totals = aggregate_events([housing], JANUARY)
        assert totals.bonus_amount == Decimal("150.00")
        assert totals.allowances == {"housing": Decimal("150.00")}
        assert totals.occurrences[0].occurs_on == date(2024, 1, 15)

    def test_additions_and_subtractions(self):
        events = [
            make_event("bonus", "200.00"),
            make_event("commission", "50.00"),
            make_event("overtime", "25.00"),
            make_event("deduction", "30.00"),
            make_event("penalty", "-20.00"),
        ]
        totals = aggregate_events(events, JANUARY)
        assert totals.bonus_amount == Decimal("275.00")
        assert totals.other_deductions == Decimal("50.00")

    def test_informational_types_ignored(self):
        totals = aggregate_events([make_event("vacation"), make_event("other")], JANUARY)
        assert totals.bonus_amount == 0
        assert totals.other_deductions == 0
        assert totals.occurrences == []

    def test_non_payroll_and_inactive_events_skipped(self):
        events = [
            make_event(affects_payroll=False),
            make_event(status="cancelled"),
        ]
        totals = aggregate_events(events, JANUARY)
        assert totals.bonus_amount == 0

    def test_disabled_allowances_yield_no_breakdown(self):
        events = [
            make_event("allowance", "150.00", title="Housing"),
            make_event("bonus", "100.00"),
        ]
        totals = aggregate_events(events, JANUARY, ScenarioToggles(allowances=False))
        assert totals.allowances is None
        assert totals.bonus_amount == Decimal("100.00")

    def test_disabled_bonuses_suppress_commission(self):
        events = [make_event("bonus", "100.00"), make_event("commission", "40.00")]
        totals = aggregate_events(events, JANUARY, ScenarioToggles(bonuses=False))
        assert totals.bonus_amount == 0

    def test_disabled_deductions(self):
        events = [make_event("deduction", "80.00"), make_event("penalty", "10.00")]
        totals = aggregate_events(events, JANUARY, ScenarioToggles(deductions=False))
        assert totals.other_deductions == 0

    def test_allowances_with_same_key_sum(self):
        events = [
            make_event("allowance", "100.00", title="Transport"),
            make_event("allowance", "20.00", title=" transport "),
        ]
        totals = aggregate_events(events, JANUARY)
        assert totals.allowances == {"transport": Decimal("120.00")}


class TestAllowanceKey:
    """Test allowance breakdown key normalization."""

    def test_slugifies_title(self):
        assert allowance_key("Meal & Transport") == "meal_transport"

    def test_empty_title_falls_back(self):
        assert allowance_key("  ") == "allowance"


class TestScenarioToggles:
    """Test toggle parsing."""

    def test_missing_keys_default_enabled(self):
        toggles = ScenarioToggles.from_dict({"loans": False, "bonuses": None})
        assert toggles.loans is False
        assert toggles.bonuses is True

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            ScenarioToggles.from_dict({"taxes": False})
