"""Recurring-event expansion and category netting.

Recurrence is expanded on read: a monthly event is stored once and
projected into each period at its original day of month.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from hrpay_engine.calculators.dates import DateRange, day_in_month
from hrpay_engine.calculators.types import ZERO, EventOccurrence, EventTotals, ScenarioToggles
from hrpay_engine.models.compensation import EventType, RecurrenceType

if TYPE_CHECKING:
    from hrpay_engine.models.compensation import EmployeeEvent

ACTIVE_STATUS = "active"


def project_occurrences(event: EmployeeEvent, window: DateRange) -> list[date]:
    """Dates on which `event` applies inside `window`.

    Non-recurring events apply on their literal date. Monthly events
    apply once per month the window touches, on the original day of
    month clipped to that month's length, never before the original
    date and never after the recurrence end.
    """
    if event.recurrence_type != RecurrenceType.MONTHLY:
        return [event.event_date] if window.contains(event.event_date) else []

    if event.event_date > window.end:
        return []
    recurrence_end = event.recurrence_end_date
    if recurrence_end is not None and recurrence_end < window.start:
        return []

    dates: list[date] = []
    for year, month in window.iter_months():
        occurrence = day_in_month(event.event_date.day, year, month)
        if not window.contains(occurrence):
            continue
        if occurrence < event.event_date:
            continue
        if recurrence_end is not None and occurrence > recurrence_end:
            continue
        dates.append(occurrence)
    return dates


def project_occurrence(event: EmployeeEvent, window: DateRange) -> date | None:
    """First occurrence of `event` inside `window`, or None."""
    dates = project_occurrences(event, window)
    return dates[0] if dates else None


def allowance_key(title: str) -> str:
    """Normalized breakdown key for an allowance title."""
    key = re.sub(r"[^a-z0-9]+", "_", title.strip().lower()).strip("_")
    return key or EventType.ALLOWANCE


def expand_events(
    events: Iterable[EmployeeEvent], window: DateRange
) -> list[EventOccurrence]:
    """Payroll-affecting, active occurrences of `events` inside `window`."""
    occurrences: list[EventOccurrence] = []
    for event in events:
        if not event.affects_payroll or event.status != ACTIVE_STATUS:
            continue
        for occurs_on in project_occurrences(event, window):
            occurrences.append(
                EventOccurrence(
                    event_id=event.event_id,
                    event_type=event.event_type,
                    title=event.title,
                    amount=Decimal(event.amount),
                    occurs_on=occurs_on,
                )
            )
    occurrences.sort(key=lambda o: (o.occurs_on, str(o.event_id)))
    return occurrences


def aggregate_events(
    events: Iterable[EmployeeEvent],
    window: DateRange,
    toggles: ScenarioToggles | None = None,
) -> EventTotals:
    """Net event amounts into bonus_amount and other_deductions.

    Disabled categories contribute nothing; a disabled allowance category
    yields `allowances=None` rather than an empty breakdown.
    """
    toggles = toggles or ScenarioToggles()
    totals = EventTotals(allowances={} if toggles.allowances else None)

    for occurrence in expand_events(events, window):
        if not toggles.allows_event(occurrence.event_type):
            continue
        amount = abs(occurrence.amount)
        if occurrence.event_type in EventType.ADDITIONS:
            totals.bonus_amount += amount
            if occurrence.event_type == EventType.ALLOWANCE and totals.allowances is not None:
                key = allowance_key(occurrence.title)
                totals.allowances[key] = totals.allowances.get(key, ZERO) + amount
        elif occurrence.event_type in EventType.SUBTRACTIONS:
            totals.other_deductions += amount
        else:
            continue
        totals.occurrences.append(occurrence)

    return totals
