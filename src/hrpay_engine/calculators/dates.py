"""Calendar-date utilities for inclusive ranges and month arithmetic.

All ranges are inclusive on both ends and carry no time-of-day.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Iterator


@dataclass(frozen=True, order=True)
class DateRange:
    """Inclusive [start, end] calendar range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} precedes start {self.start}")

    @property
    def days(self) -> int:
        """Number of calendar days in the range."""
        return inclusive_days(self.start, self.end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, other: DateRange) -> bool:
        """True when the two ranges share at least one day."""
        return self.start <= other.end and self.end >= other.start

    def clip(self, bounds: DateRange) -> DateRange | None:
        """Intersection with `bounds`, or None when disjoint."""
        if not self.overlaps(bounds):
            return None
        return DateRange(max(self.start, bounds.start), min(self.end, bounds.end))

    def iter_days(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def iter_months(self) -> Iterator[tuple[int, int]]:
        """(year, month) for every calendar month the range touches."""
        year, month = self.start.year, self.start.month
        while (year, month) <= (self.end.year, self.end.month):
            yield year, month
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)


def inclusive_days(start: date, end: date) -> int:
    """Inclusive day count; 0 when end precedes start."""
    return max(0, (end - start).days + 1)


def merge_ranges(ranges: Iterable[DateRange]) -> list[DateRange]:
    """Union of ranges; overlapping or adjacent ranges collapse into one."""
    merged: list[DateRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end + timedelta(days=1):
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = DateRange(last.start, current.end)
        else:
            merged.append(current)
    return merged


def count_distinct_days(ranges: Iterable[DateRange], bounds: DateRange | None = None) -> int:
    """Days covered by the union of `ranges`, optionally clipped to `bounds`.

    Days shared by several ranges are counted once.
    """
    clipped: list[DateRange] = []
    for r in ranges:
        if bounds is not None:
            c = r.clip(bounds)
            if c is None:
                continue
            clipped.append(c)
        else:
            clipped.append(r)
    return sum(r.days for r in merge_ranges(clipped))


def day_in_month(day_of_month: int, year: int, month: int) -> date:
    """`day_of_month` in the given month, clipped to the month's last day."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last))


def add_months(anchor: date, months: int) -> date:
    """Same day-of-month `months` later, clipped to month length."""
    index = anchor.year * 12 + (anchor.month - 1) + months
    return day_in_month(anchor.day, index // 12, index % 12 + 1)


def whole_months_between(start: date, end: date) -> int:
    """Whole months elapsed from `start` to `end` (0 when end < start)."""
    if end < start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return months
