"""
Year/month periods.

Budgets, period locks and monthly reports are all keyed by a calendar
month rather than a date.  ``YearMonth`` is the single value object for
that key; ordering is lexicographic on (year, month).
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date

from billing_kernel.exceptions import InvalidPeriodError


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month, e.g. ``YearMonth(2024, 3)``."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(self.year, self.month)

    @classmethod
    def from_date(cls, value: date) -> YearMonth:
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, label: str) -> YearMonth:
        """Parse ``"YYYY-MM"``."""
        year, _, month = label.partition("-")
        return cls(int(year), int(month))

    def next(self) -> YearMonth:
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def previous(self) -> YearMonth:
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(
            self.year, self.month, calendar.monthrange(self.year, self.month)[1]
        )

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.label


def month_range(start: YearMonth, end: YearMonth) -> Iterator[YearMonth]:
    """
    Enumerate every month from ``start`` to ``end`` inclusive.

    Yields nothing when ``start`` is after ``end``; an inverted range is
    treated as empty rather than an error.
    """
    current = start
    while current <= end:
        yield current
        current = current.next()
