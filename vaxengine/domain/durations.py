"""
Calendar arithmetic for immunization rules.

Two duration kinds, which are not interchangeable:

- WeekSpan: exact-day arithmetic (6 weeks is always 42 days)
- MonthSpan: calendar-month arithmetic that respects month lengths
  (Jan 31 + 1 month = Feb 28/29)
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class WeekSpan:
    """A precise week offset, resolved to a whole number of days."""

    weeks: float

    @property
    def days(self) -> int:
        # Fractional weeks are truncated to whole days
        return math.floor(self.weeks * 7)

    def after(self, start: date) -> date:
        return start + timedelta(days=self.days)

    def label(self) -> str:
        return f"{self.weeks:g}w"


@dataclass(frozen=True)
class MonthSpan:
    """A calendar month offset."""

    months: int

    def after(self, start: date) -> date:
        return start + relativedelta(months=self.months)

    def label(self) -> str:
        return f"{self.months}m"


AgeSpan = WeekSpan | MonthSpan


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def add_months(start: date, months: int) -> date:
    return MonthSpan(months).after(start)


def days_between(earlier: date, later: date) -> int:
    """Signed whole days from `earlier` to `later`."""
    return (later - earlier).days
