"""
Monday-Friday business-day calendar and the clock that defines "today".

There is no holiday calendar: every weekday counts as a business day.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo

SATURDAY = 5


def is_business_day(day: date) -> bool:
    return day.weekday() < SATURDAY


# PUBLIC_INTERFACE
def add_business_days(start: date, days: int) -> date:
    """
    Move `days` business days from `start` (backwards when negative).

    Only days landed on are counted, so Friday + 1 is Monday and
    Saturday + 1 is Monday. Zero returns `start` unchanged.
    """
    step = 1 if days >= 0 else -1
    remaining = abs(days)
    current = start
    while remaining:
        current += timedelta(days=step)
        if is_business_day(current):
            remaining -= 1
    return current


# PUBLIC_INTERFACE
def business_days_between(start: date, end: date) -> int:
    """
    Count business days in the half-open range (start, end].

    Returns 0 when end is on or before start.
    """
    if end <= start:
        return 0
    span = (end - start).days
    full_weeks, extra = divmod(span, 7)
    count = full_weeks * 5
    for offset in range(1, extra + 1):
        if is_business_day(start + timedelta(days=offset)):
            count += 1
    return count


def to_business_date(value: Union[date, datetime], tz: ZoneInfo) -> date:
    """Calendar date of `value` in the business timezone; naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz).date()
    return value


class Clock:
    """Source of "today" in the business timezone."""

    def __init__(self, tz: Union[str, ZoneInfo] = "UTC") -> None:
        self.tz = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)

    def now(self) -> datetime:
        return datetime.now(tz=self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock pinned to a date; for jobs that replay a given day."""

    def __init__(self, today: date, tz: Union[str, ZoneInfo] = "UTC") -> None:
        super().__init__(tz)
        self._today = today

    def now(self) -> datetime:
        return datetime(self._today.year, self._today.month, self._today.day, 12, tzinfo=self.tz)

    def today(self) -> date:
        return self._today
