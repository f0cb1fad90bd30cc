"""Calendar-month helpers: month keys, forecast windows and overlap tests."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date


def month_key(value: date) -> str:
    """Return the canonical ``YYYY-MM`` key for a date."""
    return f"{value.year:04d}-{value.month:02d}"


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(value: date, months: int, day: int | None = None) -> date:
    """Shift a date by whole calendar months.

    The day of month is kept (or taken from ``day`` when given) and clamped
    to the length of the target month, so Jan 31 + 1 month is Feb 28/29.
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    wanted = value.day if day is None else day
    return date(year, month, min(wanted, calendar.monthrange(year, month)[1]))


@dataclass(frozen=True)
class ForecastMonth:
    """One calendar month inside a forecast window."""

    start: date
    end: date

    @classmethod
    def containing(cls, value: date) -> ForecastMonth:
        return cls(
            start=value.replace(day=1),
            end=last_day_of_month(value.year, value.month),
        )

    @property
    def key(self) -> str:
        return month_key(self.start)

    @property
    def mid_month(self) -> date:
        """The 15th: the first payroll date and the end of the first half."""
        return self.start.replace(day=15)


def clamp_window_months(window_months: int | None, default: int = 1) -> int:
    """Coerce a requested window size to an integer >= 1."""
    if window_months is None:
        return max(default, 1)
    try:
        months = int(window_months)
    except (TypeError, ValueError):
        return max(default, 1)
    return max(months, 1)


def month_window(window_months: int, today: date) -> list[ForecastMonth]:
    """Return the months ``[M0 .. M(window_months - 1)]`` starting at today's month.

    ``window_months`` must already be clamped to >= 1; a window of 1 is the
    current month only.
    """
    first = today.replace(day=1)
    return [
        ForecastMonth.containing(add_months(first, offset))
        for offset in range(window_months)
    ]


def window_bounds(months: list[ForecastMonth]) -> tuple[date, date]:
    """First and last day covered by a month window."""
    return months[0].start, months[-1].end


def is_active_in_month(
    start_date: date,
    end_date: date | None,
    month_start: date,
    month_end: date,
) -> bool:
    """Closed-interval overlap test; a missing end date is unbounded."""
    return month_start <= (end_date or month_end) and month_end >= start_date
