"""Expense projections: recurring expenses and the bi-monthly payroll."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from pam_forecast.models import PayrollMember, RecurringExpense
from pam_forecast.periods import ForecastMonth, month_key, window_bounds
from pam_forecast.recurrence import DEFAULT_MAX_ITERATIONS, expand

PAY_DATES_PER_MONTH = Decimal("2")


def expense_occurrences(
    expense: RecurringExpense,
    window_start: date,
    window_end: date,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[date]:
    """Dates on which an expense is paid inside the window."""
    if not expense.is_recurring:
        if window_start <= expense.date <= window_end:
            return [expense.date]
        return []
    return expand(
        expense.date,
        expense.recurrence_interval,
        expense.recurrence_end_date,
        window_start,
        window_end,
        max_iterations=max_iterations,
    )


def accumulate_expenses(
    expenses: Iterable[RecurringExpense],
    months: Sequence[ForecastMonth],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> dict[str, Decimal]:
    """Expense totals per month key.

    Legacy ``payroll`` expenses are skipped; payroll members cover them.
    """
    window_start, window_end = window_bounds(list(months))
    totals: defaultdict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        if expense.is_legacy_payroll:
            continue
        for occurred_on in expense_occurrences(
            expense, window_start, window_end, max_iterations=max_iterations
        ):
            totals[month_key(occurred_on)] += expense.amount
    return dict(totals)


@dataclass(frozen=True)
class PayPeriod:
    """Half of a month's payroll: days 1-15 or 16-end, paid on its last day."""

    start: date
    end: date

    @property
    def pay_date(self) -> date:
        return self.end

    def covers(self, member: PayrollMember) -> bool:
        """Whether the member was employed at some point in this period."""
        if member.start_date > self.end:
            return False
        return member.end_date is None or member.end_date >= self.start


def pay_periods(month: ForecastMonth) -> tuple[PayPeriod, PayPeriod]:
    mid = month.mid_month
    return (
        PayPeriod(start=month.start, end=mid),
        PayPeriod(start=mid.replace(day=16), end=month.end),
    )


def accumulate_payroll(
    members: Iterable[PayrollMember],
    months: Sequence[ForecastMonth],
    today: date,
) -> dict[str, Decimal]:
    """Outstanding payroll per month key.

    Each pay date disburses half of ``monthly_pay``. Pay dates before
    ``today`` have already been paid and are left out.
    """
    window_start, window_end = window_bounds(list(months))
    totals: defaultdict[str, Decimal] = defaultdict(Decimal)
    for member in members:
        if not member.is_active:
            continue
        half_pay = member.monthly_pay / PAY_DATES_PER_MONTH
        for month in months:
            for period in pay_periods(month):
                if period.pay_date < today:
                    continue
                if not window_start <= period.pay_date <= window_end:
                    continue
                if not period.covers(member):
                    continue
                totals[month.key] += half_pay
    return dict(totals)
