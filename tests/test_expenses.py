"""Tests for recurring expenses and the bi-monthly payroll."""

from datetime import date
from decimal import Decimal

from pam_forecast.expenses import (
    accumulate_expenses,
    accumulate_payroll,
    expense_occurrences,
    pay_periods,
)
from pam_forecast.models import PayrollMember, RecurrenceInterval, RecurringExpense
from pam_forecast.periods import ForecastMonth, month_window


def _member(**overrides) -> PayrollMember:
    fields = {"monthly_pay": Decimal("4000"), "start_date": date(2024, 1, 1), "name": "Dana"}
    fields.update(overrides)
    return PayrollMember(**fields)


class TestRecurringExpenses:
    def test_monthly_expense_every_month(self):
        expenses = [
            RecurringExpense(
                amount=Decimal("120"),
                date=date(2025, 1, 5),
                type="systems",
                is_recurring=True,
                recurrence_interval=RecurrenceInterval.MONTHLY,
            )
        ]

        result = accumulate_expenses(expenses, month_window(3, date(2025, 1, 1)))

        assert result == {
            "2025-01": Decimal("120"),
            "2025-02": Decimal("120"),
            "2025-03": Decimal("120"),
        }

    def test_weekly_expense_sums_occurrences(self):
        expenses = [
            RecurringExpense(
                amount=Decimal("10"),
                date=date(2025, 1, 1),
                is_recurring=True,
                recurrence_interval=RecurrenceInterval.WEEKLY,
            )
        ]

        result = accumulate_expenses(expenses, month_window(1, date(2025, 1, 1)))

        assert result == {"2025-01": Decimal("50")}

    def test_legacy_payroll_expenses_are_skipped(self):
        expenses = [
            RecurringExpense(amount=Decimal("9999"), date=date(2025, 1, 15), type="Payroll")
        ]

        assert accumulate_expenses(expenses, month_window(1, date(2025, 1, 1))) == {}

    def test_one_off_expense(self):
        expense = RecurringExpense(amount=Decimal("75"), date=date(2025, 1, 20))

        assert expense_occurrences(expense, date(2025, 1, 1), date(2025, 1, 31)) == [
            date(2025, 1, 20)
        ]
        assert expense_occurrences(expense, date(2025, 2, 1), date(2025, 2, 28)) == []

    def test_recurring_without_interval_counts_once(self):
        expense = RecurringExpense(amount=Decimal("75"), date=date(2025, 1, 20), is_recurring=True)

        assert accumulate_expenses([expense], month_window(3, date(2025, 1, 1))) == {
            "2025-01": Decimal("75")
        }


def test_pay_periods_split_on_the_15th():
    first, second = pay_periods(ForecastMonth.containing(date(2025, 2, 1)))

    assert (first.start, first.end, first.pay_date) == (
        date(2025, 2, 1),
        date(2025, 2, 15),
        date(2025, 2, 15),
    )
    assert (second.start, second.end, second.pay_date) == (
        date(2025, 2, 16),
        date(2025, 2, 28),
        date(2025, 2, 28),
    )


class TestPayroll:
    def test_started_before_the_15th_gets_both_halves(self):
        today = date(2025, 1, 12)
        members = [_member(start_date=date(2025, 1, 10))]

        result = accumulate_payroll(members, month_window(1, today), today)

        assert result == {"2025-01": Decimal("4000")}

    def test_started_after_the_15th_gets_end_of_month_only(self):
        today = date(2025, 1, 1)
        members = [_member(start_date=date(2025, 1, 20))]

        result = accumulate_payroll(members, month_window(1, today), today)

        assert result == {"2025-01": Decimal("2000")}

    def test_pay_date_on_today_counts(self):
        today = date(2025, 1, 15)

        result = accumulate_payroll([_member()], month_window(1, today), today)

        assert result == {"2025-01": Decimal("4000")}

    def test_past_pay_dates_are_already_paid(self):
        today = date(2025, 1, 16)

        result = accumulate_payroll([_member()], month_window(1, today), today)

        assert result == {"2025-01": Decimal("2000")}

    def test_member_ending_mid_month(self):
        today = date(2025, 1, 1)
        members = [_member(end_date=date(2025, 1, 10))]

        result = accumulate_payroll(members, month_window(2, today), today)

        assert result == {"2025-01": Decimal("2000")}

    def test_inactive_and_departed_members(self):
        today = date(2025, 1, 1)
        members = [_member(is_active=False), _member(end_date=date(2024, 12, 31))]

        assert accumulate_payroll(members, month_window(1, today), today) == {}

    def test_odd_pay_stays_exact(self):
        today = date(2025, 1, 1)
        members = [_member(monthly_pay=Decimal("3333.33"))]

        result = accumulate_payroll(members, month_window(1, today), today)

        assert result == {"2025-01": Decimal("3333.33")}

    def test_every_month_of_window(self):
        today = date(2025, 1, 1)

        result = accumulate_payroll([_member()], month_window(3, today), today)

        assert list(result) == ["2025-01", "2025-02", "2025-03"]
        assert sum(result.values()) == Decimal("12000")
