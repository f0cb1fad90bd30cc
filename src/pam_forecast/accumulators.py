"""Per-source revenue accumulators.

Each accumulator folds one kind of record into ``{owner: {month_key: amount}}``
over a month window. They share no state and can run in any order.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal

from pam_forecast.gating import RevenueGate, revenue_date, revenue_month
from pam_forecast.models import (
    AgencyLink,
    Invoice,
    ProjectForecastItem,
    ProspectLink,
    QuotaTarget,
    Retainer,
)
from pam_forecast.money import ZERO
from pam_forecast.periods import ForecastMonth, is_active_in_month, window_bounds

MonthAmounts = dict[str, Decimal]
AmountsByOwner = dict[str, MonthAmounts]


def _new_amounts() -> defaultdict[str, defaultdict[str, Decimal]]:
    return defaultdict(lambda: defaultdict(Decimal))


def _freeze(amounts: defaultdict[str, defaultdict[str, Decimal]]) -> AmountsByOwner:
    return {owner: dict(months) for owner, months in amounts.items()}


def accumulate_quota(
    targets: Iterable[QuotaTarget],
    months: Sequence[ForecastMonth],
    gate: RevenueGate,
    blended_rate: Decimal,
) -> AmountsByOwner:
    """Quota hours priced at the blended rate.

    The first month of the window is never projected: whatever is billed this
    month shows up as real invoices.
    """
    totals = _new_amounts()
    for target in targets:
        if target.no_quota or target.monthly_target_hours <= 0:
            continue
        monthly_revenue = target.monthly_target_hours * blended_rate
        for month in months[1:]:
            if gate.is_blocked(target.agency_id, month.key):
                continue
            totals[target.agency_id][month.key] += monthly_revenue
    return _freeze(totals)


def accumulate_retainers(
    retainers: Iterable[Retainer],
    months: Sequence[ForecastMonth],
    gate: RevenueGate,
) -> AmountsByOwner:
    totals = _new_amounts()
    for retainer in retainers:
        for month in months:
            if not is_active_in_month(
                retainer.start_date, retainer.end_date, month.start, month.end
            ):
                continue
            if gate.is_blocked(retainer.agency_id, month.key):
                continue
            totals[retainer.agency_id][month.key] += retainer.monthly_amount
    return _freeze(totals)


def accumulate_projects(
    items: Iterable[ProjectForecastItem],
    months: Sequence[ForecastMonth],
    gate: RevenueGate,
) -> tuple[AmountsByOwner, AmountsByOwner]:
    """Project forecasts split into agency-linked and prospect-linked maps.

    A gated agency month keeps a zero entry so the suppression stays visible
    in the breakdown; the month's project revenue is dropped entirely rather
    than reduced by the invoiced amount.
    """
    by_agency = _new_amounts()
    by_prospect = _new_amounts()
    for item in items:
        if not item.is_active or item.monthly_amount <= 0:
            continue
        for month in months:
            if not is_active_in_month(item.start_date, item.end_date, month.start, month.end):
                continue
            amount = item.monthly_amount if gate.allows(item.owner, month.key) else ZERO
            if isinstance(item.owner, ProspectLink):
                by_prospect[item.owner.prospect_name][month.key] += amount
            elif isinstance(item.owner, AgencyLink):
                by_agency[item.owner.agency_id][month.key] += amount
    return _freeze(by_agency), _freeze(by_prospect)


def pending_invoices_in_window(
    invoices: Iterable[Invoice],
    months: Sequence[ForecastMonth],
) -> list[Invoice]:
    """Pending invoices whose revenue date falls inside the window."""
    start, end = window_bounds(list(months))
    return [inv for inv in invoices if inv.is_pending and start <= revenue_date(inv) <= end]


def accumulate_invoices(
    invoices: Iterable[Invoice],
    months: Sequence[ForecastMonth],
) -> AmountsByOwner:
    totals = _new_amounts()
    for invoice in pending_invoices_in_window(invoices, months):
        totals[invoice.agency_id][revenue_month(invoice)] += invoice.amount
    return _freeze(totals)
