"""Forecast aggregation: runs every accumulator and merges their output.

The monthly breakdown is the canonical ledger. Every summary total and
per-agency roll-up is read back out of it, so the two can never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from pam_forecast.accumulators import (
    AmountsByOwner,
    accumulate_invoices,
    accumulate_projects,
    accumulate_quota,
    accumulate_retainers,
    pending_invoices_in_window,
)
from pam_forecast.config import get_settings
from pam_forecast.expenses import accumulate_expenses, accumulate_payroll
from pam_forecast.gating import RevenueGate
from pam_forecast.models import Diagnostic, ForecastSnapshot, InvoiceStatus
from pam_forecast.money import ZERO, format_money, total
from pam_forecast.periods import ForecastMonth, clamp_window_months, month_window

logger = structlog.get_logger(__name__)

REVENUE_SOURCES = ("quota", "invoices", "retainers", "projects")


@dataclass(frozen=True)
class MonthlyRevenue:
    """Revenue for one agency-month, split by source."""

    quota: Decimal = ZERO
    invoices: Decimal = ZERO
    retainers: Decimal = ZERO
    projects: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.quota + self.invoices + self.retainers + self.projects

    def to_dict(self) -> dict[str, str]:
        return {source: format_money(getattr(self, source)) for source in REVENUE_SOURCES}


MonthlyBreakdown = dict[str, dict[str, MonthlyRevenue]]


@dataclass(frozen=True)
class SummaryTotals:
    """Roll-up of a forecast window."""

    quota_revenue: Decimal = ZERO
    retainer_revenue: Decimal = ZERO
    project_revenue: Decimal = ZERO
    invoice_revenue: Decimal = ZERO
    prospect_revenue: Decimal = ZERO
    recurring_expenses: Decimal = ZERO
    payroll_expenses: Decimal = ZERO
    historical_revenue: Decimal = ZERO
    historical_invoice_count: int = 0
    pending_invoice_count: int = 0

    @property
    def total_revenue(self) -> Decimal:
        return (
            self.quota_revenue
            + self.retainer_revenue
            + self.project_revenue
            + self.invoice_revenue
            + self.prospect_revenue
        )

    @property
    def total_expenses(self) -> Decimal:
        return self.recurring_expenses + self.payroll_expenses

    @property
    def net_projection(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    def to_dict(self) -> dict[str, Any]:
        return {
            "quota_revenue": format_money(self.quota_revenue),
            "retainer_revenue": format_money(self.retainer_revenue),
            "project_revenue": format_money(self.project_revenue),
            "invoice_revenue": format_money(self.invoice_revenue),
            "prospect_revenue": format_money(self.prospect_revenue),
            "total_revenue": format_money(self.total_revenue),
            "recurring_expenses": format_money(self.recurring_expenses),
            "payroll_expenses": format_money(self.payroll_expenses),
            "total_expenses": format_money(self.total_expenses),
            "net_projection": format_money(self.net_projection),
            "historical_revenue": format_money(self.historical_revenue),
            "historical_invoice_count": self.historical_invoice_count,
            "pending_invoice_count": self.pending_invoice_count,
        }


def merge_breakdown(
    quota: AmountsByOwner,
    invoices: AmountsByOwner,
    retainers: AmountsByOwner,
    projects: AmountsByOwner,
) -> MonthlyBreakdown:
    """Merge the per-source maps into ``{agency: {month: MonthlyRevenue}}``."""
    by_source = dict(zip(REVENUE_SOURCES, (quota, invoices, retainers, projects), strict=True))
    cells: dict[str, dict[str, dict[str, Decimal]]] = {}
    for source, amounts in by_source.items():
        for agency_id, months in amounts.items():
            for key, amount in months.items():
                cell = cells.setdefault(agency_id, {}).setdefault(key, {})
                cell[source] = cell.get(source, ZERO) + amount

    return {
        agency_id: {key: MonthlyRevenue(**cell) for key, cell in sorted(months.items())}
        for agency_id, months in sorted(cells.items())
    }


def source_total(breakdown: MonthlyBreakdown, source: str) -> Decimal:
    """Sum one revenue source over every agency and month."""
    return total(
        getattr(revenue, source) for months in breakdown.values() for revenue in months.values()
    )


def totals_by_agency(breakdown: MonthlyBreakdown, source: str) -> dict[str, Decimal]:
    """Per-agency totals for one source; agencies with nothing are omitted."""
    result: dict[str, Decimal] = {}
    for agency_id, months in breakdown.items():
        amount = total(getattr(revenue, source) for revenue in months.values())
        if amount:
            result[agency_id] = amount
    return result


def totals_by_prospect(prospects: AmountsByOwner) -> dict[str, Decimal]:
    return {name: total(months.values()) for name, months in prospects.items()}


@dataclass(frozen=True)
class ForecastResult:
    """Everything a forecast request returns."""

    today: date
    months: tuple[ForecastMonth, ...]
    blended_rate: Decimal
    monthly_breakdown: MonthlyBreakdown
    prospect_monthly_breakdown: dict[str, dict[str, Decimal]]
    expenses_by_month: dict[str, Decimal]
    payroll_by_month: dict[str, Decimal]
    summary: SummaryTotals
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def month_keys(self) -> list[str]:
        return [month.key for month in self.months]

    @property
    def quota_by_agency(self) -> dict[str, Decimal]:
        return totals_by_agency(self.monthly_breakdown, "quota")

    @property
    def invoice_by_agency(self) -> dict[str, Decimal]:
        return totals_by_agency(self.monthly_breakdown, "invoices")

    @property
    def retainer_by_agency(self) -> dict[str, Decimal]:
        return totals_by_agency(self.monthly_breakdown, "retainers")

    @property
    def project_by_agency(self) -> dict[str, Decimal]:
        return totals_by_agency(self.monthly_breakdown, "projects")

    @property
    def project_by_prospect(self) -> dict[str, Decimal]:
        return totals_by_prospect(self.prospect_monthly_breakdown)

    def to_dict(self) -> dict[str, Any]:
        """Render with every amount rounded to cents."""

        def _money_map(amounts: dict[str, Decimal]) -> dict[str, str]:
            return {key: format_money(amount) for key, amount in amounts.items()}

        return {
            "today": self.today.isoformat(),
            "months": self.month_keys,
            "blended_rate": format_money(self.blended_rate),
            "monthly_breakdown": {
                agency_id: {key: revenue.to_dict() for key, revenue in months.items()}
                for agency_id, months in self.monthly_breakdown.items()
            },
            "prospect_monthly_breakdown": {
                name: _money_map(months)
                for name, months in self.prospect_monthly_breakdown.items()
            },
            "expenses_by_month": _money_map(self.expenses_by_month),
            "payroll_by_month": _money_map(self.payroll_by_month),
            "summary": self.summary.to_dict(),
            "quota_by_agency": _money_map(self.quota_by_agency),
            "invoice_by_agency": _money_map(self.invoice_by_agency),
            "retainer_by_agency": _money_map(self.retainer_by_agency),
            "project_by_agency": _money_map(self.project_by_agency),
            "project_by_prospect": _money_map(self.project_by_prospect),
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }


class ForecastEngine:
    """Projects revenue and expense over a rolling month window.

    The engine is stateless between calls: each :meth:`compute` reads only
    the snapshot and arguments it is given.
    """

    def __init__(
        self,
        default_blended_rate: Decimal | None = None,
        max_recurrence_iterations: int | None = None,
    ):
        settings = get_settings()
        self._default_blended_rate = (
            default_blended_rate
            if default_blended_rate is not None
            else settings.default_blended_rate
        )
        self._max_recurrence_iterations = (
            max_recurrence_iterations or settings.recurrence_max_iterations
        )
        self._logger = logger.bind(component="forecast_engine")

    def resolve_blended_rate(
        self, snapshot: ForecastSnapshot, blended_rate: Decimal | None = None
    ) -> Decimal:
        """Explicit rate, then the snapshot's settings, then the configured default."""
        if blended_rate is not None:
            return blended_rate
        if snapshot.settings is not None:
            return snapshot.settings.blended_rate
        return self._default_blended_rate

    def compute(
        self,
        snapshot: ForecastSnapshot,
        window_months: int,
        today: date,
        blended_rate: Decimal | None = None,
    ) -> ForecastResult:
        months = month_window(clamp_window_months(window_months), today)
        rate = self.resolve_blended_rate(snapshot, blended_rate)
        gate = RevenueGate.from_invoices(snapshot.invoices)

        project_by_agency, project_by_prospect = accumulate_projects(
            snapshot.project_items, months, gate
        )
        breakdown = merge_breakdown(
            quota=accumulate_quota(snapshot.quota_targets, months, gate, rate),
            invoices=accumulate_invoices(snapshot.invoices, months),
            retainers=accumulate_retainers(snapshot.retainers, months, gate),
            projects=project_by_agency,
        )
        prospect_breakdown = {
            name: dict(sorted(amounts.items()))
            for name, amounts in sorted(project_by_prospect.items())
        }
        expenses_by_month = accumulate_expenses(
            snapshot.expenses, months, max_iterations=self._max_recurrence_iterations
        )
        payroll_by_month = accumulate_payroll(snapshot.payroll_members, months, today)

        received = [inv for inv in snapshot.invoices if inv.status == InvoiceStatus.RECEIVED]
        summary = SummaryTotals(
            quota_revenue=source_total(breakdown, "quota"),
            retainer_revenue=source_total(breakdown, "retainers"),
            project_revenue=source_total(breakdown, "projects"),
            invoice_revenue=source_total(breakdown, "invoices"),
            prospect_revenue=total(totals_by_prospect(prospect_breakdown).values()),
            recurring_expenses=total(expenses_by_month.values()),
            payroll_expenses=total(payroll_by_month.values()),
            historical_revenue=total(inv.amount for inv in received),
            historical_invoice_count=len(received),
            pending_invoice_count=len(pending_invoices_in_window(snapshot.invoices, months)),
        )

        result = ForecastResult(
            today=today,
            months=tuple(months),
            blended_rate=rate,
            monthly_breakdown=breakdown,
            prospect_monthly_breakdown=prospect_breakdown,
            expenses_by_month=dict(sorted(expenses_by_month.items())),
            payroll_by_month=dict(sorted(payroll_by_month.items())),
            summary=summary,
            diagnostics=snapshot.diagnostics,
        )

        self._logger.info(
            "forecast_computed",
            months=result.month_keys,
            agencies=len(breakdown),
            prospects=len(prospect_breakdown),
            total_revenue=format_money(summary.total_revenue),
            total_expenses=format_money(summary.total_expenses),
            diagnostics=len(snapshot.diagnostics),
        )
        return result


def compute_forecast(
    snapshot: ForecastSnapshot,
    window_months: int,
    today: date,
    blended_rate: Decimal | None = None,
) -> ForecastResult:
    """Run a forecast with a default-configured engine."""
    return ForecastEngine().compute(snapshot, window_months, today, blended_rate)
