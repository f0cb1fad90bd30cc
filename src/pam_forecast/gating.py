"""Invoice timing rules and the revenue gate.

Two dates matter for an invoice:

* the *revenue date*, when the cash is expected, which decides where the
  invoice's own amount lands;
* the *billing date* (``Invoice.date``), the period of work being billed,
  which decides which agency-months are already captured and must not also
  receive quota, retainer or project projections.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from pam_forecast.models import ForecastOwner, Invoice, ProspectLink
from pam_forecast.periods import month_key

AgencyMonth = tuple[str, str]


def revenue_date(invoice: Invoice) -> date:
    """When the invoice's revenue is expected to land."""
    return (
        invoice.forecast_month
        or invoice.realization_date
        or invoice.due_date
        or invoice.date
    )


def billing_date(invoice: Invoice) -> date:
    """The billing period the invoice covers."""
    return invoice.date


def revenue_month(invoice: Invoice) -> str:
    return month_key(revenue_date(invoice))


def billing_month(invoice: Invoice) -> str:
    return month_key(billing_date(invoice))


def build_invoiced_months(invoices: Iterable[Invoice]) -> set[AgencyMonth]:
    """Agency-months that receive invoice revenue, keyed by revenue month."""
    return {(inv.agency_id, revenue_month(inv)) for inv in invoices}


def build_billing_blocked_months(invoices: Iterable[Invoice]) -> set[AgencyMonth]:
    """Agency-months already billed, keyed by billing month, any status."""
    return {(inv.agency_id, billing_month(inv)) for inv in invoices}


@dataclass(frozen=True)
class RevenueGate:
    """Decides whether projected revenue may be counted for an agency-month."""

    blocked: frozenset[AgencyMonth] = field(default_factory=frozenset)

    @classmethod
    def from_invoices(cls, invoices: Iterable[Invoice]) -> RevenueGate:
        return cls(blocked=frozenset(build_billing_blocked_months(invoices)))

    def is_blocked(self, agency_id: str, key: str) -> bool:
        return (agency_id, key) in self.blocked

    def allows(self, owner: ForecastOwner, key: str) -> bool:
        """Prospects have no invoice history and always pass."""
        if isinstance(owner, ProspectLink):
            return True
        return not self.is_blocked(owner.agency_id, key)
