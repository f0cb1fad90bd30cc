"""Immutable records the forecast engine reads from a snapshot.

Every record is a frozen dataclass. The engine never mutates them; parsers in
:mod:`pam_forecast.parsing` build them from collaborator payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

UNASSIGNED_AGENCY = "unassigned"
DEFAULT_BLENDED_RATE = Decimal("90")


def normalize_agency_id(agency_id: str | None) -> str:
    """Collapse a missing or blank agency id into the unassigned bucket."""
    if agency_id is None:
        return UNASSIGNED_AGENCY
    agency_id = str(agency_id).strip()
    return agency_id or UNASSIGNED_AGENCY


class InvoiceStatus(str, Enum):
    """Collection status of an invoice."""

    PENDING = "pending"
    RECEIVED = "received"


class RecurrenceInterval(str, Enum):
    """Supported recurring expense intervals."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class EngagementType(str, Enum):
    """How a hypothetical new account would be billed in a scenario."""

    RETAINER = "retainer"
    HOURLY = "hourly"
    PROJECT = "project"


@dataclass(frozen=True)
class Invoice:
    """An issued invoice.

    ``date`` is the billing period. ``forecast_month``, ``realization_date``
    and ``due_date`` say when the cash is expected; see
    :func:`pam_forecast.gating.revenue_date`.
    """

    amount: Decimal
    status: InvoiceStatus
    date: date
    agency_id: str = UNASSIGNED_AGENCY
    due_date: date | None = None
    realization_date: date | None = None
    forecast_month: date | None = None
    id: str | None = None
    description: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == InvoiceStatus.PENDING


@dataclass(frozen=True)
class QuotaTarget:
    """Monthly billable-hours target for one agency."""

    agency_id: str
    monthly_target_hours: Decimal
    no_quota: bool = False
    id: str | None = None


@dataclass(frozen=True)
class Retainer:
    """Fixed monthly retainer revenue from an agency."""

    monthly_amount: Decimal
    start_date: date
    end_date: date | None = None
    agency_id: str = UNASSIGNED_AGENCY
    is_active: bool = True
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class AgencyLink:
    """Project forecast owned by an existing agency."""

    agency_id: str


@dataclass(frozen=True)
class ProspectLink:
    """Project forecast owned by a not-yet-contracted prospect."""

    prospect_name: str


ForecastOwner = AgencyLink | ProspectLink


@dataclass(frozen=True)
class ProjectForecastItem:
    """Projected monthly fixed-fee revenue for an agency or a prospect."""

    owner: ForecastOwner
    monthly_amount: Decimal
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    id: str | None = None
    description: str | None = None

    @property
    def is_prospect(self) -> bool:
        return isinstance(self.owner, ProspectLink)


@dataclass(frozen=True)
class RecurringExpense:
    """An expense, either a one-off or a recurring series seeded at ``date``.

    ``recurrence_interval`` is None when the stored interval is missing or
    unrecognised; such a series never repeats.
    """

    amount: Decimal
    date: date
    type: str = "other"
    is_recurring: bool = False
    recurrence_interval: RecurrenceInterval | None = None
    recurrence_end_date: date | None = None
    id: str | None = None
    description: str | None = None

    @property
    def is_legacy_payroll(self) -> bool:
        # Payroll used to be entered as expenses; payroll members replace it
        return self.type.strip().lower() == "payroll"


@dataclass(frozen=True)
class PayrollMember:
    """Salaried team member paid on the 15th and the last day of each month."""

    monthly_pay: Decimal
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    name: str = ""
    id: str | None = None


@dataclass(frozen=True)
class ForecastSettings:
    """Global forecast settings."""

    blended_rate: Decimal = DEFAULT_BLENDED_RATE


@dataclass(frozen=True)
class NewAccountProjection:
    """A hypothetical account in a what-if scenario."""

    name: str
    engagement_type: EngagementType
    value: Decimal


@dataclass(frozen=True)
class ForecastScenario:
    """What-if plan: quota changes per agency plus new accounts."""

    name: str
    blended_rate: Decimal = DEFAULT_BLENDED_RATE
    # agency id -> weekly hours
    agency_quota_changes: dict[str, Decimal] = field(default_factory=dict)
    new_accounts: tuple[NewAccountProjection, ...] = ()
    id: str | None = None


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal data-quality finding reported alongside a forecast."""

    source: str
    message: str
    record_id: str | None = None
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "record_id": self.record_id,
            "field": self.field,
            "message": self.message,
        }


@dataclass(frozen=True)
class ForecastSnapshot:
    """Everything the engine reads for one forecast request."""

    invoices: tuple[Invoice, ...] = ()
    quota_targets: tuple[QuotaTarget, ...] = ()
    retainers: tuple[Retainer, ...] = ()
    project_items: tuple[ProjectForecastItem, ...] = ()
    expenses: tuple[RecurringExpense, ...] = ()
    payroll_members: tuple[PayrollMember, ...] = ()
    settings: ForecastSettings | None = None
    scenarios: tuple[ForecastScenario, ...] = ()
    # Issues found while parsing collaborator payloads
    diagnostics: tuple[Diagnostic, ...] = ()
