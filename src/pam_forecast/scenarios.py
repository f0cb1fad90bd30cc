"""What-if scenario projections over a one-quarter horizon."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pam_forecast.models import EngagementType, ForecastScenario, NewAccountProjection
from pam_forecast.money import ZERO, format_money, total

WEEKS_PER_QUARTER = Decimal("13")
MONTHS_PER_QUARTER = Decimal("3")


@dataclass(frozen=True)
class ScenarioLine:
    """One contribution to a scenario total."""

    label: str
    kind: str
    amount: Decimal

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "kind": self.kind, "amount": format_money(self.amount)}


@dataclass(frozen=True)
class ScenarioProjection:
    scenario: ForecastScenario
    quota_lines: tuple[ScenarioLine, ...]
    account_lines: tuple[ScenarioLine, ...]

    @property
    def quota_revenue(self) -> Decimal:
        return total(line.amount for line in self.quota_lines)

    @property
    def new_accounts_revenue(self) -> Decimal:
        return total(line.amount for line in self.account_lines)

    @property
    def total_revenue(self) -> Decimal:
        return self.quota_revenue + self.new_accounts_revenue

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.scenario.name,
            "blended_rate": format_money(self.scenario.blended_rate),
            "quota_revenue": format_money(self.quota_revenue),
            "new_accounts_revenue": format_money(self.new_accounts_revenue),
            "total_revenue": format_money(self.total_revenue),
            "lines": [line.to_dict() for line in self.quota_lines + self.account_lines],
        }


def account_revenue(account: NewAccountProjection, blended_rate: Decimal) -> Decimal:
    """Quarterly revenue of a new account.

    Retainers bill their monthly value for three months, hourly accounts their
    weekly hours for thirteen weeks, projects their pre-billed value once.
    """
    if account.engagement_type == EngagementType.RETAINER:
        return account.value * MONTHS_PER_QUARTER
    if account.engagement_type == EngagementType.HOURLY:
        return account.value * blended_rate * WEEKS_PER_QUARTER
    if account.engagement_type == EngagementType.PROJECT:
        return account.value
    return ZERO


def project_scenario(scenario: ForecastScenario) -> ScenarioProjection:
    rate = scenario.blended_rate
    quota_lines = tuple(
        ScenarioLine(
            label=agency_id,
            kind="quota",
            amount=weekly_hours * rate * WEEKS_PER_QUARTER,
        )
        for agency_id, weekly_hours in scenario.agency_quota_changes.items()
    )
    account_lines = tuple(
        ScenarioLine(
            label=account.name,
            kind=account.engagement_type.value,
            amount=account_revenue(account, rate),
        )
        for account in scenario.new_accounts
    )
    return ScenarioProjection(
        scenario=scenario, quota_lines=quota_lines, account_lines=account_lines
    )
