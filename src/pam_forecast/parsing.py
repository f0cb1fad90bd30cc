"""Parsing of collaborator payloads into forecast records.

Payloads come from the PAM REST API (camelCase keys) or from snapshot files
(either camelCase or snake_case). Parsing never raises on bad data: a
malformed value degrades to a safe default, or the single record is skipped,
and a :class:`~pam_forecast.models.Diagnostic` is recorded.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any

import structlog

from pam_forecast.models import (
    AgencyLink,
    Diagnostic,
    EngagementType,
    ForecastOwner,
    ForecastScenario,
    ForecastSettings,
    ForecastSnapshot,
    Invoice,
    InvoiceStatus,
    NewAccountProjection,
    PayrollMember,
    ProjectForecastItem,
    ProspectLink,
    QuotaTarget,
    RecurrenceInterval,
    RecurringExpense,
    Retainer,
    normalize_agency_id,
)
from pam_forecast.money import ZERO

logger = structlog.get_logger(__name__)

_MONTH_ONLY = re.compile(r"^\d{4}-\d{2}$")
_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
_FALSE_STRINGS = {"false", "0", "no", "n", "off", ""}


def _camel_to_snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present value among keys and their snake_case forms."""
    for key in keys:
        for candidate in (key, _camel_to_snake(key)):
            if candidate in raw and raw[candidate] is not None:
                return raw[candidate]
    return None


def extract_decimal(value: Any) -> Decimal | None:
    """Parse a finite decimal, or None when the value is not numeric.

    Magnitudes too large to round to cents within the decimal context are
    rejected as well.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (TypeError, ValueError, InvalidOperation):
        return None
    if not parsed.is_finite():
        return None
    if parsed and parsed.adjusted() >= getcontext().prec - 2:
        return None
    return parsed


def parse_date(value: Any) -> date | None:
    """Parse a calendar date without shifting it through UTC.

    Accepts ``date``/``datetime`` objects, ISO strings (only the date part of
    a timestamp is used) and bare ``YYYY-MM`` month strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if _MONTH_ONLY.match(text):
        text = f"{text}-01"
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return default


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class SnapshotParser:
    """Builds snapshot records while collecting data-quality diagnostics."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []

    def _flag(
        self,
        source: str,
        message: str,
        record_id: str | None = None,
        field: str | None = None,
    ) -> None:
        diagnostic = Diagnostic(source=source, message=message, record_id=record_id, field=field)
        self.diagnostics.append(diagnostic)
        logger.warning("data_quality_issue", **diagnostic.to_dict())

    def _amount(
        self, raw: Mapping[str, Any], source: str, record_id: str | None, *keys: str
    ) -> Decimal:
        value = _pick(raw, *keys)
        parsed = extract_decimal(value)
        if parsed is None:
            self._flag(source, f"unusable amount {value!r} treated as 0", record_id, keys[0])
            return ZERO
        return parsed

    def _required_date(
        self, raw: Mapping[str, Any], source: str, record_id: str | None, key: str
    ) -> date | None:
        value = _pick(raw, key)
        parsed = parse_date(value)
        if parsed is None:
            self._flag(source, f"missing or invalid date {value!r}; record skipped", record_id, key)
        return parsed

    def _optional_date(
        self, raw: Mapping[str, Any], source: str, record_id: str | None, key: str
    ) -> date | None:
        value = _pick(raw, key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        parsed = parse_date(value)
        if parsed is None:
            self._flag(source, f"invalid date {value!r} treated as absent", record_id, key)
        return parsed

    # === Records ===

    def parse_invoice(self, raw: Mapping[str, Any]) -> Invoice | None:
        record_id = _optional_str(_pick(raw, "id"))
        status_raw = str(_pick(raw, "status") or InvoiceStatus.PENDING.value).strip().lower()
        try:
            status = InvoiceStatus(status_raw)
        except ValueError:
            self._flag(
                "invoice", f"unknown status {status_raw!r}; record skipped", record_id, "status"
            )
            return None

        billed_on = self._required_date(raw, "invoice", record_id, "date")
        if billed_on is None:
            return None

        return Invoice(
            id=record_id,
            agency_id=normalize_agency_id(_pick(raw, "agencyId")),
            amount=self._amount(raw, "invoice", record_id, "amount"),
            status=status,
            date=billed_on,
            due_date=self._optional_date(raw, "invoice", record_id, "dueDate"),
            realization_date=self._optional_date(raw, "invoice", record_id, "realizationDate"),
            forecast_month=self._optional_date(raw, "invoice", record_id, "forecastMonth"),
            description=_optional_str(_pick(raw, "description")),
        )

    def parse_quota_target(self, raw: Mapping[str, Any]) -> QuotaTarget | None:
        record_id = _optional_str(_pick(raw, "id"))
        agency_id = _optional_str(_pick(raw, "agencyId"))
        if agency_id is None:
            self._flag("quota", "quota target without agency ignored", record_id, "agencyId")
            return None
        return QuotaTarget(
            id=record_id,
            agency_id=agency_id,
            monthly_target_hours=self._amount(
                raw, "quota", record_id, "monthlyTargetHours", "monthlyTarget"
            ),
            no_quota=parse_bool(_pick(raw, "noQuota"), default=False),
        )

    def parse_retainer(self, raw: Mapping[str, Any]) -> Retainer | None:
        record_id = _optional_str(_pick(raw, "id"))
        start_date = self._required_date(raw, "retainer", record_id, "startDate")
        if start_date is None:
            return None
        return Retainer(
            id=record_id,
            agency_id=normalize_agency_id(_pick(raw, "agencyId")),
            monthly_amount=self._amount(raw, "retainer", record_id, "monthlyAmount"),
            start_date=start_date,
            end_date=self._optional_date(raw, "retainer", record_id, "endDate"),
            is_active=parse_bool(_pick(raw, "isActive"), default=True),
            description=_optional_str(_pick(raw, "description")),
        )

    def _project_owner(self, raw: Mapping[str, Any], record_id: str | None) -> ForecastOwner:
        agency_id = _optional_str(_pick(raw, "agencyId"))
        prospect_name = _optional_str(_pick(raw, "prospectName"))
        if agency_id and prospect_name:
            self._flag(
                "project",
                f"both agency and prospect {prospect_name!r} set; agency wins",
                record_id,
                "prospectName",
            )
            return AgencyLink(agency_id)
        if prospect_name:
            return ProspectLink(prospect_name)
        if agency_id is None:
            self._flag(
                "project",
                "neither agency nor prospect set; counted as unassigned",
                record_id,
                "agencyId",
            )
        return AgencyLink(normalize_agency_id(agency_id))

    def parse_project_item(self, raw: Mapping[str, Any]) -> ProjectForecastItem | None:
        record_id = _optional_str(_pick(raw, "id"))
        start_date = self._required_date(raw, "project", record_id, "startDate")
        if start_date is None:
            return None
        return ProjectForecastItem(
            id=record_id,
            owner=self._project_owner(raw, record_id),
            monthly_amount=self._amount(raw, "project", record_id, "monthlyAmount"),
            start_date=start_date,
            end_date=self._optional_date(raw, "project", record_id, "endDate"),
            is_active=parse_bool(_pick(raw, "isActive"), default=True),
            description=_optional_str(_pick(raw, "description")),
        )

    def parse_expense(self, raw: Mapping[str, Any]) -> RecurringExpense | None:
        record_id = _optional_str(_pick(raw, "id"))
        seed = self._required_date(raw, "expense", record_id, "date")
        if seed is None:
            return None

        is_recurring = parse_bool(_pick(raw, "isRecurring"), default=False)
        interval: RecurrenceInterval | None = None
        interval_raw = _optional_str(_pick(raw, "recurrenceInterval"))
        if interval_raw is not None:
            try:
                interval = RecurrenceInterval(interval_raw.lower())
            except ValueError:
                interval = None
        if is_recurring and interval is None:
            self._flag(
                "expense",
                f"recurring expense with unusable interval {interval_raw!r}; counted once",
                record_id,
                "recurrenceInterval",
            )

        return RecurringExpense(
            id=record_id,
            type=_optional_str(_pick(raw, "type")) or "other",
            amount=self._amount(raw, "expense", record_id, "amount"),
            date=seed,
            is_recurring=is_recurring,
            recurrence_interval=interval,
            recurrence_end_date=self._optional_date(
                raw, "expense", record_id, "recurrenceEndDate"
            ),
            description=_optional_str(_pick(raw, "description")),
        )

    def parse_payroll_member(self, raw: Mapping[str, Any]) -> PayrollMember | None:
        record_id = _optional_str(_pick(raw, "id"))
        start_date = self._required_date(raw, "payroll", record_id, "startDate")
        if start_date is None:
            return None
        return PayrollMember(
            id=record_id,
            name=_optional_str(_pick(raw, "name")) or "",
            monthly_pay=self._amount(raw, "payroll", record_id, "monthlyPay"),
            start_date=start_date,
            end_date=self._optional_date(raw, "payroll", record_id, "endDate"),
            is_active=parse_bool(_pick(raw, "isActive"), default=True),
        )

    def parse_settings(self, raw: Mapping[str, Any] | None) -> ForecastSettings | None:
        if not raw:
            return None
        value = _pick(raw, "blendedRate")
        rate = extract_decimal(value)
        if rate is None:
            self._flag(
                "settings", f"invalid blended rate {value!r}; default used", None, "blendedRate"
            )
            return None
        return ForecastSettings(blended_rate=rate)

    # === Scenarios ===

    @staticmethod
    def _maybe_json(value: Any) -> Any:
        # Scenario sub-structures are stored as JSON text by the platform
        if isinstance(value, str):
            if not value.strip():
                return None
            return json.loads(value)
        return value

    def parse_scenario(self, raw: Mapping[str, Any]) -> ForecastScenario | None:
        record_id = _optional_str(_pick(raw, "id"))
        name = _optional_str(_pick(raw, "name"))
        if name is None:
            self._flag("scenario", "scenario without name skipped", record_id, "name")
            return None

        rate_raw = _pick(raw, "blendedRate")
        blended_rate = extract_decimal(rate_raw)
        if blended_rate is None:
            if rate_raw is not None:
                self._flag(
                    "scenario",
                    f"invalid blended rate {rate_raw!r}; default used",
                    record_id,
                    "blendedRate",
                )
            blended_rate = ForecastSettings().blended_rate

        try:
            quota_raw = self._maybe_json(_pick(raw, "agencyQuotaChanges")) or {}
            accounts_raw = self._maybe_json(_pick(raw, "newAccounts")) or []
        except json.JSONDecodeError as exc:
            self._flag("scenario", f"unreadable scenario payload: {exc}", record_id)
            return None

        quota_changes: dict[str, Decimal] = {}
        if isinstance(quota_raw, Mapping):
            for agency_id, hours in quota_raw.items():
                parsed = extract_decimal(hours)
                if parsed is None:
                    if str(hours).strip():
                        self._flag(
                            "scenario",
                            f"non-numeric hours {hours!r} for {agency_id} treated as 0",
                            record_id,
                            "agencyQuotaChanges",
                        )
                    parsed = ZERO
                quota_changes[str(agency_id)] = parsed

        accounts: list[NewAccountProjection] = []
        if isinstance(accounts_raw, list):
            for entry in accounts_raw:
                account = self._parse_new_account(entry, record_id)
                if account is not None:
                    accounts.append(account)

        return ForecastScenario(
            id=record_id,
            name=name,
            blended_rate=blended_rate,
            agency_quota_changes=quota_changes,
            new_accounts=tuple(accounts),
        )

    def _parse_new_account(
        self, entry: Any, record_id: str | None
    ) -> NewAccountProjection | None:
        if not isinstance(entry, Mapping):
            self._flag(
                "scenario", f"new account {entry!r} is not a mapping", record_id, "newAccounts"
            )
            return None
        engagement_raw = str(_pick(entry, "engagementType") or "").strip().lower()
        try:
            engagement = EngagementType(engagement_raw)
        except ValueError:
            self._flag(
                "scenario", f"unknown engagement type {engagement_raw!r}", record_id, "newAccounts"
            )
            return None
        return NewAccountProjection(
            name=_optional_str(_pick(entry, "name")) or "",
            engagement_type=engagement,
            value=self._amount(entry, "scenario", record_id, "value"),
        )

    # === Snapshot ===

    def _parse_many(self, items: Any, parse: Any, label: str) -> tuple[Any, ...]:
        if items is None:
            return ()
        if not isinstance(items, list):
            self._flag(label, f"expected a list, got {type(items).__name__}")
            return ()
        parsed = []
        for item in items:
            if not isinstance(item, Mapping):
                self._flag(label, f"record {item!r} is not a mapping; skipped")
                continue
            record = parse(item)
            if record is not None:
                parsed.append(record)
        return tuple(parsed)

    def parse_snapshot(self, payload: Mapping[str, Any]) -> ForecastSnapshot:
        """Parse a full snapshot payload.

        Recognised keys: ``invoices``, ``quota_configs``, ``retainers``,
        ``account_revenue``, ``expenses``, ``payroll_members``, ``settings``
        and ``scenarios`` (camelCase spellings are accepted too).
        """
        settings_raw = _pick(payload, "settings")
        return ForecastSnapshot(
            invoices=self._parse_many(_pick(payload, "invoices"), self.parse_invoice, "invoice"),
            quota_targets=self._parse_many(
                _pick(payload, "quotaConfigs", "quotaTargets"), self.parse_quota_target, "quota"
            ),
            retainers=self._parse_many(
                _pick(payload, "retainers"), self.parse_retainer, "retainer"
            ),
            project_items=self._parse_many(
                _pick(payload, "accountRevenue", "projectItems"), self.parse_project_item, "project"
            ),
            expenses=self._parse_many(_pick(payload, "expenses"), self.parse_expense, "expense"),
            payroll_members=self._parse_many(
                _pick(payload, "payrollMembers"), self.parse_payroll_member, "payroll"
            ),
            settings=self.parse_settings(
                settings_raw if isinstance(settings_raw, Mapping) else None
            ),
            scenarios=self._parse_many(
                _pick(payload, "scenarios"), self.parse_scenario, "scenario"
            ),
            diagnostics=tuple(self.diagnostics),
        )


def parse_snapshot(payload: Mapping[str, Any]) -> ForecastSnapshot:
    """Parse a snapshot payload with a fresh parser."""
    return SnapshotParser().parse_snapshot(payload)

