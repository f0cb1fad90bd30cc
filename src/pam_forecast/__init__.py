"""PAM Forecast - revenue and expense projection for the PAM agency platform."""

__version__ = "0.1.0"

from pam_forecast.config import configure_logging, get_settings
from pam_forecast.engine import ForecastEngine, ForecastResult, compute_forecast
from pam_forecast.models import (
    AgencyLink,
    Diagnostic,
    ForecastScenario,
    ForecastSettings,
    ForecastSnapshot,
    Invoice,
    InvoiceStatus,
    PayrollMember,
    ProjectForecastItem,
    ProspectLink,
    QuotaTarget,
    RecurrenceInterval,
    RecurringExpense,
    Retainer,
)
from pam_forecast.parsing import parse_snapshot
from pam_forecast.scenarios import project_scenario
from pam_forecast.sources import PamAPIClient, load_snapshot

__all__ = [
    # Version
    "__version__",
    # Engine
    "ForecastEngine",
    "ForecastResult",
    "compute_forecast",
    "project_scenario",
    # Records
    "AgencyLink",
    "Diagnostic",
    "ForecastScenario",
    "ForecastSettings",
    "ForecastSnapshot",
    "Invoice",
    "InvoiceStatus",
    "PayrollMember",
    "ProjectForecastItem",
    "ProspectLink",
    "QuotaTarget",
    "RecurrenceInterval",
    "RecurringExpense",
    "Retainer",
    # Sources
    "PamAPIClient",
    "load_snapshot",
    "parse_snapshot",
    # Config
    "get_settings",
    "configure_logging",
]
