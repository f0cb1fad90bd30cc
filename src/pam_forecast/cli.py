"""Command line entry point for running a revenue forecast.

Usage:
    # Forecast the current month from a snapshot file
    pam-forecast --snapshot snapshot.yaml

    # Three-month window from the live PAM API, as JSON
    pam-forecast --api --months 3 --format json

    # Quarterly projection of a saved what-if scenario
    pam-forecast --snapshot snapshot.yaml --scenario "Hire two devs"
"""

import argparse
import asyncio
import json
import sys
from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from pam_forecast.config import configure_logging, get_settings
from pam_forecast.engine import ForecastEngine, ForecastResult
from pam_forecast.models import ForecastSnapshot
from pam_forecast.money import format_money
from pam_forecast.parsing import extract_decimal
from pam_forecast.scenarios import ScenarioProjection, project_scenario
from pam_forecast.sources import PamAPIClient, PamAPIError, SnapshotError, load_snapshot

logger = structlog.get_logger(__name__)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value!r}") from e


def _rate(value: str) -> Decimal:
    rate = extract_decimal(value)
    if rate is None or rate < 0:
        raise argparse.ArgumentTypeError(f"blended rate must be a non-negative number: {value!r}")
    return rate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pam-forecast",
        description="PAM revenue forecast",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --snapshot data.yaml              # Current month only
  %(prog)s --snapshot data.yaml --months 6   # Six-month window
  %(prog)s --api --format json               # Live data, JSON output
        """,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--snapshot",
        metavar="PATH",
        help="YAML or JSON snapshot file with the forecast inputs",
    )
    source.add_argument(
        "--api",
        action="store_true",
        help="Fetch the forecast inputs from the PAM API (PAM_API_URL)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=None,
        help="Months in the window, including the current one (default: settings)",
    )
    parser.add_argument(
        "--today",
        type=_iso_date,
        default=None,
        help="Reference date YYYY-MM-DD (default: today in FORECAST_TIMEZONE)",
    )
    parser.add_argument(
        "--blended-rate",
        type=_rate,
        default=None,
        help="Hourly rate for quota revenue (default: snapshot settings, then config)",
    )
    parser.add_argument(
        "--scenario",
        metavar="NAME",
        default=None,
        help="Print the quarterly projection of a saved scenario instead",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    return parser


def resolve_today(timezone: str | None = None) -> date:
    """Today's date in the configured zone, or the host's local zone."""
    if timezone:
        try:
            return datetime.now(ZoneInfo(timezone)).date()
        except ZoneInfoNotFoundError:
            logger.warning("unknown_timezone", timezone=timezone)
    return date.today()


async def fetch_snapshot_from_api() -> ForecastSnapshot:
    async with PamAPIClient() as client:
        return await client.fetch_snapshot()


def render_text(result: ForecastResult) -> str:
    """Plain-text report: one row per agency-month, then the summary."""
    lines = [
        f"Forecast {result.month_keys[0]} .. {result.month_keys[-1]} "
        f"(today {result.today.isoformat()}, blended rate {format_money(result.blended_rate)})",
        "",
        f"{'agency':<24}{'month':<9}{'quota':>12}{'invoices':>12}"
        f"{'retainers':>12}{'projects':>12}{'total':>12}",
    ]
    for agency_id, months in result.monthly_breakdown.items():
        for key, revenue in months.items():
            lines.append(
                f"{agency_id:<24}{key:<9}{format_money(revenue.quota):>12}"
                f"{format_money(revenue.invoices):>12}{format_money(revenue.retainers):>12}"
                f"{format_money(revenue.projects):>12}{format_money(revenue.total):>12}"
            )

    if result.prospect_monthly_breakdown:
        lines += ["", "Prospects"]
        for name, months in result.prospect_monthly_breakdown.items():
            for key, amount in months.items():
                lines.append(f"  {name:<22}{key:<9}{format_money(amount):>12}")

    lines += ["", "Summary"]
    for label, value in result.summary.to_dict().items():
        lines.append(f"  {label.replace('_', ' '):<26}{value:>14}")

    if result.diagnostics:
        lines += ["", f"Data quality issues ({len(result.diagnostics)})"]
        for diagnostic in result.diagnostics:
            record = f" {diagnostic.record_id}" if diagnostic.record_id else ""
            lines.append(f"  [{diagnostic.source}{record}] {diagnostic.message}")
    return "\n".join(lines)


def render_scenario_text(projection: ScenarioProjection) -> str:
    lines = [
        f"Scenario {projection.scenario.name!r} "
        f"(quarter, blended rate {format_money(projection.scenario.blended_rate)})",
        "",
    ]
    for line in projection.quota_lines + projection.account_lines:
        lines.append(f"  {line.kind:<10}{line.label:<30}{format_money(line.amount):>14}")
    lines += [
        "",
        f"  {'quota revenue':<40}{format_money(projection.quota_revenue):>14}",
        f"  {'new accounts revenue':<40}{format_money(projection.new_accounts_revenue):>14}",
        f"  {'total revenue':<40}{format_money(projection.total_revenue):>14}",
    ]
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    configure_logging()
    args = build_parser().parse_args(argv)
    settings = get_settings()

    try:
        if args.api:
            snapshot = asyncio.run(fetch_snapshot_from_api())
        else:
            snapshot = load_snapshot(args.snapshot)
    except (PamAPIError, SnapshotError) as e:
        logger.error("snapshot_unavailable", error=str(e))
        return 1

    if args.scenario is not None:
        scenario = next((s for s in snapshot.scenarios if s.name == args.scenario), None)
        if scenario is None:
            logger.error(
                "scenario_not_found",
                scenario=args.scenario,
                available=[s.name for s in snapshot.scenarios],
            )
            return 1
        projection = project_scenario(scenario)
        if args.format == "json":
            print(json.dumps(projection.to_dict(), indent=2))
        else:
            print(render_scenario_text(projection))
        return 0

    today = args.today or resolve_today(settings.timezone)
    window_months = args.months if args.months is not None else settings.default_window_months
    result = ForecastEngine().compute(
        snapshot, window_months, today, blended_rate=args.blended_rate
    )

    if args.format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(render_text(result))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
