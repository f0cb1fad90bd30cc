"""Load forecast snapshots from YAML or JSON files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml  # type: ignore[import-untyped]

from pam_forecast.models import ForecastSnapshot
from pam_forecast.parsing import SnapshotParser

logger = structlog.get_logger(__name__)


class SnapshotError(Exception):
    """A snapshot file could not be read or has the wrong shape."""


def read_snapshot_payload(path: Path) -> dict[str, Any]:
    """Read the raw mapping stored in a snapshot file.

    JSON is a subset of YAML, so both formats go through ``yaml.safe_load``.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"{path}: cannot read snapshot: {exc}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise SnapshotError(f"{path.name}: invalid snapshot syntax: {exc}") from exc

    if not isinstance(data, dict):
        raise SnapshotError(f"{path.name}: snapshot must be a mapping")
    return data


def load_snapshot(path: str | Path) -> ForecastSnapshot:
    """Parse a snapshot file into records.

    Top-level keys: ``invoices``, ``quota_configs``, ``retainers``,
    ``account_revenue``, ``expenses``, ``payroll_members``, ``settings`` and
    ``scenarios``. Missing keys mean empty lists.
    """
    path = Path(path)
    snapshot = SnapshotParser().parse_snapshot(read_snapshot_payload(path))
    logger.info(
        "snapshot_loaded",
        path=str(path),
        invoices=len(snapshot.invoices),
        retainers=len(snapshot.retainers),
        project_items=len(snapshot.project_items),
        diagnostics=len(snapshot.diagnostics),
    )
    return snapshot
