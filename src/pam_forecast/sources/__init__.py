"""Snapshot sources: PAM REST API and snapshot files."""

from pam_forecast.sources.pam_api import (
    AuthenticationError,
    PamAPIClient,
    PamAPIError,
    RateLimitError,
)
from pam_forecast.sources.snapshot_file import SnapshotError, load_snapshot

__all__ = [
    "PamAPIClient",
    "PamAPIError",
    "AuthenticationError",
    "RateLimitError",
    "SnapshotError",
    "load_snapshot",
]
