"""Pytest configuration and fixtures."""

import logging
import os
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("PAM_API_TOKEN", "test-token")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings from the environment for every test."""
    from pam_forecast.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop handlers installed by configure_logging during a test."""
    import structlog

    root = logging.getLogger()
    handlers, level = set(root.handlers), root.level
    yield
    structlog.reset_defaults()
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def snapshot_payload():
    """A small but complete snapshot, in the PAM API's camelCase shape.

    Forecasting three months from 2025-01-01 at $90/h gives:
    quota 9000 (Feb is billed for acme), invoices 1500, retainers 9000,
    prospects 2000, recurring expenses 360, payroll 18000.
    """
    return {
        "settings": {"blendedRate": "90"},
        "invoices": [
            {
                "id": "inv-1",
                "agencyId": "acme",
                "amount": "1500.00",
                "status": "pending",
                "date": "2025-02-01",
                "dueDate": "2025-02-28",
            },
            {
                "id": "inv-2",
                "agencyId": "acme",
                "amount": "800.00",
                "status": "received",
                "date": "2024-12-01",
            },
        ],
        "quotaConfigs": [{"id": "q-1", "agencyId": "acme", "monthlyTargetHours": 100}],
        "retainers": [
            {
                "id": "r-1",
                "agencyId": "globex",
                "monthlyAmount": "3000",
                "startDate": "2025-01-01",
            }
        ],
        "accountRevenue": [
            {
                "id": "p-1",
                "prospectName": "Initech",
                "monthlyAmount": "2000",
                "startDate": "2025-03-01",
                "isActive": True,
            }
        ],
        "expenses": [
            {
                "id": "e-1",
                "type": "systems",
                "amount": "120",
                "date": "2025-01-05",
                "isRecurring": True,
                "recurrenceInterval": "monthly",
            },
            {"id": "e-2", "type": "payroll", "amount": "9999", "date": "2025-01-15"},
        ],
        "payrollMembers": [
            {
                "id": "m-1",
                "name": "Dana",
                "monthlyPay": "6000",
                "startDate": "2024-06-01",
                "isActive": True,
            }
        ],
        "scenarios": [
            {
                "id": "s-1",
                "name": "Growth",
                "blendedRate": "100",
                "agencyQuotaChanges": '{"acme": 10}',
                "newAccounts": (
                    '[{"name": "Umbrella", "engagementType": "retainer", "value": 5000}]'
                ),
            }
        ],
    }
