"""Tests for configuration settings."""

from decimal import Decimal

import pytest
from pydantic import ValidationError


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    from pam_forecast.config.settings import get_settings

    settings = get_settings()

    assert settings.pam_api_token.get_secret_value() == "test-token"


def test_settings_has_defaults():
    """Test that settings has sensible defaults."""
    from pam_forecast.config.settings import get_settings

    settings = get_settings()

    assert settings.pam_api_url == "http://localhost:5000"
    assert settings.pam_api_timeout == 30.0
    assert settings.pam_api_max_retries == 3
    assert settings.default_blended_rate == Decimal("90")
    assert settings.default_window_months == 1
    assert settings.recurrence_max_iterations == 1000
    assert settings.timezone is None


def test_settings_env_overrides(monkeypatch):
    from pam_forecast.config.settings import get_settings

    monkeypatch.setenv("FORECAST_WINDOW_MONTHS", "6")
    monkeypatch.setenv("FORECAST_DEFAULT_BLENDED_RATE", "112.50")
    monkeypatch.setenv("LOG_FORMAT", "json")

    settings = get_settings()

    assert settings.default_window_months == 6
    assert settings.default_blended_rate == Decimal("112.50")
    assert settings.log_format == "json"


def test_window_months_must_be_positive(monkeypatch):
    from pam_forecast.config.settings import Settings

    monkeypatch.setenv("FORECAST_WINDOW_MONTHS", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_settings_are_cached():
    """Test that get_settings returns cached instance."""
    from pam_forecast.config.settings import get_settings

    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
