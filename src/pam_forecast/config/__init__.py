"""Configuration module for the PAM revenue forecast."""

from pam_forecast.config.logging import configure_logging
from pam_forecast.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging"]
