"""Configuration settings for the PAM revenue forecast."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # PAM API (snapshot collaborator)
    pam_api_url: str = Field(
        default="http://localhost:5000", validation_alias="PAM_API_URL"
    )
    pam_api_token: SecretStr | None = Field(default=None, validation_alias="PAM_API_TOKEN")
    pam_api_timeout: float = Field(default=30.0, validation_alias="PAM_API_TIMEOUT")
    pam_api_max_retries: int = Field(default=3, validation_alias="PAM_API_MAX_RETRIES")

    # Forecast defaults
    default_blended_rate: Decimal = Field(
        default=Decimal("90"), validation_alias="FORECAST_DEFAULT_BLENDED_RATE"
    )
    default_window_months: int = Field(
        default=1, ge=1, validation_alias="FORECAST_WINDOW_MONTHS"
    )
    recurrence_max_iterations: int = Field(
        default=1000, ge=1, validation_alias="FORECAST_RECURRENCE_MAX_ITERATIONS"
    )
    # IANA zone used to resolve "today"; None means the host's local zone
    timezone: str | None = Field(default=None, validation_alias="FORECAST_TIMEZONE")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
