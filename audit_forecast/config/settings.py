"""
Configuration Management for Audit Forecast

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
risk policy constants. The thresholds are tuned by accountants, not derived
from a model, so they must be adjustable without a code change.
"""

from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_prefix: str = Field(
        default="Transactions",
        description="Prefix of the per-year transaction sheets (e.g. 'Transactions 2025')"
    )
    summary_sheet_name: str = Field(
        default="AccountSummary",
        description="Name of the sheet holding per-year account totals"
    )
    forecasts_sheet_name: str = Field(
        default="Forecasts",
        description="Name of the sheet caching computed forecasts"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class RiskThresholdSettings(BaseSettings):
    """
    Policy constants for anomaly detection and risk scoring.

    Every value has a default so the engine can run (and be tested)
    without any environment configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="RISK_",
        extra="ignore"
    )

    # Composition ratio (% of total expense)
    composition_medium_pct: float = Field(default=40.0, ge=0, le=100)
    composition_high_pct: float = Field(default=60.0, ge=0, le=100)

    # Year-over-year growth (%)
    growth_medium_pct: float = Field(default=50.0, ge=0)
    growth_high_pct: float = Field(default=100.0, ge=0)

    # Deviation from the trailing average (standard deviations)
    zscore_medium: float = Field(default=2.0, ge=0)
    zscore_high: float = Field(default=3.0, ge=0)

    # Ratio drift versus prior year (percentage points)
    drift_medium_pt: float = Field(default=20.0, ge=0)
    drift_high_pt: float = Field(default=40.0, ge=0)

    # Cross-category matching
    cross_match_min_amount: float = Field(
        default=100_000,
        ge=0,
        description="Only transactions at or above this amount are matched"
    )
    cross_match_key_length: int = Field(
        default=10,
        ge=1,
        description="Number of leading memo characters used in the match key"
    )
    cross_match_high_count: int = Field(
        default=3,
        ge=1,
        description="Match count at which a cross-category record becomes high"
    )

    # Base risk
    large_amount: float = Field(
        default=1_000_000,
        ge=0,
        description="Category total that upgrades a medium risk to high"
    )

    # History window
    history_window_years: int = Field(default=3, ge=1)
    min_history_points: int = Field(default=2, ge=2)

    # Bookkeeping checks
    high_value_amount: float = Field(default=100_000, ge=0)
    short_memo_length: int = Field(default=5, ge=0)
    frequent_category_count: int = Field(default=10, ge=1)
    min_transaction_count: int = Field(default=5, ge=0)

    @model_validator(mode='after')
    def validate_bands(self) -> 'RiskThresholdSettings':
        """High thresholds must not sit below their medium counterparts."""
        pairs = [
            ("composition", self.composition_medium_pct, self.composition_high_pct),
            ("growth", self.growth_medium_pct, self.growth_high_pct),
            ("zscore", self.zscore_medium, self.zscore_high),
            ("drift", self.drift_medium_pt, self.drift_high_pt),
        ]
        for name, medium, high in pairs:
            if high < medium:
                raise ValueError(
                    f"{name} high threshold ({high}) is below medium threshold ({medium})"
                )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Calendar
    timezone: str = Field(
        default="Asia/Tokyo",
        description="Timezone for cache keys, fiscal year and date gaps"
    )

    # Caller-side deadline for one forecast request
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Overall deadline for a forecast request"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject zone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v!r}")
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def thresholds(self) -> RiskThresholdSettings:
        return RiskThresholdSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "thresholds": lambda: settings.thresholds,
        "app": lambda: settings.app,
    }
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
