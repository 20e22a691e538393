"""Configuration package."""

from audit_forecast.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    RiskThresholdSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "RiskThresholdSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
