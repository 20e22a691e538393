"""Shared utilities."""

from audit_forecast.utils.dates import current_year, today_string

__all__ = ["current_year", "today_string"]
