"""
Calendar helpers.

The cache key, the fiscal year and the cross-match day gaps must all be
read in one timezone, or the once-per-day cache check breaks around
midnight. Every "today" in the application goes through here.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from audit_forecast.config import get_settings


def _now(tz: Optional[str] = None) -> datetime:
    return datetime.now(ZoneInfo(tz or get_settings().app.timezone))


def today_string(tz: Optional[str] = None) -> str:
    """Today's date as YYYY-MM-DD in the deployment timezone."""
    return _now(tz).strftime("%Y-%m-%d")


def current_year(tz: Optional[str] = None) -> int:
    return _now(tz).year
