"""
Forecast Persistence and Bookkeeping Models

ForecastRecord is the unit written to the result cache: one record per
(user, year), stamped with the calendar date it was computed on.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from audit_forecast.models.risk import CategoryRiskProfile


class ForecastRecord(BaseModel):
    """
    A cached forecast.

    DESIGN DECISION: Only the latest computation per (user, year) is kept.
    A record whose date is not today is a cache miss, never stale data.
    """

    user_id: str = Field(..., min_length=1)
    year: int
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Calendar date (YYYY-MM-DD) the forecast was computed on"
    )
    results: list[CategoryRiskProfile] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ForecastResult(BaseModel):
    """What the orchestrator hands back to the caller."""

    user_id: str
    year: int
    date: str
    profiles: list[CategoryRiskProfile] = Field(default_factory=list)
    from_cache: bool = False
    history_used: bool = Field(
        default=False,
        description="Whether usable historical data fed the comparator"
    )

    @property
    def high_risk_categories(self) -> list[str]:
        return [p.category for p in self.profiles if p.risk_level.value == "high"]


class CheckType(str, Enum):
    """Bookkeeping check kinds, in priority order."""
    DEFICIENCY = "deficiency"
    CONFIRMATION = "confirmation"
    RECOMMENDATION = "recommendation"


class BookkeepingCheck(BaseModel):
    """A single record-keeping item for the user to act on."""

    check_id: str
    check_type: CheckType
    title: str
    description: str
    actionable: bool = False
    transaction_id: Optional[str] = None
