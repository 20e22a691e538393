"""
Input Data Models for Audit Forecast

Transactions and historical summary points arrive from spreadsheets that
users edit by hand. These models are the ingestion boundary: anything
malformed is coerced to a safe default here, so the scoring engine never
sees NaN amounts, missing categories or unparseable dates.

DESIGN DECISION: Coercion, not rejection. A single bad cell must not stop
the forecast for a whole year of bookkeeping.
"""

import datetime as dt
import math
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


UNCATEGORIZED = "uncategorized"


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Only expenses are scored."""
    EXPENSE = "expense"
    INCOME = "income"


# =============================================================================
# COERCION HELPERS
# =============================================================================

def coerce_amount(value: Any) -> float:
    """
    Convert a raw amount cell to a non-negative finite float.

    Numbers and numeric strings ("12,000", "¥5000") are accepted.
    Everything else, including NaN, infinity and negatives, becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        amount = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("¥", "").replace("￥", "")
        try:
            amount = float(cleaned)
        except ValueError:
            return 0.0
    else:
        return 0.0

    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def coerce_date(value: Any) -> Optional[dt.date]:
    """Parse an ISO calendar date; anything unparseable becomes None."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def is_finite_number(value: Any) -> bool:
    """True for real numbers that are neither NaN nor infinite."""
    if isinstance(value, bool) or value is None:
        return False
    if not isinstance(value, (int, float, Decimal)):
        return False
    return math.isfinite(float(value))


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single categorized transaction.

    Immutable for the lifetime of a scoring pass.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default="",
        description="Source row identifier"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Calendar date of the transaction (None if unparseable)"
    )
    amount: float = Field(
        default=0.0,
        ge=0,
        description="Amount in currency units (malformed values become 0)"
    )
    category: str = Field(
        default=UNCATEGORIZED,
        description="Free-text account category"
    )
    memo: Optional[str] = Field(
        default=None,
        description="Counterparty name or memo text"
    )
    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        description="expense or income"
    )
    receipt_url: Optional[str] = Field(
        default=None,
        description="Link to the attached receipt, if any"
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Optional[dt.date]:
        return coerce_date(v)

    @field_validator('amount', mode='before')
    @classmethod
    def sanitize_amount(cls, v: Any) -> float:
        return coerce_amount(v)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Any) -> str:
        """Missing or blank categories fall back to the sentinel label."""
        if not isinstance(v, str) or not v.strip():
            return UNCATEGORIZED
        return v

    @field_validator('memo', 'receipt_url', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if not isinstance(v, str):
            return None
        v = v.strip()
        return v or None

    @field_validator('type', mode='before')
    @classmethod
    def parse_type(cls, v: Any) -> TransactionType:
        """Anything that is not explicitly income is treated as an expense."""
        if isinstance(v, TransactionType):
            return v
        if isinstance(v, str) and v.strip().lower() == TransactionType.INCOME.value:
            return TransactionType.INCOME
        return TransactionType.EXPENSE

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


# =============================================================================
# HISTORICAL SUMMARY
# =============================================================================

class HistoricalPoint(BaseModel):
    """
    One category total for one past (or current) year.

    amount and ratio are kept as given, including NaN; the comparator
    decides what is usable.
    """
    model_config = ConfigDict(frozen=True)

    year: int
    category: str
    amount: Optional[float] = None
    ratio: Optional[float] = Field(
        default=None,
        description="Share of that year's total expense, in percent"
    )

    @field_validator('amount', 'ratio', mode='before')
    @classmethod
    def non_numeric_to_none(cls, v: Any) -> Optional[float]:
        if isinstance(v, bool) or v is None:
            return None
        if isinstance(v, (int, float, Decimal)):
            return float(v)
        if isinstance(v, str):
            try:
                return float(v.strip().replace(",", ""))
            except ValueError:
                return None
        return None


class HistoricalSummary(BaseModel):
    """
    Result of querying the historical summary source.

    Either usable with data, or explicitly unusable with a reason.
    A fetch exception is treated exactly like usable=False.
    """

    usable: bool
    reason: Optional[str] = None
    points: list[HistoricalPoint] = Field(default_factory=list)

    @classmethod
    def unusable(cls, reason: str) -> "HistoricalSummary":
        return cls(usable=False, reason=reason)

    def for_category(self, category: str) -> list[HistoricalPoint]:
        """History points for one category (empty when unusable)."""
        if not self.usable:
            return []
        return [p for p in self.points if p.category == category]
