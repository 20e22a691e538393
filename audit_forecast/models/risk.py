"""
Risk Models for Audit Forecast

These models carry the engine's output: per-category aggregates,
comparator results, anomaly records and the final ranked risk profiles.

CRITICAL: growth_rate, z_score and diff_ratio are Optional[float].
None means "not enough data". It is NEVER interchangeable with 0,
which means "computed, and no deviation".
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class RiskLevel(str, Enum):
    """Coarse audit risk of a category."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def at_least(self, other: "RiskLevel") -> "RiskLevel":
        """Return the higher of the two levels (levels are only ever upgraded)."""
        return self if self.rank >= other.rank else other


_RISK_RANK = {RiskLevel.LOW: 1, RiskLevel.MEDIUM: 2, RiskLevel.HIGH: 3}


class Severity(str, Enum):
    """Severity of a single anomaly record."""
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel(self.value)


class AnomalyDimension(str, Enum):
    """The independent evaluation axes."""
    COMPOSITION_RATIO = "composition-ratio"
    SUDDEN_CHANGE = "sudden-change"
    STATISTICAL_DEVIATION = "statistical-deviation"
    RATIO_DRIFT = "ratio-drift"
    CROSS_CATEGORY_MATCH = "cross-category-match"


# =============================================================================
# INTERMEDIATE RESULTS
# =============================================================================

class CategoryAggregate(BaseModel):
    """Totals for one category in the current period."""

    category: str
    total_amount: float = Field(default=0.0, ge=0)
    transaction_count: int = Field(default=0, ge=0)
    max_single_amount: float = Field(default=0.0, ge=0)


class ComparatorResult(BaseModel):
    """
    Historical comparison for one category.

    Each field is independently None unless its own preconditions hold.
    """
    model_config = ConfigDict(frozen=True)

    growth_rate: Optional[float] = Field(
        default=None,
        description="Year-over-year change in percent"
    )
    diff_ratio: Optional[float] = Field(
        default=None,
        description="Change of the composition ratio in percentage points"
    )
    z_score: Optional[float] = Field(
        default=None,
        description="Deviation from the trailing average in standard deviations"
    )

    @property
    def has_any(self) -> bool:
        return any(
            v is not None for v in (self.growth_rate, self.diff_ratio, self.z_score)
        )


class CategoryMetrics(BaseModel):
    """
    A category profile in progress: current-period numbers plus
    comparator output. This is what the detectors scan.
    """
    model_config = ConfigDict(frozen=True)

    category: str
    total_amount: float
    ratio_of_total: float
    max_single_amount: float
    max_single_ratio: float
    comparison: ComparatorResult = Field(default_factory=ComparatorResult)


# =============================================================================
# ANOMALIES
# =============================================================================

class CrossCategoryMatch(BaseModel):
    """One transaction that mirrors a transaction booked under another category."""
    model_config = ConfigDict(frozen=True)

    related_category: str
    amount: float
    date_gap_days: Optional[int] = Field(
        default=None,
        description="Absolute day difference (None if either date is missing)"
    )
    counterparty: str


class AnomalyRecord(BaseModel):
    """
    A single detected anomaly.

    message states the fact, rule_description states the rule that fired.
    They are kept apart so an explanation layer can compose them freely.
    """
    model_config = ConfigDict(frozen=True)

    dimension: AnomalyDimension
    category: str
    value: float
    severity: Severity
    message: str
    rule_description: str
    cross_category_matches: Optional[tuple[CrossCategoryMatch, ...]] = None


# =============================================================================
# OUTPUT
# =============================================================================

class CategoryRiskProfile(BaseModel):
    """
    The engine's output unit, one per expense category.

    Every field is always present. Comparator fields are None when
    history is insufficient so consumers can render "insufficient data".
    """

    category: str
    total_amount: float
    ratio_of_total: float
    max_single_amount: float
    max_single_ratio: float
    risk_level: RiskLevel
    issues: list[str] = Field(..., min_length=1)
    growth_rate: Optional[float] = None
    z_score: Optional[float] = None
    diff_ratio: Optional[float] = None
    anomalies: list[AnomalyRecord] = Field(default_factory=list)
    anomaly_count: int = Field(..., ge=0)

    @model_validator(mode='after')
    def validate_anomaly_count(self) -> 'CategoryRiskProfile':
        """anomaly_count must always describe the final anomaly list."""
        if self.anomaly_count != len(self.anomalies):
            raise ValueError(
                f"anomaly_count ({self.anomaly_count}) does not match "
                f"number of anomalies ({len(self.anomalies)})"
            )
        return self

    @property
    def dimensions(self) -> list[AnomalyDimension]:
        return [a.dimension for a in self.anomalies]
