"""
Risk Synthesizer

Merges aggregates, comparator output and every detector's records into
one CategoryRiskProfile per category, then ranks them.

Risk level is derived in a fixed order and only ever goes up:

1. Base ratio: > 60% high, > 40% medium, else low
2. Large total (>= large_amount) upgrades medium to high
3. Category heuristics (outsourcing, meeting, supplies) upgrade low to medium
4. Detected anomalies raise the level to at least their highest severity

DESIGN DECISION: anomaly_count is taken from the final anomaly list, after
cross-category records are injected. Counting earlier undercounts.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.models.risk import (
    AnomalyDimension,
    AnomalyRecord,
    CategoryMetrics,
    CategoryRiskProfile,
    RiskLevel,
)


# =============================================================================
# CATEGORY HEURISTICS
# =============================================================================

@dataclass(frozen=True)
class CategoryHeuristic:
    """A high-scrutiny category label with its own amount trigger."""

    labels: tuple[str, ...]
    min_amount: float
    advice: str

    def matches(self, category: str) -> bool:
        name = category.casefold()
        return any(label.casefold() in name for label in self.labels)


CATEGORY_HEURISTICS: tuple[CategoryHeuristic, ...] = (
    CategoryHeuristic(
        labels=("外注費", "outsourcing"),
        min_amount=100_000,
        advice="Check outsourcing payments against the underlying service contracts",
    ),
    CategoryHeuristic(
        labels=("会議費", "meeting"),
        min_amount=50_000,
        advice="Record the purpose and attendees of each meeting expense",
    ),
    CategoryHeuristic(
        labels=("消耗品費", "supplies"),
        min_amount=30_000,
        advice="Check that supplies spending is in proportion to the size of the business",
    ),
)


def matching_heuristic(category: str, total_amount: float) -> Optional[CategoryHeuristic]:
    """The first heuristic whose label and amount trigger both match."""
    for heuristic in CATEGORY_HEURISTICS:
        if heuristic.matches(category) and total_amount >= heuristic.min_amount:
            return heuristic
    return None


# =============================================================================
# RISK LEVEL
# =============================================================================

def base_risk_level(
    ratio_of_total: float,
    total_amount: float,
    thresholds: RiskThresholdSettings,
) -> RiskLevel:
    """Risk from current-period size alone, before heuristics and anomalies."""
    if ratio_of_total > thresholds.composition_high_pct:
        level = RiskLevel.HIGH
    elif ratio_of_total > thresholds.composition_medium_pct:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    if level == RiskLevel.MEDIUM and total_amount >= thresholds.large_amount:
        level = RiskLevel.HIGH
    return level


def resolve_risk_level(
    metrics: CategoryMetrics,
    anomalies: Iterable[AnomalyRecord],
    thresholds: RiskThresholdSettings,
) -> RiskLevel:
    level = base_risk_level(metrics.ratio_of_total, metrics.total_amount, thresholds)

    if level == RiskLevel.LOW and matching_heuristic(metrics.category, metrics.total_amount):
        level = RiskLevel.MEDIUM

    for anomaly in anomalies:
        level = level.at_least(anomaly.severity.risk_level)
    return level


# =============================================================================
# ISSUES
# =============================================================================

# Fact + recommendation, in the order issues are listed
_ADVICE = {
    AnomalyDimension.COMPOSITION_RATIO:
        "Confirm the business purpose and necessity of the largest expenditures",
    AnomalyDimension.SUDDEN_CHANGE:
        "Prepare an explanation for the change versus the previous year",
    AnomalyDimension.STATISTICAL_DEVIATION:
        "Compare this year's entries with supporting documents from prior years",
    AnomalyDimension.RATIO_DRIFT:
        "Check whether expenses were moved between categories",
    AnomalyDimension.CROSS_CATEGORY_MATCH:
        "Check the matching transactions for duplicate or miscategorized bookings",
}

DEFAULT_ADVICE = "Review supporting documentation"


def build_issues(
    metrics: CategoryMetrics,
    anomalies: list[AnomalyRecord],
    thresholds: RiskThresholdSettings,
) -> list[str]:
    """
    Ordered fact/recommendation strings for one category.

    Order: composition, large amount, growth, statistical deviation,
    ratio drift, category heuristics, cross-category. Never empty.
    """
    by_dimension = {a.dimension: a for a in anomalies}
    issues: list[str] = []

    def add(dimension: AnomalyDimension) -> None:
        anomaly = by_dimension.get(dimension)
        if anomaly is not None:
            issues.extend([anomaly.message, _ADVICE[dimension]])

    add(AnomalyDimension.COMPOSITION_RATIO)

    if metrics.total_amount >= thresholds.large_amount:
        issues.extend([
            f"{metrics.category} totals {metrics.total_amount:,.0f}, "
            f"at or above {thresholds.large_amount:,.0f}",
            "Verify contracts and invoices for the large payments",
        ])

    add(AnomalyDimension.SUDDEN_CHANGE)
    add(AnomalyDimension.STATISTICAL_DEVIATION)
    add(AnomalyDimension.RATIO_DRIFT)

    heuristic = matching_heuristic(metrics.category, metrics.total_amount)
    if heuristic is not None:
        issues.extend([
            f"{metrics.category} totals {metrics.total_amount:,.0f}, "
            f"at or above its review line of {heuristic.min_amount:,.0f}",
            heuristic.advice,
        ])

    add(AnomalyDimension.CROSS_CATEGORY_MATCH)

    if not issues:
        issues.extend([
            f"{metrics.category} accounts for {metrics.ratio_of_total:.1f}% "
            f"of total expense",
            DEFAULT_ADVICE,
        ])
    return issues


# =============================================================================
# SYNTHESIS AND RANKING
# =============================================================================

def synthesize_profile(
    metrics: CategoryMetrics,
    detected: list[AnomalyRecord],
    cross_match: Optional[AnomalyRecord],
    thresholds: RiskThresholdSettings,
) -> CategoryRiskProfile:
    """Build one category's profile. Cross-category records are appended last."""
    anomalies = list(detected)
    if cross_match is not None:
        anomalies.append(cross_match)

    comparison = metrics.comparison
    return CategoryRiskProfile(
        category=metrics.category,
        total_amount=metrics.total_amount,
        ratio_of_total=metrics.ratio_of_total,
        max_single_amount=metrics.max_single_amount,
        max_single_ratio=metrics.max_single_ratio,
        risk_level=resolve_risk_level(metrics, anomalies, thresholds),
        issues=build_issues(metrics, anomalies, thresholds),
        growth_rate=comparison.growth_rate,
        z_score=comparison.z_score,
        diff_ratio=comparison.diff_ratio,
        anomalies=anomalies,
        anomaly_count=len(anomalies),
    )


def synthesize_profiles(
    metrics_list: Iterable[CategoryMetrics],
    detected: dict[str, list[AnomalyRecord]],
    cross_matches: dict[str, AnomalyRecord],
    thresholds: RiskThresholdSettings,
) -> list[CategoryRiskProfile]:
    """Build profiles for every category, in input order (unranked)."""
    return [
        synthesize_profile(
            metrics,
            detected.get(metrics.category, []),
            cross_matches.get(metrics.category),
            thresholds,
        )
        for metrics in metrics_list
    ]


def _rank_key(profile: CategoryRiskProfile) -> tuple:
    return (
        -profile.anomaly_count,
        -profile.risk_level.rank,
        -profile.total_amount,
        profile.category,
    )


def rank_profiles(profiles: Iterable[CategoryRiskProfile]) -> list[CategoryRiskProfile]:
    """
    Order profiles for review.

    More detected anomalies first, then higher risk level, then larger
    total, then category name. Several independent signals outrank a
    single strong one.
    """
    return sorted(profiles, key=_rank_key)
