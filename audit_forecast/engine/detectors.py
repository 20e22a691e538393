"""
Anomaly Detectors

Four independent rule evaluators, one per dimension:

| Dimension             | Fires when            | High when       |
|-----------------------|-----------------------|-----------------|
| composition-ratio     | ratio_of_total > 40%  | ratio > 60%     |
| sudden-change         | |growth_rate| > 50%   | > 100%          |
| statistical-deviation | |z_score| > 2.0       | > 3.0           |
| ratio-drift           | |diff_ratio| > 20pt   | > 40pt          |

DESIGN DECISION: The table above lives in code as data (DetectorRule rows)
evaluated by a single function. Thresholds come from RiskThresholdSettings,
so tuning a policy constant never touches branching logic.

A None metric never fires. No dimension suppresses another.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.models.risk import (
    AnomalyDimension,
    AnomalyRecord,
    CategoryMetrics,
    Severity,
)
from audit_forecast.models.transaction import is_finite_number


@dataclass(frozen=True)
class DetectorRule:
    """One row of the detector table."""

    dimension: AnomalyDimension
    metric: Callable[[CategoryMetrics], Optional[float]]
    medium_threshold: float
    high_threshold: float
    describe_fact: Callable[[CategoryMetrics, float], str]
    describe_rule: Callable[[float, float], str]

    def severity_for(self, value: Optional[float]) -> Optional[Severity]:
        """Severity of a metric value, or None when the rule does not fire."""
        if not is_finite_number(value):
            return None
        magnitude = abs(value)
        if magnitude > self.high_threshold:
            return Severity.HIGH
        if magnitude > self.medium_threshold:
            return Severity.MEDIUM
        return None

    def evaluate(self, metrics: CategoryMetrics) -> Optional[AnomalyRecord]:
        value = self.metric(metrics)
        severity = self.severity_for(value)
        if severity is None:
            return None
        return AnomalyRecord(
            dimension=self.dimension,
            category=metrics.category,
            value=value,
            severity=severity,
            message=self.describe_fact(metrics, value),
            rule_description=self.describe_rule(
                self.medium_threshold, self.high_threshold
            ),
        )


def _signed_change(value: float) -> str:
    return "increased" if value > 0 else "decreased"


def build_rules(thresholds: RiskThresholdSettings) -> list[DetectorRule]:
    """The detector table, in evaluation order."""
    return [
        DetectorRule(
            dimension=AnomalyDimension.COMPOSITION_RATIO,
            metric=lambda m: m.ratio_of_total,
            medium_threshold=thresholds.composition_medium_pct,
            high_threshold=thresholds.composition_high_pct,
            describe_fact=lambda m, v: (
                f"{m.category} accounts for {v:.1f}% of total expense"
            ),
            describe_rule=lambda mid, high: (
                f"single category exceeds {mid:g}% of total expense "
                f"(high above {high:g}%)"
            ),
        ),
        DetectorRule(
            dimension=AnomalyDimension.SUDDEN_CHANGE,
            metric=lambda m: m.comparison.growth_rate,
            medium_threshold=thresholds.growth_medium_pct,
            high_threshold=thresholds.growth_high_pct,
            describe_fact=lambda m, v: (
                f"{m.category} {_signed_change(v)} {abs(v):.1f}% "
                f"compared with the previous year"
            ),
            describe_rule=lambda mid, high: (
                f"year-over-year change exceeds {mid:g}% "
                f"(high above {high:g}%)"
            ),
        ),
        DetectorRule(
            dimension=AnomalyDimension.STATISTICAL_DEVIATION,
            metric=lambda m: m.comparison.z_score,
            medium_threshold=thresholds.zscore_medium,
            high_threshold=thresholds.zscore_high,
            describe_fact=lambda m, v: (
                f"{m.category} deviates {abs(v):.1f} standard deviations "
                f"from its multi-year average"
            ),
            describe_rule=lambda mid, high: (
                f"deviation from the trailing average exceeds {mid:g} sigma "
                f"(high above {high:g} sigma)"
            ),
        ),
        DetectorRule(
            dimension=AnomalyDimension.RATIO_DRIFT,
            metric=lambda m: m.comparison.diff_ratio,
            medium_threshold=thresholds.drift_medium_pt,
            high_threshold=thresholds.drift_high_pt,
            describe_fact=lambda m, v: (
                f"{m.category} share of total expense {_signed_change(v)} "
                f"by {abs(v):.1f} points compared with the previous year"
            ),
            describe_rule=lambda mid, high: (
                f"composition ratio moved more than {mid:g} points "
                f"(high above {high:g} points)"
            ),
        ),
    ]


def _run_rule(
    dimension: AnomalyDimension,
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> list[AnomalyRecord]:
    rule = next(r for r in build_rules(thresholds) if r.dimension == dimension)
    records = []
    for metrics in categories:
        record = rule.evaluate(metrics)
        if record is not None:
            records.append(record)
    return records


def detect_composition_ratio(
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> list[AnomalyRecord]:
    """Categories taking an outsized share of total expense."""
    return _run_rule(AnomalyDimension.COMPOSITION_RATIO, categories, thresholds)


def detect_sudden_change(
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> list[AnomalyRecord]:
    """Categories whose total moved sharply against the prior year."""
    return _run_rule(AnomalyDimension.SUDDEN_CHANGE, categories, thresholds)


def detect_statistical_deviation(
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> list[AnomalyRecord]:
    """Categories far from their trailing multi-year average."""
    return _run_rule(AnomalyDimension.STATISTICAL_DEVIATION, categories, thresholds)


def detect_ratio_drift(
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> list[AnomalyRecord]:
    """Categories whose share of total expense shifted by many points."""
    return _run_rule(AnomalyDimension.RATIO_DRIFT, categories, thresholds)


def run_detectors(
    categories: Iterable[CategoryMetrics],
    thresholds: RiskThresholdSettings,
) -> dict[str, list[AnomalyRecord]]:
    """
    Evaluate every rule against every category.

    Returns:
        Mapping of category to its anomaly records, in table order.
        Categories with no anomalies map to an empty list.
    """
    rules = build_rules(thresholds)
    results: dict[str, list[AnomalyRecord]] = {}
    for metrics in categories:
        found = results.setdefault(metrics.category, [])
        for rule in rules:
            record = rule.evaluate(metrics)
            if record is not None:
                found.append(record)
    return results
