"""
Scoring Pipeline

One full pass: aggregate -> compare -> detect -> cross-match -> synthesize -> rank.

The pass is synchronous and pure. It reads no clock, draws no random
numbers and holds no external resources, so two runs over the same input
produce identical profiles and a caller can abandon a run at any point.
"""

from typing import Iterable, Optional

import structlog

from audit_forecast.config import RiskThresholdSettings, get_settings
from audit_forecast.engine.aggregator import aggregate_transactions
from audit_forecast.engine.comparator import compare_category
from audit_forecast.engine.cross_category import find_cross_category_matches
from audit_forecast.engine.detectors import run_detectors
from audit_forecast.engine.synthesizer import rank_profiles, synthesize_profiles
from audit_forecast.models.risk import (
    CategoryMetrics,
    CategoryRiskProfile,
    ComparatorResult,
)
from audit_forecast.models.transaction import HistoricalSummary, Transaction


logger = structlog.get_logger(__name__)


def build_category_metrics(
    transactions: list[Transaction],
    history: Optional[HistoricalSummary],
    year: Optional[int],
    thresholds: RiskThresholdSettings,
) -> list[CategoryMetrics]:
    """Current-period figures plus comparator output, one entry per category."""
    aggregation = aggregate_transactions(transactions)
    compare = history is not None and history.usable and year is not None

    metrics = []
    for agg in aggregation.aggregates.values():
        ratio = aggregation.ratio_of(agg.total_amount)
        comparison = (
            compare_category(
                agg.category,
                agg.total_amount,
                ratio,
                history.for_category(agg.category),
                year,
                thresholds,
            )
            if compare
            else ComparatorResult()
        )
        metrics.append(CategoryMetrics(
            category=agg.category,
            total_amount=agg.total_amount,
            ratio_of_total=ratio,
            max_single_amount=agg.max_single_amount,
            max_single_ratio=aggregation.ratio_of(agg.max_single_amount),
            comparison=comparison,
        ))
    return metrics


def score_categories(
    transactions: Iterable[Transaction],
    history: Optional[HistoricalSummary] = None,
    year: Optional[int] = None,
    thresholds: Optional[RiskThresholdSettings] = None,
) -> list[CategoryRiskProfile]:
    """
    Score every expense category and return the ranked risk profiles.

    Args:
        transactions: The period's transactions (income is ignored)
        history: Historical summary; None or unusable leaves every
                 comparator field None
        year: The period being scored; required for history comparison
        thresholds: Policy constants (defaults to configured settings)

    Returns:
        Ranked list of CategoryRiskProfile; empty for empty input.
    """
    if thresholds is None:
        thresholds = get_settings().thresholds

    transactions = list(transactions)
    metrics = build_category_metrics(transactions, history, year, thresholds)
    if not metrics:
        return []

    detected = run_detectors(metrics, thresholds)
    cross_matches = find_cross_category_matches(transactions, thresholds)
    profiles = rank_profiles(
        synthesize_profiles(metrics, detected, cross_matches, thresholds)
    )

    logger.debug(
        "Scoring pass complete",
        categories=len(profiles),
        anomalies=sum(p.anomaly_count for p in profiles),
        compared=sum(m.comparison.has_any for m in metrics),
        history_used=bool(history and history.usable),
    )
    return profiles
