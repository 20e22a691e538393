"""
Scoring Engine Package

Pure, synchronous risk scoring. Nothing in this package performs I/O.
"""

from audit_forecast.engine.aggregator import (
    AggregationResult,
    aggregate_transactions,
    ratio_of,
)
from audit_forecast.engine.bookkeeping import generate_bookkeeping_checks
from audit_forecast.engine.comparator import (
    build_history_from_transactions,
    compare_category,
)
from audit_forecast.engine.cross_category import find_cross_category_matches
from audit_forecast.engine.detectors import (
    DetectorRule,
    build_rules,
    detect_composition_ratio,
    detect_ratio_drift,
    detect_statistical_deviation,
    detect_sudden_change,
    run_detectors,
)
from audit_forecast.engine.pipeline import score_categories
from audit_forecast.engine.synthesizer import (
    CATEGORY_HEURISTICS,
    rank_profiles,
    synthesize_profiles,
)

__all__ = [
    "AggregationResult",
    "aggregate_transactions",
    "ratio_of",
    "generate_bookkeeping_checks",
    "build_history_from_transactions",
    "compare_category",
    "find_cross_category_matches",
    "DetectorRule",
    "build_rules",
    "detect_composition_ratio",
    "detect_ratio_drift",
    "detect_statistical_deviation",
    "detect_sudden_change",
    "run_detectors",
    "score_categories",
    "CATEGORY_HEURISTICS",
    "rank_profiles",
    "synthesize_profiles",
]
