"""
Historical Comparator

Compares a category's current-period total with its history:

- growth_rate: change versus the prior year, in percent
- diff_ratio:  change of the composition ratio versus the prior year,
               in percentage points (not a percent of a percent)
- z_score:     distance from the trailing average of past years,
               in population standard deviations

DESIGN DECISION: Each output is independently None unless its own
preconditions hold. A missing prior year is "no data", not "0% growth",
and a perfectly flat history is "insufficient evidence", not "no deviation".
Reviewers must never be told "no change" when the truth is "no data".
"""

import math
import statistics
from collections import defaultdict
from typing import Iterable, Optional

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.engine.aggregator import aggregate_transactions
from audit_forecast.models.risk import ComparatorResult
from audit_forecast.models.transaction import (
    HistoricalPoint,
    Transaction,
    is_finite_number,
)


def _merge_by_year(
    points: Iterable[HistoricalPoint],
) -> dict[int, tuple[Optional[float], Optional[float]]]:
    """
    Collapse points to one (amount, ratio) per year.

    Several rows for the same year are summed. A non-finite value on any
    row makes that year's value unusable.
    """
    amounts: dict[int, Optional[float]] = {}
    ratios: dict[int, Optional[float]] = {}
    seen: dict[int, int] = defaultdict(int)

    for point in points:
        seen[point.year] += 1
        for store, value in ((amounts, point.amount), (ratios, point.ratio)):
            if seen[point.year] == 1:
                store[point.year] = float(value) if is_finite_number(value) else None
            elif store.get(point.year) is not None and is_finite_number(value):
                store[point.year] += float(value)
            else:
                store[point.year] = None

    return {year: (amounts[year], ratios[year]) for year in seen}


def growth_rate(current_amount: float, prior_amount: Optional[float]) -> Optional[float]:
    """Year-over-year growth in percent, or None without a positive prior amount."""
    if not is_finite_number(prior_amount) or prior_amount <= 0:
        return None
    if not is_finite_number(current_amount):
        return None
    return (current_amount - prior_amount) / prior_amount * 100


def diff_ratio(current_ratio: Optional[float], prior_ratio: Optional[float]) -> Optional[float]:
    """Ratio drift in percentage points, or None if either side is unknown."""
    if not is_finite_number(current_ratio) or not is_finite_number(prior_ratio):
        return None
    return current_ratio - prior_ratio


def z_score(
    current_amount: float,
    history: list[float],
    min_points: int = 2,
) -> Optional[float]:
    """
    Standard score of current_amount against history.

    None when there are fewer than min_points values or the
    history has no spread.
    """
    if len(history) < min_points or not is_finite_number(current_amount):
        return None
    mean = statistics.fmean(history)
    std_dev = statistics.pstdev(history, mu=mean)
    if std_dev == 0 or not math.isfinite(std_dev):
        return None
    return (current_amount - mean) / std_dev


def compare_category(
    category: str,
    current_amount: float,
    current_ratio: Optional[float],
    points: Iterable[HistoricalPoint],
    year: int,
    thresholds: RiskThresholdSettings,
) -> ComparatorResult:
    """
    Compare one category's current figures with its history.

    Args:
        category: Category label; points for other labels are ignored
        current_amount: Category total for `year`
        current_ratio: Category share of the year's total expense (%)
        points: History points, any years; only the calendar window
                before `year` feeds the z-score
        year: The year being scored; its own points are ignored
        thresholds: Supplies the history window and minimum point count
    """
    by_year = _merge_by_year(p for p in points if p.category == category)
    prior_amount, prior_ratio = by_year.get(year - 1, (None, None))

    window = [
        y for y in by_year
        if year - thresholds.history_window_years <= y < year
    ]
    usable = [
        amount
        for amount in (by_year[y][0] for y in window)
        if amount is not None and amount > 0
    ]

    return ComparatorResult(
        growth_rate=growth_rate(current_amount, prior_amount),
        diff_ratio=diff_ratio(current_ratio, prior_ratio),
        z_score=z_score(current_amount, usable, thresholds.min_history_points),
    )


def build_history_from_transactions(
    year: int,
    transactions: Iterable[Transaction],
) -> list[HistoricalPoint]:
    """
    Derive one year's history points from that year's transactions.

    Used when there is no precomputed account summary: past years'
    bookkeeping is aggregated the same way as the current year.
    """
    aggregation = aggregate_transactions(transactions)
    return [
        HistoricalPoint(
            year=year,
            category=agg.category,
            amount=agg.total_amount,
            ratio=aggregation.ratio_of(agg.total_amount),
        )
        for agg in aggregation.aggregates.values()
    ]
