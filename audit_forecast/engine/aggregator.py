"""
Transaction Aggregator

Groups expense transactions by category label. Labels are compared by
exact string equality; the engine keeps no predefined category list, so
free-text categories typed by the user are aggregated as they are.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable

from audit_forecast.models.risk import CategoryAggregate
from audit_forecast.models.transaction import Transaction


@dataclass
class AggregationResult:
    """Grand total plus one aggregate per category, in first-seen order."""

    total_amount: float = 0.0
    aggregates: dict[str, CategoryAggregate] = field(default_factory=dict)

    @property
    def categories(self) -> list[str]:
        return list(self.aggregates)

    def ratio_of(self, amount: float) -> float:
        return ratio_of(amount, self.total_amount)


def ratio_of(amount: float, total: float) -> float:
    """Percentage of total; 0 when the total is zero or not finite."""
    if not total or not math.isfinite(total) or total <= 0:
        return 0.0
    return amount / total * 100


def _safe_amount(amount: float) -> float:
    # Transaction already coerces; this guards hand-built models.
    if amount is None or not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def aggregate_transactions(transactions: Iterable[Transaction]) -> AggregationResult:
    """
    Aggregate expense transactions per category.

    Income is excluded from both the category totals and the grand total.
    Empty input yields an empty result with a total of 0.
    """
    result = AggregationResult()

    for txn in transactions:
        if not txn.is_expense:
            continue

        amount = _safe_amount(txn.amount)
        agg = result.aggregates.get(txn.category)
        if agg is None:
            agg = CategoryAggregate(category=txn.category)
            result.aggregates[txn.category] = agg

        agg.total_amount += amount
        agg.transaction_count += 1
        agg.max_single_amount = max(agg.max_single_amount, amount)
        result.total_amount += amount

    return result
