"""
Cross-Category Matcher

Flags the same counterparty paid the same amount under two or more
expense categories: the strongest single signal of a split or duplicated
booking.

Grouping key: first N characters of the memo plus the exact amount.
The truncated memo lets small wording differences ("ABC Corp" vs
"ABC Corporation") collide while different amounts never do. This is a
plain prefix, not a string-distance match.

DESIGN DECISION: Only high-value transactions (>= cross_match_min_amount)
are considered. This bounds group sizes and keeps routine small purchases
from the same shop out of the result.
"""

from collections import defaultdict
from typing import Iterable, Optional

import structlog

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.models.risk import (
    AnomalyDimension,
    AnomalyRecord,
    CrossCategoryMatch,
    Severity,
)
from audit_forecast.models.transaction import Transaction


logger = structlog.get_logger(__name__)


def match_key(txn: Transaction, key_length: int = 10) -> str:
    """Grouping key: memo prefix + exact amount."""
    return f"{(txn.memo or '')[:key_length]}_{txn.amount!r}"


def _date_gap(a: Transaction, b: Transaction) -> Optional[int]:
    if a.date is None or b.date is None:
        return None
    return abs((a.date - b.date).days)


def group_candidates(
    transactions: Iterable[Transaction],
    thresholds: RiskThresholdSettings,
) -> dict[str, list[Transaction]]:
    """Group eligible transactions by match key, in first-seen order."""
    groups: dict[str, list[Transaction]] = {}
    for txn in transactions:
        if not txn.is_expense or not txn.memo:
            continue
        if txn.amount < thresholds.cross_match_min_amount:
            continue
        key = match_key(txn, thresholds.cross_match_key_length)
        groups.setdefault(key, []).append(txn)
    return groups


def find_cross_category_matches(
    transactions: Iterable[Transaction],
    thresholds: RiskThresholdSettings,
) -> dict[str, AnomalyRecord]:
    """
    Find same-party, same-amount transactions booked under different categories.

    Every transaction in a group is matched against every other transaction
    in the group that carries a different category. Matches are collected
    per category and turned into one cross-category-match record each.

    Returns:
        Mapping of category to its single cross-category AnomalyRecord.
        Categories without matches are absent.
    """
    matches: dict[str, list[CrossCategoryMatch]] = defaultdict(list)

    for key, group in group_candidates(transactions, thresholds).items():
        if len({txn.category for txn in group}) < 2:
            continue

        logger.debug(
            "Cross-category group found",
            key=key,
            categories=sorted({txn.category for txn in group}),
            size=len(group),
        )

        for txn in group:
            for other in group:
                if other is txn or other.category == txn.category:
                    continue
                matches[txn.category].append(CrossCategoryMatch(
                    related_category=other.category,
                    amount=other.amount,
                    date_gap_days=_date_gap(txn, other),
                    counterparty=other.memo,
                ))

    records: dict[str, AnomalyRecord] = {}
    for category, found in matches.items():
        related = sorted({m.related_category for m in found})
        severity = (
            Severity.HIGH
            if len(found) >= thresholds.cross_match_high_count
            else Severity.MEDIUM
        )
        records[category] = AnomalyRecord(
            dimension=AnomalyDimension.CROSS_CATEGORY_MATCH,
            category=category,
            value=float(len(found)),
            severity=severity,
            message=(
                f"{len(found)} transaction(s) in {category} share counterparty "
                f"and amount with {', '.join(related)}"
            ),
            rule_description=(
                f"same counterparty and same amount of at least "
                f"{thresholds.cross_match_min_amount:,.0f} booked under "
                f"different categories"
            ),
            cross_category_matches=tuple(found),
        )
    return records
