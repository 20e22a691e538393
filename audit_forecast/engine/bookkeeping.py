"""
Bookkeeping Checks

A record-keeping checklist computed alongside the forecast. Where the
risk profiles say which categories an auditor will look at, these checks
say what the user should fix in their books before that happens.

Checks are returned in priority order: deficiencies (something is
missing), then confirmations (something needs a second look), then
recommendations (something could be better).
"""

from collections import Counter
from typing import Iterable

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.models.forecast import BookkeepingCheck, CheckType
from audit_forecast.models.transaction import Transaction


_CHECK_PRIORITY = {
    CheckType.DEFICIENCY: 0,
    CheckType.CONFIRMATION: 1,
    CheckType.RECOMMENDATION: 2,
}


def _missing_receipt_checks(expenses: list[Transaction]) -> list[BookkeepingCheck]:
    missing = Counter(t.category for t in expenses if not t.receipt_url)
    return [
        BookkeepingCheck(
            check_id=f"check_receipt_{category}",
            check_type=CheckType.DEFICIENCY,
            title=f"Receipt required: {category} ({count})",
            description=(
                f"{count} transaction(s) in {category} have no receipt attached. "
                f"Receipts are required in a tax audit; attach them."
            ),
            actionable=True,
        )
        for category, count in missing.items()
    ]


def _high_value_checks(
    expenses: list[Transaction],
    thresholds: RiskThresholdSettings,
) -> list[BookkeepingCheck]:
    checks = []
    for txn in expenses:
        if txn.amount < thresholds.high_value_amount:
            continue
        when = txn.date.isoformat() if txn.date else "date unknown"
        checks.append(BookkeepingCheck(
            check_id=f"check_high_amount_{txn.id}",
            check_type=CheckType.CONFIRMATION,
            title=f"Confirm large expense: {txn.category} {txn.amount:,.0f} ({when})",
            description=(
                f"{txn.memo or 'This expense'} is at or above "
                f"{thresholds.high_value_amount:,.0f}. Confirm its business "
                f"purpose and keep the supporting documents."
            ),
            actionable=False,
            transaction_id=txn.id or None,
        ))
    return checks


def _thin_description_checks(
    expenses: list[Transaction],
    thresholds: RiskThresholdSettings,
) -> list[BookkeepingCheck]:
    thin = Counter(
        t.category
        for t in expenses
        if not t.memo or len(t.memo) < thresholds.short_memo_length
    )
    return [
        BookkeepingCheck(
            check_id=f"check_description_{category}",
            check_type=CheckType.RECOMMENDATION,
            title=f"Add detail to descriptions: {category} ({count})",
            description=(
                f"{count} transaction(s) in {category} have a very short "
                f"description. Describe the purpose and business relevance."
            ),
            actionable=True,
        )
        for category, count in thin.items()
    ]


def _frequent_category_checks(
    expenses: list[Transaction],
    thresholds: RiskThresholdSettings,
) -> list[BookkeepingCheck]:
    counts = Counter(t.category for t in expenses)
    return [
        BookkeepingCheck(
            check_id=f"check_category_frequency_{category}",
            check_type=CheckType.CONFIRMATION,
            title=f"Review frequent transactions: {category}",
            description=(
                f"{category} has {count} transactions. Check that they are "
                f"consistent and business related."
            ),
            actionable=False,
        )
        for category, count in counts.items()
        if count > thresholds.frequent_category_count
    ]


def generate_bookkeeping_checks(
    transactions: Iterable[Transaction],
    thresholds: RiskThresholdSettings,
) -> list[BookkeepingCheck]:
    """
    Build the checklist for one period's expense transactions.

    Returns:
        Checks sorted deficiency -> confirmation -> recommendation,
        keeping generation order within each type.
    """
    expenses = [t for t in transactions if t.is_expense]

    checks: list[BookkeepingCheck] = []
    checks.extend(_missing_receipt_checks(expenses))
    checks.extend(_high_value_checks(expenses, thresholds))
    checks.extend(_thin_description_checks(expenses, thresholds))
    checks.extend(_frequent_category_checks(expenses, thresholds))

    if len(expenses) < thresholds.min_transaction_count:
        checks.append(BookkeepingCheck(
            check_id="check_overall_transaction_count",
            check_type=CheckType.RECOMMENDATION,
            title="Check the number of transactions",
            description=(
                f"Only {len(expenses)} transaction(s) were recorded. Check that "
                f"the books reflect the actual business activity."
            ),
            actionable=False,
        ))

    return sorted(checks, key=lambda c: _CHECK_PRIORITY[c.check_type])
