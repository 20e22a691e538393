"""Tests for the transaction aggregator."""

import pytest

from audit_forecast.engine.aggregator import aggregate_transactions, ratio_of
from conftest import make_txn


class TestAggregateTransactions:
    """Tests for per-category aggregation."""

    def test_groups_by_exact_category(self):
        """Test totals, counts and max single amount per category."""
        result = aggregate_transactions([
            make_txn("travel", 1000),
            make_txn("travel", 3000),
            make_txn("Travel", 500),
        ])
        assert result.categories == ["travel", "Travel"]
        travel = result.aggregates["travel"]
        assert travel.total_amount == 4000
        assert travel.transaction_count == 2
        assert travel.max_single_amount == 3000
        assert result.total_amount == 4500

    def test_income_is_excluded(self):
        """Test income counts neither per category nor in the grand total."""
        result = aggregate_transactions([
            make_txn("sales", 900000, type="income"),
            make_txn("rent", 100000),
        ])
        assert result.categories == ["rent"]
        assert result.total_amount == 100000

    def test_empty_input(self):
        """Test empty input yields an empty result with zero total."""
        result = aggregate_transactions([])
        assert result.categories == []
        assert result.total_amount == 0
        assert result.ratio_of(100) == 0

    def test_malformed_amounts_do_not_crash(self):
        """Test NaN and negative amounts count as 0."""
        result = aggregate_transactions([
            make_txn("A", float("nan")),
            make_txn("A", -10),
            make_txn("A", 50),
        ])
        agg = result.aggregates["A"]
        assert agg.total_amount == 50
        assert agg.transaction_count == 3
        assert agg.max_single_amount == 50

    def test_missing_category_uses_sentinel(self):
        """Test transactions without category are grouped under the sentinel."""
        result = aggregate_transactions([make_txn("", 100)])
        assert result.categories == ["uncategorized"]


class TestRatioOf:
    """Tests for safe ratio computation."""

    def test_ratio(self):
        assert ratio_of(25, 200) == pytest.approx(12.5)

    @pytest.mark.parametrize("total", [0, 0.0, float("nan"), float("inf"), -5])
    def test_unusable_total_gives_zero(self, total):
        """Test a zero or non-finite total yields 0, never an error or NaN."""
        assert ratio_of(10, total) == 0.0
