"""Tests for the cross-category matcher."""

from audit_forecast.engine.cross_category import find_cross_category_matches, match_key
from audit_forecast.models import AnomalyDimension, Severity
from conftest import make_txn


class TestCrossCategoryMatches:
    """Tests for same-party, same-amount bookings across categories."""

    def test_split_booking_is_flagged_on_both_categories(self, thresholds):
        """Test the canonical outsourcing/meeting split."""
        records = find_cross_category_matches([
            make_txn("outsourcing", 500000, memo="ABC Corp", date="2024-01-15"),
            make_txn("meeting", 500000, memo="ABC Corp", date="2024-01-16"),
        ], thresholds)

        assert set(records) == {"outsourcing", "meeting"}
        outsourcing = records["outsourcing"]
        assert outsourcing.dimension == AnomalyDimension.CROSS_CATEGORY_MATCH
        assert outsourcing.severity == Severity.MEDIUM
        assert outsourcing.value == 1
        match = outsourcing.cross_category_matches[0]
        assert match.related_category == "meeting"
        assert match.date_gap_days == 1
        assert match.amount == 500000
        assert match.counterparty == "ABC Corp"
        assert records["meeting"].cross_category_matches[0].related_category == "outsourcing"

    def test_below_amount_floor_never_matches(self, thresholds):
        """Test small duplicates are ignored even when the pattern matches."""
        records = find_cross_category_matches([
            make_txn("outsourcing", 50000, memo="ABC Corp"),
            make_txn("meeting", 50000, memo="ABC Corp"),
        ], thresholds)
        assert records == {}

    def test_amount_floor_is_inclusive(self, thresholds):
        records = find_cross_category_matches([
            make_txn("A", 100000, memo="Vendor"),
            make_txn("B", 100000, memo="Vendor"),
        ], thresholds)
        assert set(records) == {"A", "B"}

    def test_memo_prefix_collides(self, thresholds):
        """Test only the first 10 characters of the memo form the key."""
        records = find_cross_category_matches([
            make_txn("A", 200000, memo="ABC Corporation"),
            make_txn("B", 200000, memo="ABC Corpor Inc"),
        ], thresholds)
        assert set(records) == {"A", "B"}
        assert records["A"].cross_category_matches[0].counterparty == "ABC Corpor Inc"

    def test_different_amounts_never_collide(self, thresholds):
        records = find_cross_category_matches([
            make_txn("A", 200000, memo="ABC Corp"),
            make_txn("B", 200001, memo="ABC Corp"),
        ], thresholds)
        assert records == {}

    def test_same_category_is_not_a_match(self, thresholds):
        records = find_cross_category_matches([
            make_txn("A", 200000, memo="ABC Corp"),
            make_txn("A", 200000, memo="ABC Corp"),
        ], thresholds)
        assert records == {}

    def test_missing_memo_is_skipped(self, thresholds):
        records = find_cross_category_matches([
            make_txn("A", 200000),
            make_txn("B", 200000),
        ], thresholds)
        assert records == {}

    def test_income_is_skipped(self, thresholds):
        records = find_cross_category_matches([
            make_txn("sales", 200000, memo="ABC Corp", type="income"),
            make_txn("A", 200000, memo="ABC Corp"),
        ], thresholds)
        assert records == {}

    def test_missing_date_gives_no_gap(self, thresholds):
        records = find_cross_category_matches([
            make_txn("A", 200000, memo="ABC Corp", date=None),
            make_txn("B", 200000, memo="ABC Corp"),
        ], thresholds)
        assert records["A"].cross_category_matches[0].date_gap_days is None

    def test_three_matches_is_high(self, thresholds):
        """Test severity becomes high at three matches."""
        txns = [
            make_txn(category, 300000, memo="Same Vendor")
            for category in ("A", "B", "C", "D")
        ]
        records = find_cross_category_matches(txns, thresholds)
        assert all(r.severity == Severity.HIGH for r in records.values())
        assert records["A"].value == 3
        assert {m.related_category for m in records["A"].cross_category_matches} == {"B", "C", "D"}

    def test_two_matches_is_medium(self, thresholds):
        txns = [make_txn(c, 300000, memo="Same Vendor") for c in ("A", "B", "C")]
        records = find_cross_category_matches(txns, thresholds)
        assert records["A"].value == 2
        assert records["A"].severity == Severity.MEDIUM

    def test_match_key_shape(self):
        txn = make_txn("A", 500000, memo="株式会社ABCコンサルティング")
        assert match_key(txn, 10) == "株式会社ABCコンサ_500000.0"
