"""Tests for the ingestion boundary."""

import json

import pytest

from audit_forecast.exceptions import MalformedForecastError
from audit_forecast.models import UNCATEGORIZED
from audit_forecast.validation import (
    has_legacy_comparators,
    normalize_cached_profiles,
    normalize_legacy_comparators,
    normalize_transactions,
    validate_forecast_record,
)
from conftest import make_profile


def stored_record(profiles=None, date="2024-06-01"):
    profiles = profiles if profiles is not None else [make_profile("A")]
    return {
        "user_id": "u1",
        "year": 2024,
        "date": date,
        "results": [p.model_dump(mode="json") for p in profiles],
        "updated_at": "2024-06-01T09:00:00",
    }


class TestNormalizeTransactions:
    """Tests for raw row coercion."""

    def test_column_aliases(self):
        """Test memo may arrive as description or counterparty."""
        txns = normalize_transactions([
            {"id": 1, "date": "2024-01-05", "amount": "1,200", "category": "travel",
             "description": "Taxi"},
            {"amount": 500, "category": "fees", "counterparty": "Bank"},
        ])
        assert txns[0].id == "1"
        assert txns[0].memo == "Taxi"
        assert txns[0].amount == 1200
        assert txns[1].memo == "Bank"

    def test_malformed_cells_are_coerced(self):
        txns = normalize_transactions([
            {"amount": "??", "category": "", "date": "yesterday", "type": "weird"},
        ])
        txn = txns[0]
        assert txn.amount == 0
        assert txn.category == UNCATEGORIZED
        assert txn.date is None
        assert txn.is_expense

    def test_non_record_rows_are_skipped(self):
        txns = normalize_transactions([["stray", "cells"], None, {"amount": 1}])
        assert len(txns) == 1


class TestLegacyComparators:
    """Tests for the all-zero comparator normalization."""

    def test_all_zero_triple_is_legacy(self):
        assert has_legacy_comparators({"growth_rate": 0, "z_score": 0.0, "diff_ratio": 0})

    @pytest.mark.parametrize("values", [
        (0, 0, None),
        (0, 1.5, 0),
        (None, None, None),
    ])
    def test_other_combinations_are_not_legacy(self, values):
        profile = dict(zip(("growth_rate", "z_score", "diff_ratio"), values))
        assert not has_legacy_comparators(profile)

    def test_dict_is_normalized_to_none(self):
        raw = {"category": "A", "growth_rate": 0, "z_score": 0, "diff_ratio": 0}
        normalized = normalize_legacy_comparators(raw)
        assert normalized["growth_rate"] is None
        assert normalized["z_score"] is None
        assert normalized["diff_ratio"] is None
        assert raw["growth_rate"] == 0  # input untouched

    def test_model_is_normalized_to_none(self):
        profile = make_profile("A").model_copy(
            update={"growth_rate": 0.0, "z_score": 0.0, "diff_ratio": 0.0}
        )
        normalized = normalize_legacy_comparators(profile)
        assert normalized.growth_rate is None
        assert profile.growth_rate == 0.0

    def test_cached_profiles_report_touched_categories(self):
        legacy = make_profile("A").model_copy(
            update={"growth_rate": 0.0, "z_score": 0.0, "diff_ratio": 0.0}
        )
        clean = make_profile("B").model_copy(update={"growth_rate": 0.0})
        profiles, touched = normalize_cached_profiles([legacy, clean])
        assert touched == ["A"]
        assert profiles[0].z_score is None
        assert profiles[1].growth_rate == 0.0


class TestValidateForecastRecord:
    """Tests for stored forecast structure validation."""

    def test_valid_record(self):
        record = validate_forecast_record(stored_record())
        assert record.date == "2024-06-01"
        assert [p.category for p in record.results] == ["A"]

    def test_json_text_is_accepted(self):
        record = validate_forecast_record(json.dumps(stored_record()))
        assert record.user_id == "u1"

    @pytest.mark.parametrize("raw", [
        "not json",
        ["a", "list"],
        {"results": []},
        {"date": "2024-06-01", "results": "oops"},
        {"date": "2024-06-01", "results": ["not a profile"]},
    ])
    def test_malformed_structures(self, raw):
        with pytest.raises(MalformedForecastError):
            validate_forecast_record(raw)

    def test_inconsistent_profile_is_malformed(self):
        raw = stored_record()
        raw["results"][0]["anomaly_count"] = 5
        with pytest.raises(MalformedForecastError):
            validate_forecast_record(raw)
