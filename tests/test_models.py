"""
Tests for Audit Forecast

Test strategy:
1. Unit tests for individual components (models, engine stages)
2. Integration tests for flows (with in-memory and mocked storage)
3. No real API calls in tests (use mocks)
"""

import math
from datetime import date
from uuid import uuid4

import pytest
from pydantic import ValidationError

from audit_forecast.config import AppSettings, RiskThresholdSettings, validate_all_settings
from audit_forecast.models import (
    UNCATEGORIZED,
    AnomalyDimension,
    AnomalyRecord,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    CategoryRiskProfile,
    ComparatorResult,
    ForecastRecord,
    HistoricalPoint,
    HistoricalSummary,
    RiskLevel,
    Severity,
    Transaction,
    TransactionType,
)


class TestTransactionModel:
    """Tests for Transaction coercion at the ingestion boundary."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        txn = Transaction(
            id="t1",
            date="2024-03-15",
            amount=12000,
            category="travel",
            memo="JR East",
            type="expense",
        )
        assert txn.date == date(2024, 3, 15)
        assert txn.amount == 12000.0
        assert txn.is_expense

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), -500, "abc", None, True])
    def test_malformed_amount_becomes_zero(self, raw):
        """Test that non-finite, negative and non-numeric amounts become 0."""
        assert Transaction(category="A", amount=raw).amount == 0.0

    def test_numeric_string_amount_is_parsed(self):
        """Test spreadsheet-style amounts are accepted."""
        assert Transaction(category="A", amount="12,000").amount == 12000.0
        assert Transaction(category="A", amount="¥5000").amount == 5000.0

    def test_blank_category_falls_back(self):
        """Test missing or blank category becomes the sentinel label."""
        assert Transaction(amount=1).category == UNCATEGORIZED
        assert Transaction(amount=1, category="   ").category == UNCATEGORIZED
        assert Transaction(amount=1, category=None).category == UNCATEGORIZED

    def test_free_text_category_is_kept(self):
        """Test categories are not matched against a fixed list."""
        assert Transaction(amount=1, category="My Custom Cost").category == "My Custom Cost"

    def test_unparseable_date_becomes_none(self):
        """Test bad dates are coerced, not rejected."""
        assert Transaction(amount=1, date="not a date").date is None
        assert Transaction(amount=1, date="").date is None

    def test_blank_memo_becomes_none(self):
        """Test blank memo is treated as absent."""
        assert Transaction(amount=1, memo="  ").memo is None

    def test_unknown_type_is_expense(self):
        """Test anything not explicitly income is an expense."""
        assert Transaction(amount=1, type="refund").type == TransactionType.EXPENSE
        assert Transaction(amount=1, type="INCOME").type == TransactionType.INCOME

    def test_transaction_is_immutable(self):
        """Test transactions cannot be modified after creation."""
        txn = Transaction(amount=1, category="A")
        with pytest.raises(ValidationError):
            txn.amount = 2


class TestHistoricalModels:
    """Tests for history input models."""

    def test_non_numeric_values_become_none(self):
        """Test non-numeric history values are stored as None."""
        point = HistoricalPoint(year=2023, category="A", amount="n/a", ratio=None)
        assert point.amount is None
        assert point.ratio is None

    def test_nan_is_kept_for_the_comparator(self):
        """Test NaN is passed through; the comparator decides usability."""
        point = HistoricalPoint(year=2023, category="A", amount=float("nan"))
        assert math.isnan(point.amount)

    def test_unusable_summary(self):
        """Test the explicit unusable sentinel."""
        summary = HistoricalSummary.unusable("sheet missing")
        assert summary.usable is False
        assert summary.reason == "sheet missing"
        assert summary.for_category("A") == []

    def test_for_category_filters_points(self):
        """Test per-category history lookup."""
        summary = HistoricalSummary(
            usable=True,
            points=[
                HistoricalPoint(year=2023, category="A", amount=1),
                HistoricalPoint(year=2023, category="B", amount=2),
            ],
        )
        assert [p.category for p in summary.for_category("A")] == ["A"]


class TestRiskModels:
    """Tests for risk output models."""

    def test_risk_level_only_upgrades(self):
        """Test at_least returns the higher level."""
        assert RiskLevel.LOW.at_least(RiskLevel.HIGH) == RiskLevel.HIGH
        assert RiskLevel.HIGH.at_least(RiskLevel.MEDIUM) == RiskLevel.HIGH

    def test_severity_maps_to_risk_level(self):
        """Test severity to risk level mapping."""
        assert Severity.MEDIUM.risk_level == RiskLevel.MEDIUM
        assert Severity.HIGH.risk_level == RiskLevel.HIGH

    def test_comparator_result_defaults_to_none(self):
        """Test comparator fields default to None, not 0."""
        result = ComparatorResult()
        assert result.growth_rate is None
        assert result.z_score is None
        assert result.diff_ratio is None
        assert result.has_any is False

    def test_profile_rejects_inconsistent_anomaly_count(self):
        """Test anomaly_count must match the anomaly list."""
        with pytest.raises(ValueError, match="anomaly_count"):
            CategoryRiskProfile(
                category="A",
                total_amount=100,
                ratio_of_total=100,
                max_single_amount=100,
                max_single_ratio=100,
                risk_level=RiskLevel.LOW,
                issues=["fact"],
                anomalies=[],
                anomaly_count=1,
            )

    def test_profile_requires_issues(self):
        """Test a profile always carries at least one issue."""
        with pytest.raises(ValueError):
            CategoryRiskProfile(
                category="A",
                total_amount=100,
                ratio_of_total=100,
                max_single_amount=100,
                max_single_ratio=100,
                risk_level=RiskLevel.LOW,
                issues=[],
                anomalies=[],
                anomaly_count=0,
            )

    def test_anomaly_record_is_immutable(self):
        """Test anomaly records cannot be modified."""
        record = AnomalyRecord(
            dimension=AnomalyDimension.RATIO_DRIFT,
            category="A",
            value=25.0,
            severity=Severity.MEDIUM,
            message="fact",
            rule_description="rule",
        )
        with pytest.raises(ValidationError):
            record.value = 0

    def test_forecast_record_date_format(self):
        """Test the cache record date must be YYYY-MM-DD."""
        with pytest.raises(ValueError):
            ForecastRecord(user_id="u1", year=2024, date="2024/01/01")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.FORECAST_REQUESTED,
            description="Forecast requested",
        )
        assert event.event_type == AuditEventType.FORECAST_REQUESTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.FORECAST_COMPUTED,
            description="Scored",
            user_id="u1",
            year=2024,
            details={"profile_count": 3},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "forecast_computed"
        assert log_dict["year"] == 2024
        assert log_dict["details"]["profile_count"] == 3

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.FORECAST_SAVED,
            description="Saved",
            user_id="u1",
            year=2024,
        )
        row = event.to_sheets_row()
        assert len(row) == 10  # Expected number of columns
        assert row[2] == "forecast_saved"
        assert row[4] == "u1"
        assert row[5] == "2024"

    def test_builder_cache_failure_picks_event_type(self):
        """Test AuditEventBuilder.cache_failure for reads and writes."""
        correlation_id = uuid4()
        read = AuditEventBuilder.cache_failure("u1", 2024, "read", "boom", correlation_id)
        write = AuditEventBuilder.cache_failure("u1", 2024, "write", "boom", correlation_id)
        assert read.event_type == AuditEventType.CACHE_READ_FAILED
        assert write.event_type == AuditEventType.CACHE_WRITE_FAILED
        assert read.severity == AuditSeverity.WARNING
        assert read.error_message == "boom"

    def test_builder_history_unavailable(self):
        """Test AuditEventBuilder.history_unavailable."""
        correlation_id = uuid4()
        event = AuditEventBuilder.history_unavailable("u1", 2024, "no sheet", correlation_id)
        assert event.event_type == AuditEventType.HISTORY_UNAVAILABLE
        assert event.details["reason"] == "no sheet"
        assert event.correlation_id == correlation_id


class TestThresholdSettings:
    """Tests for the risk policy configuration."""

    def test_defaults(self, thresholds):
        """Test default policy constants."""
        assert thresholds.composition_medium_pct == 40
        assert thresholds.composition_high_pct == 60
        assert thresholds.growth_medium_pct == 50
        assert thresholds.zscore_high == 3.0
        assert thresholds.cross_match_min_amount == 100_000
        assert thresholds.cross_match_key_length == 10

    def test_high_below_medium_is_rejected(self):
        """Test inconsistent bands are rejected."""
        with pytest.raises(ValidationError, match="composition"):
            RiskThresholdSettings(composition_medium_pct=70, composition_high_pct=60)

    def test_thresholds_from_environment(self, monkeypatch):
        """Test policy constants can be tuned without code changes."""
        monkeypatch.setenv("RISK_GROWTH_MEDIUM_PCT", "30")
        assert RiskThresholdSettings().growth_medium_pct == 30


class TestAppSettings:
    """Tests for application settings."""

    def test_default_timezone(self):
        assert AppSettings().timezone == "Asia/Tokyo"

    def test_unknown_timezone_is_rejected(self):
        """Test a bad zone name fails at load time, not on every request."""
        with pytest.raises(ValidationError, match="Unknown timezone"):
            AppSettings(timezone="Mars/Olympus_Mons")

    def test_startup_check_reports_bad_timezone(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "Not/A_Zone")
        results = validate_all_settings()
        assert results["app"] is False
        assert "Unknown timezone" in results["app_error"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
