"""Shared fixtures for the Audit Forecast test suite."""

import pytest

from audit_forecast.config import RiskThresholdSettings
from audit_forecast.models import (
    AnomalyDimension,
    AnomalyRecord,
    CategoryRiskProfile,
    RiskLevel,
    Severity,
    Transaction,
)


@pytest.fixture
def thresholds() -> RiskThresholdSettings:
    """Default policy constants, independent of the environment."""
    return RiskThresholdSettings()


def make_txn(
    category: str,
    amount: float,
    memo: str = None,
    date: str = "2024-06-01",
    type: str = "expense",
    id: str = "",
    receipt_url: str = None,
) -> Transaction:
    return Transaction(
        id=id,
        date=date,
        amount=amount,
        category=category,
        memo=memo,
        type=type,
        receipt_url=receipt_url,
    )


def make_anomaly(
    category: str,
    dimension: AnomalyDimension = AnomalyDimension.COMPOSITION_RATIO,
    severity: Severity = Severity.MEDIUM,
) -> AnomalyRecord:
    return AnomalyRecord(
        dimension=dimension,
        category=category,
        value=1.0,
        severity=severity,
        message=f"{category} fact",
        rule_description="rule",
    )


def make_profile(
    category: str,
    anomaly_count: int = 0,
    risk_level: RiskLevel = RiskLevel.LOW,
    total_amount: float = 1000.0,
) -> CategoryRiskProfile:
    anomalies = [make_anomaly(category) for _ in range(anomaly_count)]
    return CategoryRiskProfile(
        category=category,
        total_amount=total_amount,
        ratio_of_total=10.0,
        max_single_amount=total_amount,
        max_single_ratio=10.0,
        risk_level=risk_level,
        issues=["fact", "Review supporting documentation"],
        anomalies=anomalies,
        anomaly_count=anomaly_count,
    )
