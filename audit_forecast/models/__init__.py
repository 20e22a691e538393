"""
Data Models Package

This package contains all Pydantic models used in the Audit Forecast system.
All data flowing through the engine must conform to these schemas.
"""

from audit_forecast.models.transaction import (
    UNCATEGORIZED,
    HistoricalPoint,
    HistoricalSummary,
    Transaction,
    TransactionType,
)
from audit_forecast.models.risk import (
    AnomalyDimension,
    AnomalyRecord,
    CategoryAggregate,
    CategoryMetrics,
    CategoryRiskProfile,
    ComparatorResult,
    CrossCategoryMatch,
    RiskLevel,
    Severity,
)
from audit_forecast.models.forecast import (
    BookkeepingCheck,
    CheckType,
    ForecastRecord,
    ForecastResult,
)
from audit_forecast.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Input models
    "UNCATEGORIZED",
    "HistoricalPoint",
    "HistoricalSummary",
    "Transaction",
    "TransactionType",
    # Risk models
    "AnomalyDimension",
    "AnomalyRecord",
    "CategoryAggregate",
    "CategoryMetrics",
    "CategoryRiskProfile",
    "ComparatorResult",
    "CrossCategoryMatch",
    "RiskLevel",
    "Severity",
    # Forecast models
    "BookkeepingCheck",
    "CheckType",
    "ForecastRecord",
    "ForecastResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
