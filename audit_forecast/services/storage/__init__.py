"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the
forecast's collaborators: transaction source, historical summary,
forecast cache and audit trail. Google Sheets is the production backend;
the in-memory backend serves tests and unconfigured environments.
"""

from audit_forecast.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStorageInterface,
    HistoricalSummaryInterface,
    MalformedForecastError,
    NotFoundError,
    StorageError,
    TransactionSourceInterface,
)
from audit_forecast.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStorage,
    GoogleSheetsSummarySource,
    GoogleSheetsTransactionSource,
    TransactionHistorySummarySource,
)
from audit_forecast.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryForecastStorage,
    InMemorySummarySource,
    InMemoryTransactionSource,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ForecastStorageInterface",
    "HistoricalSummaryInterface",
    "TransactionSourceInterface",
    # Exceptions
    "ConnectionError",
    "MalformedForecastError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsForecastStorage",
    "GoogleSheetsSummarySource",
    "GoogleSheetsTransactionSource",
    "TransactionHistorySummarySource",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryForecastStorage",
    "InMemorySummarySource",
    "InMemoryTransactionSource",
]
