"""Services package."""

from audit_forecast.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStorage,
    GoogleSheetsSummarySource,
    GoogleSheetsTransactionSource,
    HistoricalSummaryInterface,
    InMemoryAuditStorage,
    InMemoryForecastStorage,
    InMemorySummarySource,
    InMemoryTransactionSource,
    MalformedForecastError,
    NotFoundError,
    StorageError,
    TransactionHistorySummarySource,
    TransactionSourceInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "ForecastStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsForecastStorage",
    "GoogleSheetsSummarySource",
    "GoogleSheetsTransactionSource",
    "HistoricalSummaryInterface",
    "InMemoryAuditStorage",
    "InMemoryForecastStorage",
    "InMemorySummarySource",
    "InMemoryTransactionSource",
    "MalformedForecastError",
    "NotFoundError",
    "StorageError",
    "TransactionHistorySummarySource",
    "TransactionSourceInterface",
]
