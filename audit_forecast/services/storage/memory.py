"""
In-Memory Storage Implementation

Used by tests and as the fallback when Google Sheets is not configured.
Forecast records are kept in their serialized form so that reads go
through the same structure validation as a real backend.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from audit_forecast.models.audit import AuditEvent
from audit_forecast.models.risk import CategoryRiskProfile
from audit_forecast.models.transaction import HistoricalSummary, Transaction
from audit_forecast.services.storage.interface import (
    AuditStorageInterface,
    ForecastStorageInterface,
    HistoricalSummaryInterface,
    TransactionSourceInterface,
)
from audit_forecast.validation.normalizer import validate_forecast_record


class InMemoryTransactionSource(TransactionSourceInterface):
    """Transactions keyed by (user_id, year)."""

    def __init__(self, data: Optional[dict[tuple[str, int], list[Transaction]]] = None):
        self.data = dict(data or {})

    def add(self, user_id: str, year: int, transactions: list[Transaction]) -> None:
        self.data.setdefault((user_id, year), []).extend(transactions)

    async def get_transactions(self, user_id: str, year: int) -> list[Transaction]:
        return list(self.data.get((user_id, year), []))


class InMemorySummarySource(HistoricalSummaryInterface):
    """Returns a fixed summary per user (unusable when none is set)."""

    def __init__(self, summaries: Optional[dict[str, HistoricalSummary]] = None):
        self.summaries = dict(summaries or {})

    async def fetch_account_history(self, user_id: str, year: int) -> HistoricalSummary:
        summary = self.summaries.get(user_id)
        if summary is None:
            return HistoricalSummary.unusable("No summary data for user")
        return summary


class InMemoryForecastStorage(ForecastStorageInterface):
    """
    Forecast cache in a dict keyed by (user_id, year).

    `records` holds raw dicts as a document store would return them.
    """

    def __init__(self):
        self.records: dict[tuple[str, int], Any] = {}

    async def get_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
    ) -> Optional[list[CategoryRiskProfile]]:
        raw = self.records.get((user_id, year))
        if raw is None:
            return None
        record = validate_forecast_record(raw)
        if record.date != date:
            return None
        return record.results

    async def save_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
        profiles: list[CategoryRiskProfile],
    ) -> bool:
        self.records[(user_id, year)] = {
            "user_id": user_id,
            "year": year,
            "date": date,
            "results": [p.model_dump(mode="json") for p in profiles],
            "updated_at": datetime.utcnow().isoformat(),
        }
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        found = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(found, key=lambda e: e.timestamp)

    async def get_events_for_forecast(
        self,
        user_id: str,
        year: int,
    ) -> list[AuditEvent]:
        found = [e for e in self.events if e.user_id == user_id and e.year == year]
        return sorted(found, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
