"""
Abstract Storage Interface

DESIGN DECISION: The scoring engine never talks to a backend directly.
Every collaborator it depends on is an abstract interface here, so that:
1. Google Sheets can be swapped for a database later
2. In-memory storage is used for testing
3. The engine stays pure and testable without network access

The interfaces are intentionally small. Just the operations a forecast
run needs.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from audit_forecast.exceptions import (
    ConnectionError,
    MalformedForecastError,
    NotFoundError,
    StorageError,
)
from audit_forecast.models.audit import AuditEvent
from audit_forecast.models.risk import CategoryRiskProfile
from audit_forecast.models.transaction import HistoricalSummary, Transaction


class TransactionSourceInterface(ABC):
    """Where a user's bookkeeping for one year comes from."""

    @abstractmethod
    async def get_transactions(self, user_id: str, year: int) -> list[Transaction]:
        """
        Get all transactions for a user and year.

        Args:
            user_id: Owner of the books
            year: Fiscal (calendar) year

        Returns:
            Transactions, already coerced to safe values. A year with no
            bookkeeping returns an empty list.

        Raises:
            StorageError: If the source cannot be read
        """
        pass


class HistoricalSummaryInterface(ABC):
    """Multi-year account totals used by the historical comparator."""

    @abstractmethod
    async def fetch_account_history(
        self,
        user_id: str,
        year: int,
    ) -> HistoricalSummary:
        """
        Get history relevant to scoring `year`.

        Returns:
            HistoricalSummary with usable=True and points, or usable=False
            with a reason. Callers must treat a raised exception exactly
            like usable=False.
        """
        pass


class ForecastStorageInterface(ABC):
    """
    Result cache for computed forecasts.

    One record per (user, year); every save overwrites it. A record is
    only returned when its date equals the requested date.
    """

    @abstractmethod
    async def get_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
    ) -> Optional[list[CategoryRiskProfile]]:
        """
        Get the cached profiles computed on `date`.

        Args:
            user_id: Owner of the forecast
            year: Fiscal year of the forecast
            date: Calendar date (YYYY-MM-DD) in the deployment timezone

        Returns:
            The stored ranked profiles, or None if nothing is stored or the
            stored record is from another date

        Raises:
            MalformedForecastError: If the stored record is unreadable
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
        profiles: list[CategoryRiskProfile],
    ) -> bool:
        """
        Store the ranked profiles for (user, year), replacing any previous record.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events of one forecast request, in chronological order.
        """
        pass

    @abstractmethod
    async def get_events_for_forecast(
        self,
        user_id: str,
        year: int,
    ) -> list[AuditEvent]:
        """
        Get all events about one user's forecast for a year, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "ForecastStorageInterface",
    "HistoricalSummaryInterface",
    "TransactionSourceInterface",
    "ConnectionError",
    "MalformedForecastError",
    "NotFoundError",
    "StorageError",
]
