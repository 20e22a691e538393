"""
Main Orchestrator for Audit Forecast

This module ties the scoring engine to its collaborators and defines the
end-to-end forecast flow:

    cache check -> transactions -> history -> score -> save

DESIGN DECISION: The orchestrator enforces the degradation rules:
- A forecast is computed at most once per calendar day per (user, year)
- Missing or failing history means "no comparison", never "no change"
- A failing cache never blocks a forecast; it only costs a recompute
- Every step is audited

The engine itself stays pure. Everything that can fail lives here.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from audit_forecast.audit import AuditLogger, configure_logging, create_correlation_id
from audit_forecast.config import get_settings, validate_all_settings
from audit_forecast.config.settings import RiskThresholdSettings
from audit_forecast.engine import generate_bookkeeping_checks, score_categories
from audit_forecast.models.forecast import BookkeepingCheck, ForecastResult
from audit_forecast.models.risk import CategoryRiskProfile
from audit_forecast.models.transaction import HistoricalSummary, Transaction
from audit_forecast.services.storage import (
    ForecastStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsForecastStorage,
    GoogleSheetsSummarySource,
    GoogleSheetsTransactionSource,
    HistoricalSummaryInterface,
    InMemoryForecastStorage,
    InMemoryTransactionSource,
    MalformedForecastError,
    TransactionHistorySummarySource,
    TransactionSourceInterface,
)
from audit_forecast.utils.dates import current_year, today_string
from audit_forecast.validation import normalize_cached_profiles


logger = structlog.get_logger(__name__)


class AuditForecastFlow:
    """
    Orchestrates the audit forecast flow.

    Flow:
    1. Cache → Reuse today's forecast for (user, year) if one exists
    2. Transactions → Load the year's bookkeeping (failure propagates)
    3. History → Load the summary (failure degrades to no comparison)
    4. Score → Run the pure scoring pass
    5. Save → Overwrite the cached forecast (failure is logged only)

    Concurrent requests for the same (user, date) may both compute and
    both write. Both results are equivalent; the last write wins.
    """

    def __init__(
        self,
        transaction_source: TransactionSourceInterface,
        summary_source: Optional[HistoricalSummaryInterface] = None,
        forecast_storage: Optional[ForecastStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        thresholds: Optional[RiskThresholdSettings] = None,
        timezone: Optional[str] = None,
    ):
        settings = get_settings()
        self._transactions = transaction_source
        self._summary = summary_source
        self._cache = forecast_storage
        self._audit_logger = audit_logger
        self._thresholds = thresholds or settings.thresholds
        self._timezone = timezone or settings.app.timezone
        self._timeout_seconds = settings.app.request_timeout_seconds

    async def _read_cache(
        self,
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID,
    ) -> Optional[list[CategoryRiskProfile]]:
        """Today's cached profiles, or None on a miss or any cache failure."""
        if self._cache is None:
            return None

        try:
            cached = await self._cache.get_forecast(user_id, year, date)
        except MalformedForecastError as e:
            logger.warning("Cached forecast is malformed", user_id=user_id, year=year, error=str(e))
            await self._audit(
                "log_cache_failure", user_id=user_id, year=year, operation="read",
                error_message=str(e), correlation_id=correlation_id,
            )
            return None
        except Exception as e:
            logger.warning("Forecast cache read failed", user_id=user_id, year=year, error=str(e))
            await self._audit(
                "log_cache_failure", user_id=user_id, year=year, operation="read",
                error_message=str(e), correlation_id=correlation_id,
            )
            return None

        if cached is None:
            return None

        profiles, normalized = normalize_cached_profiles(cached)
        if normalized:
            await self._audit(
                "log_legacy_data_normalized", user_id=user_id, year=year,
                categories=normalized, correlation_id=correlation_id,
            )
        return profiles

    async def _load_history(
        self,
        user_id: str,
        year: int,
        correlation_id: UUID,
    ) -> HistoricalSummary:
        """History for `year`. A failing source is treated like an unusable one."""
        if self._summary is None:
            summary = HistoricalSummary.unusable("No summary source configured")
        else:
            try:
                summary = await self._summary.fetch_account_history(user_id, year)
            except Exception as e:
                logger.warning("History fetch failed", user_id=user_id, year=year, error=str(e))
                summary = HistoricalSummary.unusable(f"History fetch failed: {e}")

        if not summary.usable:
            await self._audit(
                "log_history_unavailable", user_id=user_id, year=year,
                reason=summary.reason or "unknown", correlation_id=correlation_id,
            )
        return summary

    async def _write_cache(
        self,
        user_id: str,
        year: int,
        date: str,
        profiles: list[CategoryRiskProfile],
        correlation_id: UUID,
    ) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.save_forecast(user_id, year, date, profiles)
        except Exception as e:
            logger.warning("Forecast cache write failed", user_id=user_id, year=year, error=str(e))
            await self._audit(
                "log_cache_failure", user_id=user_id, year=year, operation="write",
                error_message=str(e), correlation_id=correlation_id,
            )
            return
        await self._audit(
            "log_forecast_saved", user_id=user_id, year=year, date=date,
            correlation_id=correlation_id,
        )

    async def _audit(self, method: str, **kwargs) -> None:
        if self._audit_logger:
            await getattr(self._audit_logger, method)(**kwargs)

    async def get_forecast(
        self,
        user_id: str,
        year: Optional[int] = None,
        transactions: Optional[list[Transaction]] = None,
        force_refresh: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> ForecastResult:
        """
        Get the ranked risk profiles for a user's year.

        Args:
            user_id: Owner of the books
            year: Year to score (defaults to the current year)
            transactions: Use these instead of reading the transaction source
            force_refresh: Skip the cache check and recompute
            correlation_id: Shared by all audit events of this request

        Returns:
            ForecastResult; profiles are empty when there are no expenses

        Raises:
            StorageError: If the transaction source cannot be read
        """
        correlation_id = correlation_id or create_correlation_id()
        year = year or current_year(self._timezone)
        date = today_string(self._timezone)

        await self._audit(
            "log_forecast_requested", user_id=user_id, year=year, date=date,
            correlation_id=correlation_id,
        )

        if not force_refresh:
            cached = await self._read_cache(user_id, year, date, correlation_id)
            if cached is not None:
                await self._audit(
                    "log_cache_hit", user_id=user_id, year=year, date=date,
                    profile_count=len(cached), correlation_id=correlation_id,
                )
                return ForecastResult(
                    user_id=user_id,
                    year=year,
                    date=date,
                    profiles=cached,
                    from_cache=True,
                    history_used=any(
                        p.growth_rate is not None
                        or p.z_score is not None
                        or p.diff_ratio is not None
                        for p in cached
                    ),
                )
            await self._audit(
                "log_cache_miss", user_id=user_id, year=year, date=date,
                correlation_id=correlation_id,
            )

        if transactions is None:
            try:
                transactions = await self._transactions.get_transactions(user_id, year)
            except Exception as e:
                await self._audit(
                    "log_external_service_error", service="transaction_source",
                    error_message=str(e), correlation_id=correlation_id,
                )
                raise

        history = await self._load_history(user_id, year, correlation_id)
        try:
            profiles = score_categories(transactions, history, year, self._thresholds)
        except Exception as e:
            logger.exception("Scoring failed", user_id=user_id, year=year)
            await self._audit(
                "log_error", error_type=type(e).__name__, error_message=str(e),
                details={"user_id": user_id, "year": year}, correlation_id=correlation_id,
            )
            raise

        await self._audit(
            "log_forecast_computed", user_id=user_id, year=year,
            profile_count=len(profiles),
            anomaly_count=sum(p.anomaly_count for p in profiles),
            history_used=history.usable, correlation_id=correlation_id,
        )
        logger.info(
            "Forecast computed",
            user_id=user_id,
            year=year,
            categories=len(profiles),
            history_used=history.usable,
        )

        await self._write_cache(user_id, year, date, profiles, correlation_id)

        return ForecastResult(
            user_id=user_id,
            year=year,
            date=date,
            profiles=profiles,
            from_cache=False,
            history_used=history.usable,
        )

    async def get_forecast_with_deadline(
        self,
        user_id: str,
        year: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ) -> ForecastResult:
        """
        get_forecast under an overall request deadline.

        On expiry the in-flight run is cancelled and its result discarded.

        Raises:
            asyncio.TimeoutError: If the deadline passes
        """
        timeout_seconds = timeout_seconds or self._timeout_seconds
        correlation_id = kwargs.pop("correlation_id", None) or create_correlation_id()
        try:
            return await asyncio.wait_for(
                self.get_forecast(user_id, year, correlation_id=correlation_id, **kwargs),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._audit(
                "log_deadline_exceeded", user_id=user_id,
                year=year or current_year(self._timezone),
                timeout_seconds=timeout_seconds, correlation_id=correlation_id,
            )
            raise

    async def get_bookkeeping_checks(
        self,
        user_id: str,
        year: Optional[int] = None,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[BookkeepingCheck]:
        """Record-keeping checklist for a user's year."""
        year = year or current_year(self._timezone)
        if transactions is None:
            transactions = await self._transactions.get_transactions(user_id, year)
        return generate_bookkeeping_checks(transactions, self._thresholds)


def create_app_components(
    use_storage: bool = True,
) -> tuple[AuditForecastFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        (forecast_flow, sheets_client)
    """
    sheets_client = None
    configure_logging(get_settings().app.log_level)

    if use_storage and not validate_all_settings().get("google_sheets"):
        logger.warning("Google Sheets settings incomplete, using in-memory storage")
        use_storage = False

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            transaction_source = GoogleSheetsTransactionSource(sheets_client)
            summary_source = (
                GoogleSheetsSummarySource(sheets_client)
                if sheets_client.find_sheet(sheets_client.settings.summary_sheet_name)
                else TransactionHistorySummarySource(transaction_source)
            )
            forecast_flow = AuditForecastFlow(
                transaction_source=transaction_source,
                summary_source=summary_source,
                forecast_storage=GoogleSheetsForecastStorage(sheets_client),
                audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
            )
            return forecast_flow, sheets_client
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("Storage not configured", error=str(e))

    forecast_flow = AuditForecastFlow(
        transaction_source=InMemoryTransactionSource(),
        forecast_storage=InMemoryForecastStorage(),
        audit_logger=AuditLogger(),  # Local-only logging
    )
    return forecast_flow, None
