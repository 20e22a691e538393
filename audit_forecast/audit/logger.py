"""
Audit Logger

DESIGN DECISION: Every forecast run is logged, cache hits included.
This provides:
1. An answer to "why did today's forecast change?"
2. Visibility into degraded runs (no history, cache unavailable)
3. Debugging capability

The audit logger:
- Is async to match the storage interfaces
- Gracefully handles failures (never breaks a forecast if logging fails)
- Supports correlation IDs to trace the events of one request
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from audit_forecast.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from audit_forecast.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog's JSON lines through the stdlib root logger at `level`."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit sheet (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_forecast_requested(
        self,
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.forecast_requested(
            user_id=user_id,
            year=year,
            date=date,
            correlation_id=correlation_id,
        ))

    async def log_cache_hit(
        self,
        user_id: str,
        year: int,
        date: str,
        profile_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.cache_hit(
            user_id=user_id,
            year=year,
            date=date,
            profile_count=profile_count,
            correlation_id=correlation_id,
        ))

    async def log_cache_miss(
        self,
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.cache_miss(
            user_id=user_id,
            year=year,
            date=date,
            correlation_id=correlation_id,
        ))

    async def log_forecast_computed(
        self,
        user_id: str,
        year: int,
        profile_count: int,
        anomaly_count: int,
        history_used: bool,
        correlation_id: UUID,
    ) -> None:
        """Log completion of a scoring pass."""
        await self.log(AuditEventBuilder.forecast_computed(
            user_id=user_id,
            year=year,
            profile_count=profile_count,
            anomaly_count=anomaly_count,
            history_used=history_used,
            correlation_id=correlation_id,
        ))

    async def log_forecast_saved(
        self,
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.forecast_saved(
            user_id=user_id,
            year=year,
            date=date,
            correlation_id=correlation_id,
        ))

    async def log_history_unavailable(
        self,
        user_id: str,
        year: int,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a run that scored without historical comparison."""
        await self.log(AuditEventBuilder.history_unavailable(
            user_id=user_id,
            year=year,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_cache_failure(
        self,
        user_id: str,
        year: int,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed cache read or write ("read" / "write")."""
        await self.log(AuditEventBuilder.cache_failure(
            user_id=user_id,
            year=year,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_legacy_data_normalized(
        self,
        user_id: str,
        year: int,
        categories: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.legacy_data_normalized(
            user_id=user_id,
            year=year,
            categories=categories,
            correlation_id=correlation_id,
        ))

    async def log_deadline_exceeded(
        self,
        user_id: str,
        year: int,
        timeout_seconds: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.deadline_exceeded(
            user_id=user_id,
            year=year,
            timeout_seconds=timeout_seconds,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a forecast request.
    Pass it through all subsequent operations.
    """
    return uuid4()
