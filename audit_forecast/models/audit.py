"""
Audit Models for Audit Forecast

Every forecast run leaves a trail: whether the cache was used, whether
history was available, what was computed and whether it was persisted.
When a user asks "why does today's forecast differ from yesterday's?",
this trail answers it.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit during a forecast run."""
    FORECAST_REQUESTED = "forecast_requested"
    FORECAST_CACHE_HIT = "forecast_cache_hit"
    FORECAST_CACHE_MISS = "forecast_cache_miss"
    FORECAST_COMPUTED = "forecast_computed"
    FORECAST_SAVED = "forecast_saved"

    # Degradations
    HISTORY_UNAVAILABLE = "history_unavailable"
    CACHE_READ_FAILED = "cache_read_failed"
    CACHE_WRITE_FAILED = "cache_write_failed"
    LEGACY_DATA_NORMALIZED = "legacy_data_normalized"
    DEADLINE_EXCEEDED = "deadline_exceeded"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which forecast is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="User the forecast belongs to"
    )
    year: Optional[int] = Field(
        default=None,
        description="Fiscal year being forecast"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one forecast request"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "year": self.year,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, year,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            str(self.year) if self.year is not None else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.cache_hit(user_id, year, date, count, correlation_id)
        event = AuditEventBuilder.history_unavailable(user_id, year, reason, correlation_id)
    """

    @staticmethod
    def forecast_requested(
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_REQUESTED,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"Audit forecast requested for {year} on {date}",
            details={"date": date},
        )

    @staticmethod
    def cache_hit(
        user_id: str,
        year: int,
        date: str,
        profile_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_CACHE_HIT,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"Reused forecast computed on {date}",
            details={"date": date, "profile_count": profile_count},
        )

    @staticmethod
    def cache_miss(
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_CACHE_MISS,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"No forecast cached for {date}; recomputing",
            details={"date": date},
        )

    @staticmethod
    def forecast_computed(
        user_id: str,
        year: int,
        profile_count: int,
        anomaly_count: int,
        history_used: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_COMPUTED,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=(
                f"Scored {profile_count} categories, "
                f"{anomaly_count} anomalies detected"
            ),
            details={
                "profile_count": profile_count,
                "anomaly_count": anomaly_count,
                "history_used": history_used,
            },
        )

    @staticmethod
    def forecast_saved(
        user_id: str,
        year: int,
        date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORECAST_SAVED,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"Forecast cached for {date}",
            details={"date": date},
        )

    @staticmethod
    def history_unavailable(
        user_id: str,
        year: int,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description="Historical data unavailable; comparator fields left empty",
            details={"reason": reason},
        )

    @staticmethod
    def cache_failure(
        user_id: str,
        year: int,
        operation: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        event_type = (
            AuditEventType.CACHE_READ_FAILED
            if operation == "read"
            else AuditEventType.CACHE_WRITE_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"Forecast cache {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def legacy_data_normalized(
        user_id: str,
        year: int,
        categories: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEGACY_DATA_NORMALIZED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=(
                f"Normalized legacy all-zero comparator values in "
                f"{len(categories)} cached profiles"
            ),
            details={"categories": categories},
        )

    @staticmethod
    def deadline_exceeded(
        user_id: str,
        year: int,
        timeout_seconds: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEADLINE_EXCEEDED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
            description=f"Forecast discarded after {timeout_seconds:.0f}s deadline",
            details={"timeout_seconds": timeout_seconds},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
