"""Validation package - the ingestion boundary."""

from audit_forecast.validation.normalizer import (
    has_legacy_comparators,
    normalize_cached_profiles,
    normalize_legacy_comparators,
    normalize_transaction,
    normalize_transactions,
    validate_forecast_record,
)

__all__ = [
    "has_legacy_comparators",
    "normalize_cached_profiles",
    "normalize_legacy_comparators",
    "normalize_transaction",
    "normalize_transactions",
    "validate_forecast_record",
]
