"""
Ingestion Boundary

Everything that enters the engine from outside passes through here:

INBOUND TRANSACTIONS:
- Spreadsheet rows (dicts) become Transaction models
- Column names vary between sheets ("memo", "description", "counterparty")
- Malformed cells are coerced by the Transaction validators, never rejected

CACHED FORECASTS:
- Stored records are checked for structure before use
- Profiles written by older releases may carry growth_rate, z_score and
  diff_ratio all set to literal 0. That triple was written when history was
  missing, so it means "no data" and is normalized to None.

DESIGN DECISION: The legacy normalization is a migration concern. Freshly
computed profiles never produce the all-zero triple through this path, so
it is applied only to profiles read back from persistence.
"""

import json
from typing import Any, Iterable, Union

import structlog
from pydantic import ValidationError

from audit_forecast.exceptions import MalformedForecastError
from audit_forecast.models.forecast import ForecastRecord
from audit_forecast.models.risk import CategoryRiskProfile
from audit_forecast.models.transaction import Transaction


logger = structlog.get_logger(__name__)


# Accepted column names per Transaction field, first match wins
_FIELD_ALIASES = {
    "id": ("id", "transaction_id"),
    "date": ("date",),
    "amount": ("amount",),
    "category": ("category", "account", "account_name"),
    "memo": ("memo", "description", "counterparty"),
    "type": ("type",),
    "receipt_url": ("receipt_url", "receiptUrl"),
}

_COMPARATOR_FIELDS = ("growth_rate", "z_score", "diff_ratio")


# =============================================================================
# TRANSACTIONS
# =============================================================================

def _pick(row: dict, aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_transaction(row: dict) -> Transaction:
    """Build a Transaction from one raw row. Never raises for bad cell values."""
    return Transaction(**{
        field: _pick(row, aliases) for field, aliases in _FIELD_ALIASES.items()
    })


def normalize_transactions(rows: Iterable[Any]) -> list[Transaction]:
    """
    Convert raw rows to Transactions.

    Rows that are not mappings at all (e.g. stray cells) are skipped.
    """
    transactions = []
    skipped = 0
    for row in rows:
        if not isinstance(row, dict):
            skipped += 1
            continue
        transactions.append(normalize_transaction(row))

    if skipped:
        logger.warning("Skipped non-record transaction rows", skipped=skipped)
    return transactions


# =============================================================================
# LEGACY COMPARATOR VALUES
# =============================================================================

def _comparator_values(profile: Union[CategoryRiskProfile, dict]) -> list[Any]:
    if isinstance(profile, dict):
        return [profile.get(name) for name in _COMPARATOR_FIELDS]
    return [getattr(profile, name) for name in _COMPARATOR_FIELDS]


def has_legacy_comparators(profile: Union[CategoryRiskProfile, dict]) -> bool:
    """True when all three comparator fields are literally 0."""
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and v == 0
        for v in _comparator_values(profile)
    )


def normalize_legacy_comparators(
    profile: Union[CategoryRiskProfile, dict],
) -> Union[CategoryRiskProfile, dict]:
    """
    Replace an all-zero comparator triple with None.

    Any other combination, including a single legitimate 0, is left alone.
    Returns a new object; the input is not modified.
    """
    if not has_legacy_comparators(profile):
        return profile
    cleared = {name: None for name in _COMPARATOR_FIELDS}
    if isinstance(profile, dict):
        return {**profile, **cleared}
    return profile.model_copy(update=cleared)


def normalize_cached_profiles(
    profiles: list[CategoryRiskProfile],
) -> tuple[list[CategoryRiskProfile], list[str]]:
    """
    Normalize every cached profile.

    Returns:
        (profiles, categories whose comparator values were normalized)
    """
    normalized = []
    touched = []
    for profile in profiles:
        if has_legacy_comparators(profile):
            touched.append(profile.category)
        normalized.append(normalize_legacy_comparators(profile))
    return normalized, touched


# =============================================================================
# STORED FORECAST STRUCTURE
# =============================================================================

def validate_forecast_record(raw: Any) -> ForecastRecord:
    """
    Check a stored forecast record and parse it.

    Accepts a dict or its JSON text. The record must carry a date string
    and a results list of profile objects.

    Raises:
        MalformedForecastError: If the structure is not a forecast record
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedForecastError(f"Forecast record is not valid JSON: {e}")

    if not isinstance(raw, dict):
        raise MalformedForecastError(
            f"Forecast record must be an object, got {type(raw).__name__}"
        )
    if not isinstance(raw.get("date"), str):
        raise MalformedForecastError("Forecast record has no date string")

    results = raw.get("results")
    if not isinstance(results, list):
        raise MalformedForecastError("Forecast record has no results list")
    if any(not isinstance(item, dict) for item in results):
        raise MalformedForecastError("Forecast results must be profile objects")

    try:
        return ForecastRecord.model_validate(raw)
    except ValidationError as e:
        raise MalformedForecastError(
            f"Forecast record failed validation ({e.error_count()} errors)"
        )
