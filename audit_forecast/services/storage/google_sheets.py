"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because the books
already live there:
1. Users keep one "Transactions {year}" worksheet per year
2. The audit summary sheet is maintained next to them
3. Cached forecasts and the audit trail stay visible to the user

TRADEOFFS:
- No transactions: the forecast cache is check-then-write, last write wins
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interfaces, so the engine and the
orchestrator never see gspread.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from audit_forecast.config import get_settings
from audit_forecast.config.settings import GoogleSheetsSettings
from audit_forecast.engine.comparator import build_history_from_transactions
from audit_forecast.models.audit import AuditEvent, AuditEventType, AuditSeverity
from audit_forecast.models.risk import CategoryRiskProfile
from audit_forecast.models.transaction import HistoricalPoint, HistoricalSummary, Transaction
from audit_forecast.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ForecastStorageInterface,
    HistoricalSummaryInterface,
    MalformedForecastError,
    StorageError,
    TransactionSourceInterface,
)
from audit_forecast.validation.normalizer import (
    normalize_transactions,
    validate_forecast_record,
)


logger = structlog.get_logger(__name__)


# Column mappings for the Forecasts sheet
FORECAST_COLUMNS = [
    "user_id",
    "year",
    "date",
    "updated_at",
    "results_json",
]

# Column mappings for the AuditLog sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "year",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

# Column names accepted in the AccountSummary sheet
SUMMARY_CATEGORY_COLUMNS = ("category", "account_name", "accountName")


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def transactions_sheet_name(self, year: int) -> str:
        return f"{self._settings.transactions_sheet_prefix} {year}"

    def find_sheet(self, title: str) -> Optional[gspread.Worksheet]:
        """Get a worksheet by title, or None if it does not exist."""
        try:
            return self.get_spreadsheet().worksheet(title)
        except gspread.WorksheetNotFound:
            return None

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_forecasts_sheet(self) -> gspread.Worksheet:
        """Get or create the Forecasts worksheet."""
        return self._get_or_create(
            self._settings.forecasts_sheet_name, FORECAST_COLUMNS, rows=500
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


# =============================================================================
# TRANSACTIONS AND HISTORY
# =============================================================================

class GoogleSheetsTransactionSource(TransactionSourceInterface):
    """
    Reads the "Transactions {year}" worksheet.

    Rows are records keyed by the header row. When the sheet has a user_id
    column, rows are filtered to the requested user; otherwise the whole
    sheet belongs to the spreadsheet's owner.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_transactions(self, user_id: str, year: int) -> list[Transaction]:
        """Get one year's transactions."""
        title = self._client.transactions_sheet_name(year)
        try:
            sheet = self._client.find_sheet(title)
            if sheet is None:
                logger.info("Transactions sheet not found", sheet=title)
                return []
            records = sheet.get_all_records()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")

        rows = [
            r for r in records
            if not str(r.get("user_id", "") or "") or str(r.get("user_id")) == user_id
        ]
        return normalize_transactions(rows)


class GoogleSheetsSummarySource(HistoricalSummaryInterface):
    """
    Reads the AccountSummary worksheet: one row per (year, category) with
    the category's amount and its share of that year's expense.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_point(self, record: dict) -> Optional[HistoricalPoint]:
        category = next(
            (str(record[c]) for c in SUMMARY_CATEGORY_COLUMNS if record.get(c)),
            None,
        )
        try:
            year = int(record.get("year"))
        except (TypeError, ValueError):
            return None
        if not category:
            return None
        return HistoricalPoint(
            year=year,
            category=category,
            amount=record.get("amount"),
            ratio=record.get("ratio"),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_account_history(self, user_id: str, year: int) -> HistoricalSummary:
        """Get the summary rows. Missing or empty sheets are reported as unusable."""
        title = self._client.settings.summary_sheet_name
        try:
            sheet = self._client.find_sheet(title)
            if sheet is None:
                return HistoricalSummary.unusable(f"Summary sheet '{title}' not found")
            records = sheet.get_all_records()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read account summary: {e}")

        points = [p for p in map(self._record_to_point, records) if p is not None]
        if not points:
            return HistoricalSummary.unusable("Summary sheet has no data")
        return HistoricalSummary(usable=True, points=points)


class TransactionHistorySummarySource(HistoricalSummaryInterface):
    """
    Builds history from the prior years' transaction sheets.

    Used when no summary sheet is maintained. Looks back over the same
    window the comparator uses.
    """

    def __init__(
        self,
        transaction_source: TransactionSourceInterface,
        window_years: Optional[int] = None,
    ):
        self._source = transaction_source
        self._window_years = window_years or get_settings().thresholds.history_window_years

    async def fetch_account_history(self, user_id: str, year: int) -> HistoricalSummary:
        points: list[HistoricalPoint] = []
        for past_year in range(year - self._window_years, year):
            transactions = await self._source.get_transactions(user_id, past_year)
            points.extend(build_history_from_transactions(past_year, transactions))

        if not points:
            return HistoricalSummary.unusable("No prior-year transactions")
        return HistoricalSummary(usable=True, points=points)


# =============================================================================
# FORECAST CACHE
# =============================================================================

class GoogleSheetsForecastStorage(ForecastStorageInterface):
    """
    Google Sheets implementation of the forecast cache.

    One row per (user_id, year). Profiles are JSON-serialized into a
    single cell; a save overwrites the row in place.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, rows: list[list], user_id: str, year: int) -> Optional[int]:
        """1-based sheet row index of the (user, year) record, if any."""
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is header
            if row and _safe_get(row, 0) == user_id and _safe_get(row, 1) == str(year):
                return idx
        return None

    def _row_to_raw(self, row: list) -> dict:
        """Rebuild the stored record structure. Structure is checked by the caller."""
        results_json = _safe_get(row, 4)
        return {
            "user_id": _safe_get(row, 0),
            "year": _safe_get(row, 1),
            "date": _safe_get(row, 2) or None,
            "updated_at": _safe_get(row, 3) or datetime.utcnow().isoformat(),
            "results": json.loads(results_json) if results_json else None,
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(MalformedForecastError),
        reraise=True,
    )
    async def get_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
    ) -> Optional[list[CategoryRiskProfile]]:
        try:
            sheet = self._client.get_forecasts_sheet()
            rows = sheet.get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read forecast cache: {e}")

        idx = self._find_row(rows, user_id, year)
        if idx is None:
            return None

        try:
            raw = self._row_to_raw(rows[idx - 1])
        except json.JSONDecodeError as e:
            raise MalformedForecastError(f"Cached results are not valid JSON: {e}")
        record = validate_forecast_record(raw)
        if record.date != date:
            return None
        return record.results

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_forecast(
        self,
        user_id: str,
        year: int,
        date: str,
        profiles: list[CategoryRiskProfile],
    ) -> bool:
        """Write the record, replacing the user's previous one for this year."""
        new_row = [
            user_id,
            str(year),
            date,
            datetime.utcnow().isoformat(),
            json.dumps(
                [p.model_dump(mode="json") for p in profiles],
                ensure_ascii=False,
            ),
        ]
        try:
            sheet = self._client.get_forecasts_sheet()
            idx = self._find_row(sheet.get_all_values(), user_id, year)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}:E{idx}",
                    values=[new_row],
                    value_input_option="RAW",
                )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save forecast: {e}")


# =============================================================================
# AUDIT TRAIL
# =============================================================================

class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            year=int(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                logger.warning("Skipping malformed audit row", event_id=row[0])
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "Failed to write audit event",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: _safe_get(row, 6) == str(correlation_id)
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_for_forecast(
        self,
        user_id: str,
        year: int,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: _safe_get(row, 4) == user_id and _safe_get(row, 5) == str(year)
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(lambda row: True)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
