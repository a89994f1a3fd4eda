"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. The treasurer and the board can view the books directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for one organization)
- No transactions: each save clears the worksheet and rewrites it,
  which matches the replace-the-whole-collection contract
- Limited query capabilities (we filter in Python)

Nested data (disbursement records) is JSON-serialized into one column.
Malformed rows are NOT skipped - they raise MalformedRecordError so the
caller can surface the problem instead of silently dropping money.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from treasury.config import get_settings
from treasury.models.audit import AuditEvent, AuditEventType, AuditSeverity
from treasury.models.transaction import (
    Budget,
    DisbursementRecord,
    DisbursementSheet,
    Project,
    RecurringObligation,
    Transaction,
    TreasurySettings,
)
from treasury.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    MalformedRecordError,
    StorageError,
    TreasuryStorageInterface,
)


T = TypeVar("T")

TRANSACTION_COLUMNS = [
    "id",
    "type",
    "amount",
    "currency",
    "date",
    "description",
    "category",
    "exchange_rate",
    "project_id",
    "recipient",
    "receipt_url",
    "source_obligation_id",
]

RECURRING_COLUMNS = [
    "id",
    "description",
    "amount",
    "currency",
    "category",
    "frequency",
    "start_date",
    "next_due_date",
]

BUDGET_COLUMNS = ["category", "amount", "currency"]

PROJECT_COLUMNS = ["id", "name", "description", "budget"]

DISBURSEMENT_COLUMNS = ["id", "name", "created_at", "records_json"]

SETTINGS_COLUMNS = ["key", "value"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_RETRY = dict(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(**_RETRY)
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

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    @property
    def settings(self):
        return self._settings


# =============================================================================
# ROW CONVERSION
# =============================================================================

def _cell(row: list, index: int) -> str:
    """Handle missing columns gracefully."""
    try:
        return row[index] or ""
    except IndexError:
        return ""


def _optional(value: Optional[object]) -> str:
    return "" if value is None else str(value)


def transaction_to_row(tx: Transaction) -> list:
    return [
        tx.id,
        tx.type.value,
        str(tx.amount),
        tx.currency.value,
        tx.date.isoformat(),
        tx.description,
        tx.category.value,
        _optional(tx.exchange_rate),
        _optional(tx.project_id),
        _optional(tx.recipient),
        _optional(tx.receipt_url),
        _optional(tx.source_obligation_id),
    ]


def row_to_transaction(row: list) -> Transaction:
    return Transaction(
        id=_cell(row, 0),
        type=_cell(row, 1),
        amount=Decimal(_cell(row, 2)),
        currency=_cell(row, 3),
        date=date.fromisoformat(_cell(row, 4)),
        description=_cell(row, 5),
        category=_cell(row, 6),
        exchange_rate=Decimal(_cell(row, 7)) if _cell(row, 7) else None,
        project_id=_cell(row, 8) or None,
        recipient=_cell(row, 9) or None,
        receipt_url=_cell(row, 10) or None,
        source_obligation_id=_cell(row, 11) or None,
    )


def obligation_to_row(obligation: RecurringObligation) -> list:
    return [
        obligation.id,
        obligation.description,
        str(obligation.amount),
        obligation.currency.value,
        obligation.category.value,
        obligation.frequency.value,
        obligation.start_date.isoformat(),
        obligation.next_due_date.isoformat(),
    ]


def row_to_obligation(row: list) -> RecurringObligation:
    return RecurringObligation(
        id=_cell(row, 0),
        description=_cell(row, 1),
        amount=Decimal(_cell(row, 2)),
        currency=_cell(row, 3),
        category=_cell(row, 4),
        frequency=_cell(row, 5),
        start_date=date.fromisoformat(_cell(row, 6)),
        next_due_date=date.fromisoformat(_cell(row, 7)),
    )


def budget_to_row(budget: Budget) -> list:
    return [budget.category.value, str(budget.amount), budget.currency.value]


def row_to_budget(row: list) -> Budget:
    return Budget(
        category=_cell(row, 0),
        amount=Decimal(_cell(row, 1)),
        currency=_cell(row, 2) or "USD",
    )


def project_to_row(project: Project) -> list:
    return [project.id, project.name, project.description, str(project.budget)]


def row_to_project(row: list) -> Project:
    return Project(
        id=_cell(row, 0),
        name=_cell(row, 1),
        description=_cell(row, 2),
        budget=Decimal(_cell(row, 3) or "0"),
    )


def sheet_to_row(sheet: DisbursementSheet) -> list:
    return [
        sheet.id,
        sheet.name,
        sheet.created_at.isoformat(),
        json.dumps([record.model_dump(mode="json") for record in sheet.records]),
    ]


def row_to_sheet(row: list) -> DisbursementSheet:
    records_json = _cell(row, 3)
    records = [
        DisbursementRecord.model_validate(item)
        for item in (json.loads(records_json) if records_json else [])
    ]
    return DisbursementSheet(
        id=_cell(row, 0),
        name=_cell(row, 1),
        created_at=datetime.fromisoformat(_cell(row, 2)),
        records=records,
    )


class GoogleSheetsTreasuryStorage(TreasuryStorageInterface):
    """
    Google Sheets implementation of treasury storage.

    One worksheet per collection, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read(
        self,
        title: str,
        columns: list[str],
        parse: Callable[[list], T],
    ) -> list[T]:
        """Parse every non-empty row below the header."""
        try:
            sheet = self._client.get_worksheet(title, columns)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {title}: {e}")

        records = []
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not any(row):  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except (ValidationError, ValueError, ArithmeticError) as e:
                raise MalformedRecordError(title, row_number, str(e))
        return records

    def _replace(self, title: str, columns: list[str], rows: list[list]) -> bool:
        """Clear the worksheet and write header plus rows."""
        try:
            sheet = self._client.get_worksheet(title, columns)
            sheet.clear()
            sheet.append_rows([columns] + rows, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save {title}: {e}")

    async def load_transactions(self) -> list[Transaction]:
        return self._read(
            self._client.settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            row_to_transaction,
        )

    @retry(**_RETRY)
    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        return self._replace(
            self._client.settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            [transaction_to_row(tx) for tx in transactions],
        )

    async def load_recurring_obligations(self) -> list[RecurringObligation]:
        return self._read(
            self._client.settings.recurring_sheet_name,
            RECURRING_COLUMNS,
            row_to_obligation,
        )

    @retry(**_RETRY)
    async def save_recurring_obligations(
        self,
        obligations: list[RecurringObligation],
    ) -> bool:
        return self._replace(
            self._client.settings.recurring_sheet_name,
            RECURRING_COLUMNS,
            [obligation_to_row(o) for o in obligations],
        )

    async def load_settings(self) -> Optional[TreasurySettings]:
        rows = self._read(
            self._client.settings.settings_sheet_name,
            SETTINGS_COLUMNS,
            lambda row: (_cell(row, 0), _cell(row, 1)),
        )
        values = dict(rows)
        if "reporting_rate_from_primary" not in values:
            return None
        try:
            return TreasurySettings(
                reporting_rate_from_primary=Decimal(values["reporting_rate_from_primary"])
            )
        except (ValidationError, ArithmeticError) as e:
            raise MalformedRecordError(
                self._client.settings.settings_sheet_name, 2, str(e)
            )

    @retry(**_RETRY)
    async def save_settings(self, settings: TreasurySettings) -> bool:
        return self._replace(
            self._client.settings.settings_sheet_name,
            SETTINGS_COLUMNS,
            [["reporting_rate_from_primary", str(settings.reporting_rate_from_primary)]],
        )

    async def load_budgets(self) -> list[Budget]:
        return self._read(
            self._client.settings.budgets_sheet_name,
            BUDGET_COLUMNS,
            row_to_budget,
        )

    @retry(**_RETRY)
    async def save_budgets(self, budgets: list[Budget]) -> bool:
        return self._replace(
            self._client.settings.budgets_sheet_name,
            BUDGET_COLUMNS,
            [budget_to_row(b) for b in budgets],
        )

    async def load_projects(self) -> list[Project]:
        return self._read(
            self._client.settings.projects_sheet_name,
            PROJECT_COLUMNS,
            row_to_project,
        )

    @retry(**_RETRY)
    async def save_projects(self, projects: list[Project]) -> bool:
        return self._replace(
            self._client.settings.projects_sheet_name,
            PROJECT_COLUMNS,
            [project_to_row(p) for p in projects],
        )

    async def load_disbursement_sheets(self) -> list[DisbursementSheet]:
        return self._read(
            self._client.settings.disbursements_sheet_name,
            DISBURSEMENT_COLUMNS,
            row_to_sheet,
        )

    @retry(**_RETRY)
    async def save_disbursement_sheets(self, sheets: list[DisbursementSheet]) -> bool:
        return self._replace(
            self._client.settings.disbursements_sheet_name,
            DISBURSEMENT_COLUMNS,
            [sheet_to_row(s) for s in sheets],
        )


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=_cell(row, 5) or None,
            correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            description=_cell(row, 7),
            details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
            error_message=_cell(row, 9) or None,
            is_user_action=_cell(row, 10).lower() == "true",
        )

    @retry(**_RETRY)
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _all_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValidationError, ValueError):
                    continue  # The audit trail is best-effort on read
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
