"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is a lightweight backend for single-user
deployments:
1. Users can view and edit their budgets directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions: a rollover that fails midway leaves the categories it
  already wrote in place (the engine reports which ones failed)
- Limited query capabilities (we filter in Python)
- Uniqueness of (user, category, month, year) is checked in Python before
  inserting, not enforced by the sheet

The implementation follows the abstract interfaces, so the hosted database
backend can replace it without changing rollover logic.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_rollover.config import get_settings
from budget_rollover.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budget_rollover.models.budget import (
    Budget,
    CategoryType,
    Expense,
    RecurrenceType,
    utcnow,
)
from budget_rollover.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    PreferenceStorageInterface,
    StorageError,
)


# Column mappings for Budgets sheet
BUDGET_COLUMNS = [
    "id",
    "user_id",
    "category",
    "monthly_limit",
    "month",
    "year",
    "category_type",
    "recurrence_type",
    "workdays_per_month",
    "category_group",
    "auto_calculate",
    "created_at",
]

# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "category",
    "amount",
    "date",
    "description",
]

# Column mappings for Preferences sheet
PREFERENCE_COLUMNS = [
    "user_id",
    "preference_type",
    "preference_data_json",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_getter(row: list):
    """Build a column accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
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

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.budgets_sheet_name, BUDGET_COLUMNS
        )

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=5000
        )

    def get_preferences_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.preferences_sheet_name, PREFERENCE_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of budget and expense storage.

    One budget per row in the Budgets sheet, one expense per row in the
    Expenses sheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def budget_to_row(budget: Budget) -> list:
        """Convert a Budget to a spreadsheet row."""
        return [
            budget.id or "",
            budget.user_id,
            budget.category,
            str(budget.monthly_limit),
            str(budget.month),
            str(budget.year),
            budget.category_type.value,
            budget.recurrence_type.value,
            str(budget.workdays_per_month) if budget.workdays_per_month is not None else "",
            budget.category_group or "",
            str(budget.auto_calculate),
            budget.created_at.isoformat(),
        ]

    @staticmethod
    def row_to_budget(row: list) -> Budget:
        """Convert a spreadsheet row to a Budget."""
        safe_get = _safe_getter(row)

        return Budget(
            id=safe_get(0),
            user_id=safe_get(1),
            category=safe_get(2),
            monthly_limit=Decimal(safe_get(3, "0")),
            month=int(safe_get(4)),
            year=int(safe_get(5)),
            category_type=CategoryType(safe_get(6, CategoryType.FLEXIBLE.value)),
            recurrence_type=RecurrenceType(safe_get(7, RecurrenceType.RECURRING.value)),
            workdays_per_month=int(safe_get(8)) if safe_get(8) else None,
            category_group=safe_get(9) or None,
            auto_calculate=safe_get(10).lower() == "true",
            created_at=datetime.fromisoformat(safe_get(11)) if safe_get(11) else utcnow(),
        )

    @staticmethod
    def row_to_expense(row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        safe_get = _safe_getter(row)

        return Expense(
            id=safe_get(0) or None,
            user_id=safe_get(1),
            category=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            expense_date=date.fromisoformat(safe_get(4)),
            description=safe_get(5) or None,
        )

    def _read_budget_rows(self) -> tuple[gspread.Worksheet, list[list]]:
        sheet = self._client.get_budgets_sheet()
        return sheet, sheet.get_all_values()

    async def fetch_budgets(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[Budget]:
        """List a user's budgets for one period, in sheet order."""
        try:
            _, all_rows = self._read_budget_rows()
            budgets = []
            for row in all_rows[1:]:  # Skip header
                if not row or len(row) < 6 or not row[0]:
                    continue
                if row[1] != user_id or row[4] != str(month) or row[5] != str(year):
                    continue
                budgets.append(self.row_to_budget(row))
            return budgets
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch budgets: {e}")

    async def fetch_expenses(
        self,
        user_id: str,
        date_from: date,
        date_to: date,
    ) -> list[Expense]:
        """List a user's expenses dated within the inclusive range."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header

            expenses = []
            for row in all_rows:
                if not row or len(row) < 5 or row[1] != user_id:
                    continue
                expense = self.row_to_expense(row)
                if date_from <= expense.expense_date <= date_to:
                    expenses.append(expense)
            return expenses
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch expenses: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def insert_budget(self, budget: Budget) -> Budget:
        """Append a new budget row."""
        try:
            sheet, all_rows = self._read_budget_rows()
            for row in all_rows[1:]:
                if (
                    row
                    and len(row) > 5
                    and row[1] == budget.user_id
                    and row[2] == budget.category
                    and row[4] == str(budget.month)
                    and row[5] == str(budget.year)
                ):
                    raise DuplicateError(
                        f"Budget already exists for {budget.category} {budget.period}"
                    )

            stored = budget.model_copy(update={"id": str(uuid4())})
            sheet.append_row(self.budget_to_row(stored), value_input_option="RAW")
            return stored
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert budget: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def update_budget(self, budget: Budget) -> Budget:
        """Replace the budget row with the same id."""
        try:
            sheet, all_rows = self._read_budget_rows()

            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == budget.id:
                    sheet.update(
                        f"A{idx}",
                        [self.budget_to_row(budget)],
                        value_input_option="RAW",
                    )
                    return budget

            raise NotFoundError(f"Budget not found: {budget.id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update budget: {e}")


class GoogleSheetsPreferenceStorage(PreferenceStorageInterface):
    """
    Google Sheets implementation of preference storage.

    One row per (user_id, preference_type); the document is JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def get_user_preference(
        self,
        user_id: str,
        preference_type: str,
    ) -> Optional[dict]:
        try:
            sheet = self._client.get_preferences_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and len(row) > 2 and row[0] == user_id and row[1] == preference_type:
                    return json.loads(row[2]) if row[2] else {}
            return None
        except Exception as e:
            raise StorageError(f"Failed to load preference {preference_type}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def upsert_user_preference(
        self,
        user_id: str,
        preference_type: str,
        payload: dict,
    ) -> None:
        try:
            sheet = self._client.get_preferences_sheet()
            new_row = [
                user_id,
                preference_type,
                json.dumps(payload, default=str),
                utcnow().isoformat(),
            ]

            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and len(row) > 1 and row[0] == user_id and row[1] == preference_type:
                    sheet.update(f"A{idx}", [new_row], value_input_option="RAW")
                    return

            sheet.append_row(new_row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save preference {preference_type}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def row_to_event(row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    events.append(self.row_to_event(row))

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
