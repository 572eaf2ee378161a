"""
Tests for the Google Sheets backend.

No network: the storage classes take their client as a collaborator, so a
fake client serving in-memory worksheets stands in for gspread.
"""

import asyncio
import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from budget_rollover.models.audit import AuditEvent, AuditEventType
from budget_rollover.models.budget import Budget, CategoryType, RecurrenceType
from budget_rollover.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsLedgerStorage,
    GoogleSheetsPreferenceStorage,
    NotFoundError,
)
from budget_rollover.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    BUDGET_COLUMNS,
    EXPENSE_COLUMNS,
    PREFERENCE_COLUMNS,
)


class FakeWorksheet:
    """The slice of gspread.Worksheet the storage classes use."""

    def __init__(self, header: list[str], rows=None):
        self.rows = [list(header)] + [list(row) for row in rows or []]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(value) for value in values])

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = [str(value) for value in values[0]]


class FakeSheetsClient:

    def __init__(self, budgets=None, expenses=None):
        self.budgets = FakeWorksheet(BUDGET_COLUMNS, budgets)
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS, expenses)
        self.preferences = FakeWorksheet(PREFERENCE_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_budgets_sheet(self):
        return self.budgets

    def get_expenses_sheet(self):
        return self.expenses

    def get_preferences_sheet(self):
        return self.preferences

    def get_audit_sheet(self):
        return self.audit


BUDGET_ROW = [
    "b-1", "user-1", "Lunch", "200.50", "1", "2025",
    "fixed", "one-off", "21", "Food", "True", "2025-01-01T00:00:00+00:00",
]


class TestRowMapping:
    """Tests for row <-> model conversion."""

    def test_row_to_budget(self):
        budget = GoogleSheetsLedgerStorage.row_to_budget(BUDGET_ROW)

        assert budget.id == "b-1"
        assert budget.monthly_limit == Decimal("200.50")
        assert budget.period.label == "2025-01"
        assert budget.category_type == CategoryType.FIXED
        assert budget.recurrence_type == RecurrenceType.ONE_OFF
        assert budget.workdays_per_month == 21
        assert budget.category_group == "Food"
        assert budget.auto_calculate is True

    def test_short_budget_row_takes_defaults(self):
        budget = GoogleSheetsLedgerStorage.row_to_budget(
            ["b-2", "user-1", "Rent", "1000", "3", "2025"]
        )

        assert budget.category_type == CategoryType.FLEXIBLE
        assert budget.recurrence_type == RecurrenceType.RECURRING
        assert budget.workdays_per_month is None
        assert budget.category_group is None
        assert budget.auto_calculate is False

    def test_budget_row_round_trip(self):
        budget = GoogleSheetsLedgerStorage.row_to_budget(BUDGET_ROW)
        assert GoogleSheetsLedgerStorage.budget_to_row(budget) == BUDGET_ROW

    def test_row_to_expense(self):
        expense = GoogleSheetsLedgerStorage.row_to_expense(
            ["e-1", "user-1", "Lunch", "12.40", "2025-01-31", ""]
        )

        assert expense.amount == Decimal("12.40")
        assert expense.expense_date == date(2025, 1, 31)
        assert expense.description is None

    def test_row_to_event(self):
        event = AuditEvent(
            event_type=AuditEventType.SETTINGS_SAVED,
            user_id="user-1",
            description="Rollover settings saved",
            details={"max_carry_over_percentage": "50"},
            timestamp=datetime(2025, 2, 1, tzinfo=timezone.utc),
        )

        restored = GoogleSheetsAuditStorage.row_to_event(event.to_sheets_row())

        assert restored.event_id == event.event_id
        assert restored.timestamp == event.timestamp
        assert restored.event_type == AuditEventType.SETTINGS_SAVED
        assert restored.details == {"max_carry_over_percentage": "50"}


class TestLedgerStorage:
    """Tests for GoogleSheetsLedgerStorage against fake worksheets."""

    def test_fetch_budgets_filters_user_and_period(self):
        client = FakeSheetsClient(budgets=[
            BUDGET_ROW,
            ["b-2", "user-1", "Rent", "1000", "2", "2025"],
            ["b-3", "user-2", "Lunch", "50", "1", "2025"],
            ["", "", ""],
        ])
        storage = GoogleSheetsLedgerStorage(client)

        budgets = asyncio.run(storage.fetch_budgets("user-1", 1, 2025))

        assert [budget.id for budget in budgets] == ["b-1"]

    def test_fetch_expenses_uses_inclusive_range(self):
        client = FakeSheetsClient(expenses=[
            ["e-1", "user-1", "Lunch", "10", "2025-01-01"],
            ["e-2", "user-1", "Lunch", "20", "2025-01-31"],
            ["e-3", "user-1", "Lunch", "40", "2025-02-01"],
            ["e-4", "user-2", "Lunch", "80", "2025-01-10"],
        ])
        storage = GoogleSheetsLedgerStorage(client)

        expenses = asyncio.run(
            storage.fetch_expenses("user-1", date(2025, 1, 1), date(2025, 1, 31))
        )

        assert [expense.id for expense in expenses] == ["e-1", "e-2"]

    def test_insert_assigns_id_and_appends(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        budget = Budget(
            user_id="user-1",
            category="Lunch",
            monthly_limit=Decimal("150"),
            month=2,
            year=2025,
        )

        stored = asyncio.run(storage.insert_budget(budget))

        assert stored.id
        assert client.budgets.rows[-1][0] == stored.id
        assert client.budgets.rows[-1][3] == "150"

    def test_insert_rejects_duplicate_key(self):
        client = FakeSheetsClient(budgets=[BUDGET_ROW])
        storage = GoogleSheetsLedgerStorage(client)
        duplicate = GoogleSheetsLedgerStorage.row_to_budget(BUDGET_ROW)

        with pytest.raises(DuplicateError):
            asyncio.run(storage.insert_budget(duplicate))
        assert len(client.budgets.rows) == 2

    def test_update_overwrites_row_in_place(self):
        client = FakeSheetsClient(budgets=[BUDGET_ROW])
        storage = GoogleSheetsLedgerStorage(client)
        budget = GoogleSheetsLedgerStorage.row_to_budget(BUDGET_ROW)

        asyncio.run(storage.update_budget(
            budget.model_copy(update={"monthly_limit": Decimal("300")})
        ))

        assert len(client.budgets.rows) == 2
        assert client.budgets.rows[1][3] == "300"

    def test_update_unknown_budget(self):
        storage = GoogleSheetsLedgerStorage(FakeSheetsClient())
        budget = GoogleSheetsLedgerStorage.row_to_budget(BUDGET_ROW)

        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_budget(budget))


class TestPreferenceStorage:

    def test_missing_preference_is_none(self):
        storage = GoogleSheetsPreferenceStorage(FakeSheetsClient())
        assert asyncio.run(storage.get_user_preference("user-1", "budget_reset")) is None

    def test_upsert_replaces_existing_row(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsPreferenceStorage(client)

        asyncio.run(storage.upsert_user_preference("user-1", "budget_reset", {"reset_day": 1}))
        asyncio.run(storage.upsert_user_preference("user-1", "budget_reset", {"reset_day": 9}))

        assert len(client.preferences.rows) == 2
        assert json.loads(client.preferences.rows[1][2]) == {"reset_day": 9}
        assert asyncio.run(
            storage.get_user_preference("user-1", "budget_reset")
        ) == {"reset_day": 9}


class TestAuditStorage:

    def test_append_and_read_back_newest_first(self):
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        older = AuditEvent(
            event_type=AuditEventType.ROLLOVER_PREVIEWED,
            description="Previewed",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        newer = AuditEvent(
            event_type=AuditEventType.ROLLOVER_EXECUTED,
            description="Executed",
            timestamp=datetime(2025, 1, 2, tzinfo=timezone.utc),
        )

        asyncio.run(storage.append_event(older))
        asyncio.run(storage.append_event(newer))
        events = asyncio.run(storage.get_recent_events(limit=10))

        assert [event.event_id for event in events] == [newer.event_id, older.event_id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
