"""
In-Memory Storage Implementation

Used for tests and for running the engine without a configured backend.
Behaves like the hosted database for everything the engine relies on:
budgets are unique per (user, category, month, year), ids are assigned on
insert, and reads return copies so callers cannot mutate stored rows.
"""

import copy
from datetime import date
from typing import Optional
from uuid import uuid4

from budget_rollover.models.audit import AuditEvent
from budget_rollover.models.budget import Budget, Expense
from budget_rollover.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    PreferenceStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Budgets and expenses held in process memory."""

    def __init__(
        self,
        budgets: Optional[list[Budget]] = None,
        expenses: Optional[list[Expense]] = None,
    ):
        self._budgets: dict[str, Budget] = {}
        self._expenses: list[Expense] = []
        for budget in budgets or []:
            self.add_budget(budget)
        for expense in expenses or []:
            self.add_expense(expense)

    @staticmethod
    def _key(budget: Budget) -> tuple:
        return (budget.user_id, budget.category, budget.month, budget.year)

    def _find_by_key(self, budget: Budget) -> Optional[Budget]:
        key = self._key(budget)
        for stored in self._budgets.values():
            if self._key(stored) == key:
                return stored
        return None

    def add_budget(self, budget: Budget) -> Budget:
        """Seed a budget synchronously (test and fixture helper)."""
        if self._find_by_key(budget) is not None:
            raise DuplicateError(
                f"Budget already exists for {budget.category} {budget.period}"
            )
        stored = budget.model_copy(update={"id": budget.id or str(uuid4())})
        self._budgets[stored.id] = stored
        return stored.model_copy()

    def add_expense(self, expense: Expense) -> Expense:
        """Seed an expense synchronously (test and fixture helper)."""
        stored = expense.model_copy(update={"id": expense.id or str(uuid4())})
        self._expenses.append(stored)
        return stored.model_copy()

    @property
    def budgets(self) -> list[Budget]:
        return [budget.model_copy() for budget in self._budgets.values()]

    async def fetch_budgets(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[Budget]:
        return [
            budget.model_copy()
            for budget in self._budgets.values()
            if budget.user_id == user_id
            and budget.month == month
            and budget.year == year
        ]

    async def fetch_expenses(
        self,
        user_id: str,
        date_from: date,
        date_to: date,
    ) -> list[Expense]:
        return [
            expense.model_copy()
            for expense in self._expenses
            if expense.user_id == user_id
            and date_from <= expense.expense_date <= date_to
        ]

    async def insert_budget(self, budget: Budget) -> Budget:
        return self.add_budget(budget.model_copy(update={"id": None}))

    async def update_budget(self, budget: Budget) -> Budget:
        if budget.id is None or budget.id not in self._budgets:
            raise NotFoundError(f"Budget not found: {budget.id}")

        clash = self._find_by_key(budget)
        if clash is not None and clash.id != budget.id:
            raise DuplicateError(
                f"Budget already exists for {budget.category} {budget.period}"
            )

        self._budgets[budget.id] = budget.model_copy()
        return budget.model_copy()


class InMemoryPreferenceStorage(PreferenceStorageInterface):
    """Preference documents keyed by (user_id, preference_type)."""

    def __init__(self):
        self._documents: dict[tuple[str, str], dict] = {}

    async def get_user_preference(
        self,
        user_id: str,
        preference_type: str,
    ) -> Optional[dict]:
        document = self._documents.get((user_id, preference_type))
        return copy.deepcopy(document) if document is not None else None

    async def upsert_user_preference(
        self,
        user_id: str,
        preference_type: str,
        payload: dict,
    ) -> None:
        self._documents[(user_id, preference_type)] = copy.deepcopy(payload)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit events held in process memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
