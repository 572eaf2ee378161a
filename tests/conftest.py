"""
Shared fixtures.

Test strategy:
1. Unit tests for pure parts (models, unspent formula, carry-over policy)
2. Flow tests against in-memory storage (no real backend calls)
3. Failure injection through small storage subclasses
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_rollover.models.budget import Budget, Expense, Period
from budget_rollover.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryPreferenceStorage,
)


USER_ID = "user-1"


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def source_period() -> Period:
    return Period(month=1, year=2025)


@pytest.fixture
def target_period() -> Period:
    return Period(month=2, year=2025)


@pytest.fixture
def make_budget():
    """Factory for budgets in January 2025 unless told otherwise."""
    def _make(
        category: str,
        limit: str,
        month: int = 1,
        year: int = 2025,
        user_id: str = USER_ID,
        **metadata,
    ) -> Budget:
        return Budget(
            user_id=user_id,
            category=category,
            monthly_limit=Decimal(limit),
            month=month,
            year=year,
            **metadata,
        )
    return _make


@pytest.fixture
def make_expense():
    """Factory for expenses dated mid-January 2025 unless told otherwise."""
    def _make(
        category: str,
        amount: str,
        expense_date: date = date(2025, 1, 15),
        user_id: str = USER_ID,
    ) -> Expense:
        return Expense(
            user_id=user_id,
            category=category,
            amount=Decimal(amount),
            expense_date=expense_date,
        )
    return _make


@pytest.fixture
def ledger() -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage()


@pytest.fixture
def preference_storage() -> InMemoryPreferenceStorage:
    return InMemoryPreferenceStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()
