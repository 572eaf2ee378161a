"""
Tests for the unspent calculator.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from budget_rollover.models.budget import Period
from budget_rollover.rollover.calculator import UnspentCalculator, compute_unspent
from budget_rollover.services.storage import InMemoryLedgerStorage, StorageError


class TestComputeUnspent:
    """Tests for the pure per-category formula."""

    def test_partially_spent(self):
        record = compute_unspent("Groceries", Decimal("400"), Decimal("150"))
        assert record.unspent_amount == Decimal("250")
        assert record.spent_percentage == Decimal("37.5")
        assert record.eligible_for_carryover is True

    def test_overspent_floors_at_zero(self):
        record = compute_unspent("Dining Out", Decimal("100"), Decimal("130"))
        assert record.unspent_amount == Decimal("0")
        assert record.spent_percentage == Decimal("130.0")
        assert record.eligible_for_carryover is False

    def test_exactly_spent_is_not_eligible(self):
        record = compute_unspent("Rent", Decimal("1000"), Decimal("1000"))
        assert record.unspent_amount == Decimal("0")
        assert record.eligible_for_carryover is False

    def test_zero_limit(self):
        record = compute_unspent("Gifts", Decimal("0"), Decimal("0"))
        assert record.spent_percentage == Decimal("0")
        assert record.unspent_amount == Decimal("0")
        assert record.eligible_for_carryover is False

    def test_zero_limit_with_spend(self):
        record = compute_unspent("Gifts", Decimal("0"), Decimal("20"))
        assert record.spent_percentage == Decimal("0")
        assert record.eligible_for_carryover is False

    def test_percentage_rounds_half_up(self):
        record = compute_unspent("Coffee", Decimal("200"), Decimal("0.1"))
        assert record.spent_percentage == Decimal("0.1")
        record = compute_unspent("Coffee", Decimal("300"), Decimal("100"))
        assert record.spent_percentage == Decimal("33.3")

    def test_eligibility_uses_unrounded_percentage(self):
        # 99.96% rounds to 100.0 for display but a cent is still unspent
        record = compute_unspent("Shopping", Decimal("100"), Decimal("99.96"))
        assert record.spent_percentage == Decimal("100.0")
        assert record.unspent_amount == Decimal("0.04")
        assert record.eligible_for_carryover is True


class TestUnspentCalculator:
    """Tests for UnspentCalculator against in-memory storage."""

    def test_matches_expenses_by_category(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        ledger.add_budget(make_budget("Groceries", "400"))
        ledger.add_budget(make_budget("Shopping", "200"))
        ledger.add_expense(make_expense("Groceries", "100"))
        ledger.add_expense(make_expense("Groceries", "50.25"))
        ledger.add_expense(make_expense("Transport", "40"))

        records = asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

        assert [r.category for r in records] == ["Groceries", "Shopping"]
        assert records[0].total_spent == Decimal("150.25")
        assert records[0].unspent_amount == Decimal("249.75")
        assert records[1].total_spent == Decimal("0")
        assert records[1].unspent_amount == Decimal("200")

    def test_category_match_is_case_sensitive(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        ledger.add_budget(make_budget("Coffee", "50"))
        ledger.add_expense(make_expense("coffee", "20"))

        records = asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

        assert records[0].total_spent == Decimal("0")

    def test_surrounding_whitespace_is_trimmed_before_matching(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        ledger.add_budget(make_budget("Coffee", "50"))
        ledger.add_expense(make_expense(" Coffee ", "20"))
        ledger.add_expense(make_expense(" coffee", "5"))

        records = asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

        assert records[0].total_spent == Decimal("20")

    def test_date_range_is_inclusive(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        ledger.add_budget(make_budget("Groceries", "400"))
        ledger.add_expense(make_expense("Groceries", "10", expense_date=date(2025, 1, 1)))
        ledger.add_expense(make_expense("Groceries", "20", expense_date=date(2025, 1, 31)))
        ledger.add_expense(make_expense("Groceries", "40", expense_date=date(2024, 12, 31)))
        ledger.add_expense(make_expense("Groceries", "80", expense_date=date(2025, 2, 1)))

        records = asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

        assert records[0].total_spent == Decimal("30")

    def test_other_users_are_ignored(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        ledger.add_budget(make_budget("Groceries", "400"))
        ledger.add_budget(make_budget("Groceries", "999", user_id="someone-else"))
        ledger.add_expense(make_expense("Groceries", "60", user_id="someone-else"))

        records = asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

        assert len(records) == 1
        assert records[0].budget_limit == Decimal("400")
        assert records[0].total_spent == Decimal("0")

    def test_empty_period_returns_empty_list(self, ledger, user_id):
        records = asyncio.run(
            UnspentCalculator(ledger).calculate(user_id, Period(month=6, year=2025))
        )
        assert records == []

    def test_given_expenses_are_filtered_to_period(
        self, ledger, make_budget, make_expense, user_id, source_period
    ):
        budgets = [make_budget("Groceries", "100")]
        expenses = [
            make_expense("Groceries", "30"),
            make_expense("Groceries", "50", expense_date=date(2025, 3, 2)),
        ]

        records = asyncio.run(
            UnspentCalculator(ledger).calculate_for_budgets(
                user_id, source_period, budgets, expenses
            )
        )

        assert records[0].total_spent == Decimal("30")


class FailingExpenseStorage(InMemoryLedgerStorage):
    """Ledger whose expense reads blow up with a non-storage error."""

    async def fetch_expenses(self, user_id, date_from, date_to):
        raise RuntimeError("connection reset")


class FailingBudgetStorage(InMemoryLedgerStorage):
    """Ledger whose budget reads fail with a StorageError."""

    async def fetch_budgets(self, user_id, month, year):
        raise StorageError("backend unavailable")


class TestCalculatorErrors:
    """Storage failures surface as StorageError."""

    def test_unexpected_errors_are_wrapped(self, make_budget, user_id, source_period):
        ledger = FailingExpenseStorage(budgets=[make_budget("Groceries", "100")])

        with pytest.raises(StorageError, match="connection reset"):
            asyncio.run(UnspentCalculator(ledger).calculate(user_id, source_period))

    def test_storage_errors_propagate_unchanged(self, user_id, source_period):
        with pytest.raises(StorageError, match="backend unavailable"):
            asyncio.run(
                UnspentCalculator(FailingBudgetStorage()).calculate(user_id, source_period)
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
