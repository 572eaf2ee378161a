"""
Unspent Calculator

Derives per-category spend, remaining balance and carry-over eligibility for
a source period.

Expenses match a budget by exact, case-sensitive category name: "coffee"
spending does not count against a "Coffee" budget.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

import structlog

from budget_rollover.models.budget import Budget, Expense, Period, UnspentRecord
from budget_rollover.services.storage import LedgerStorageInterface, StorageError


logger = structlog.get_logger(__name__)


def compute_unspent(
    category: str,
    budget_limit: Decimal,
    total_spent: Decimal,
) -> UnspentRecord:
    """Pure unspent/percentage/eligibility formula for one category."""
    return UnspentRecord.from_amounts(
        category=category,
        budget_limit=budget_limit,
        total_spent=total_spent,
    )


def sum_by_category(expenses: list[Expense]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        totals[expense.category] += expense.amount
    return totals


class UnspentCalculator:
    """
    Computes UnspentRecords for every budget of a period.

    GUARANTEES:
    - One record per budget, in budget fetch order
    - An empty period yields an empty list, not an error
    - Storage failures surface as StorageError; no partial result
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def fetch_budgets(self, user_id: str, period: Period) -> list[Budget]:
        try:
            return await self._storage.fetch_budgets(user_id, period.month, period.year)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch budgets for {period}: {e}") from e

    async def fetch_expenses(self, user_id: str, period: Period) -> list[Expense]:
        try:
            return await self._storage.fetch_expenses(
                user_id, period.first_day, period.last_day
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch expenses for {period}: {e}") from e

    async def calculate(self, user_id: str, period: Period) -> list[UnspentRecord]:
        """Fetch the period's budgets and compute their unspent amounts."""
        budgets = await self.fetch_budgets(user_id, period)
        return await self.calculate_for_budgets(user_id, period, budgets)

    async def calculate_for_budgets(
        self,
        user_id: str,
        period: Period,
        budgets: list[Budget],
        expenses: Optional[list[Expense]] = None,
    ) -> list[UnspentRecord]:
        """
        Compute unspent amounts for budgets already fetched.

        Expenses are fetched for the whole calendar period unless given.
        """
        if not budgets:
            return []

        if expenses is None:
            expenses = await self.fetch_expenses(user_id, period)

        # The range is already inclusive; this guards backends that over-fetch
        spent = sum_by_category(
            [expense for expense in expenses if period.contains(expense.expense_date)]
        )

        records = [
            compute_unspent(
                category=budget.category,
                budget_limit=budget.monthly_limit,
                total_spent=spent.get(budget.category, Decimal("0")),
            )
            for budget in budgets
        ]

        logger.debug(
            "unspent_calculated",
            user_id=user_id,
            period=period.label,
            budgets=len(budgets),
            expenses=len(expenses),
        )
        return records
