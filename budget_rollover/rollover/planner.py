"""
Rollover Planner

Merges a source period's budgets into a target period.

CRITICAL: preview and execute share one derivation path (build_plan).
The numbers a user previews are exactly the numbers execute writes, as long
as the source data has not changed in between. Execute never trusts an
earlier preview: it always recomputes from current data, so an expense
logged after the preview is reflected in what gets written.

Target-period writes follow an explicit two-path contract keyed by
(category, month, year):
- a budget already exists  -> UPDATE: its limit is overwritten (not summed)
                              with the new limit
- no budget exists         -> INSERT: a new row copying the source metadata

Each category is written independently. A failed write is recorded and the
remaining categories are still processed; categories already written stay
written.
"""

from decimal import Decimal
from typing import Optional

import structlog

from budget_rollover.models.budget import (
    ZERO,
    Budget,
    CategoryFailure,
    CategoryOutcome,
    Period,
    RolloverOptions,
    RolloverPlan,
    RolloverPreview,
    RolloverRecord,
    RolloverResult,
    UnspentRecord,
    UpsertAction,
)
from budget_rollover.rollover.calculator import UnspentCalculator
from budget_rollover.rollover.errors import NoSourceBudgetsError
from budget_rollover.rollover.policy import carry_over_amount, skip_reason
from budget_rollover.rollover.preferences import PreferenceStore
from budget_rollover.services.storage import LedgerStorageInterface, StorageError


logger = structlog.get_logger(__name__)


def plan_category(record: UnspentRecord, options: RolloverOptions) -> RolloverPlan:
    """Apply the carry-over policy to one category."""
    is_opted_in = options.is_opted_in(record.category)
    carried = carry_over_amount(record, is_opted_in, options.max_carry_over_percentage)

    return RolloverPlan(
        category=record.category,
        original_limit=record.budget_limit,
        carried_over_amount=carried,
        new_limit=record.budget_limit + carried,
        unspent_from_previous=record.unspent_amount,
        total_spent=record.total_spent,
        spent_percentage=record.spent_percentage,
        eligible_for_carryover=record.eligible_for_carryover,
        skip_reason=(
            None
            if carried > 0
            else skip_reason(record, is_opted_in, options.max_carry_over_percentage)
        ),
    )


def resolve_upsert(existing: Optional[Budget]) -> UpsertAction:
    """UPDATE when the target period already has the category, else INSERT."""
    return UpsertAction.UPDATE if existing is not None else UpsertAction.INSERT


def build_target_budget(
    source: Budget,
    plan: RolloverPlan,
    target: Period,
    existing: Optional[Budget] = None,
) -> Budget:
    """
    The target-period budget a plan entry writes.

    An existing row keeps its id and creation time; its limit is replaced
    by the planned new limit and its metadata refreshed from the source.
    """
    fields = {
        "user_id": source.user_id,
        "category": source.category,
        "monthly_limit": plan.new_limit,
        "month": target.month,
        "year": target.year,
        **source.metadata(),
    }
    if existing is not None:
        return existing.model_copy(update=fields)
    return Budget(**fields)


def _total(amounts: list[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


class RolloverPlanner:
    """
    Preview or execute a rollover for one user.

    Both modes take the same RolloverOptions and derive their plan from
    build_plan().
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        preferences: PreferenceStore,
        calculator: Optional[UnspentCalculator] = None,
    ):
        self._ledger = ledger
        self._preferences = preferences
        self._calculator = calculator or UnspentCalculator(ledger)

    async def build_plan(
        self,
        user_id: str,
        options: RolloverOptions,
    ) -> tuple[list[Budget], list[RolloverPlan]]:
        """
        Derive one plan entry per source-period budget.

        Returns:
            (source_budgets, plans), index-aligned

        Raises:
            NoSourceBudgetsError: If the source period has no budgets
            StorageError: If reading budgets or expenses fails
        """
        budgets = await self._calculator.fetch_budgets(user_id, options.source)
        if not budgets:
            raise NoSourceBudgetsError(options.source.label)

        records = await self._calculator.calculate_for_budgets(
            user_id, options.source, budgets
        )
        plans = [plan_category(record, options) for record in records]
        return budgets, plans

    async def preview(self, user_id: str, options: RolloverOptions) -> RolloverPreview:
        """Dry run: compute the plan without writing anything."""
        _, plans = await self.build_plan(user_id, options)

        with_carryover = [plan for plan in plans if plan.carries_over]
        without_carryover = [plan for plan in plans if not plan.carries_over]

        return RolloverPreview(
            source_period=options.source.label,
            target_period=options.target.label,
            total_categories=len(plans),
            total_carry_over_amount=_total(
                [plan.carried_over_amount for plan in with_carryover]
            ),
            categories_with_carryover=with_carryover,
            categories_without_carryover=without_carryover,
        )

    async def upsert_budget(
        self,
        budget: Budget,
        existing: Optional[Budget],
    ) -> tuple[UpsertAction, Budget]:
        """Write one target-period budget through the two-path contract."""
        action = resolve_upsert(existing)
        if action is UpsertAction.UPDATE:
            stored = await self._ledger.update_budget(budget)
        else:
            stored = await self._ledger.insert_budget(budget)
        return action, stored

    async def execute(self, user_id: str, options: RolloverOptions) -> RolloverResult:
        """
        Recompute the plan from current data and write it to the target period.

        Per-category write failures are collected in the result; they never
        abort the remaining categories. A RolloverRecord is appended to the
        history afterwards, whether or not some categories failed.

        Raises:
            NoSourceBudgetsError: If the source period has no budgets (no writes)
            StorageError: If reading the source or target period fails (no writes)
        """
        source_budgets, plans = await self.build_plan(user_id, options)

        existing_targets = await self._calculator.fetch_budgets(user_id, options.target)
        existing_by_category = {budget.category: budget for budget in existing_targets}

        processed: list[CategoryOutcome] = []
        failures: list[CategoryFailure] = []

        for source, plan in zip(source_budgets, plans):
            existing = existing_by_category.get(source.category)
            target_budget = build_target_budget(source, plan, options.target, existing)

            try:
                action, stored = await self.upsert_budget(target_budget, existing)
            except Exception as e:
                logger.warning(
                    "rollover_category_failed",
                    user_id=user_id,
                    category=source.category,
                    error=str(e),
                )
                failures.append(CategoryFailure(
                    category=source.category,
                    message=f"Failed to process {source.category}: {e}",
                ))
                continue

            existing_by_category[source.category] = stored
            processed.append(CategoryOutcome(
                category=plan.category,
                original_limit=plan.original_limit,
                new_limit=plan.new_limit,
                carried_over=plan.carried_over_amount,
                unspent_from_previous=plan.unspent_from_previous,
                action=action,
                budget_id=stored.id,
            ))

        total_carried_over = _total([outcome.carried_over for outcome in processed])
        record = RolloverRecord(
            source_period=options.source.label,
            target_period=options.target.label,
            total_carried_over=total_carried_over,
            categories_count=len(processed),
            carry_over_categories=list(options.carry_over_categories),
        )

        history_error = None
        try:
            await self._preferences.record_rollover(user_id, record)
        except StorageError as e:
            history_error = f"Failed to record rollover history: {e}"
            logger.error("rollover_history_failed", user_id=user_id, error=str(e))

        logger.info(
            "rollover_executed",
            user_id=user_id,
            source=options.source.label,
            target=options.target.label,
            copied_budgets=len(processed),
            failed=len(failures),
            total_carried_over=str(total_carried_over),
        )

        return RolloverResult(
            copied_budgets=len(processed),
            total_carried_over_amount=total_carried_over,
            categories_processed=processed,
            failures=failures,
            reset_record=record,
            history_error=history_error,
        )
