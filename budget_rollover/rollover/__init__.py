"""Budget period rollover engine."""

from budget_rollover.rollover.calculator import UnspentCalculator, compute_unspent
from budget_rollover.rollover.errors import (
    NoSourceBudgetsError,
    NotAuthenticatedError,
    PartialExecutionError,
    RolloverError,
)
from budget_rollover.rollover.planner import (
    RolloverPlanner,
    build_target_budget,
    plan_category,
    resolve_upsert,
)
from budget_rollover.rollover.policy import carry_over_amount, carry_over_cap, skip_reason
from budget_rollover.rollover.preferences import PreferenceStore

__all__ = [
    "NoSourceBudgetsError",
    "NotAuthenticatedError",
    "PartialExecutionError",
    "PreferenceStore",
    "RolloverError",
    "RolloverPlanner",
    "UnspentCalculator",
    "build_target_budget",
    "carry_over_amount",
    "carry_over_cap",
    "compute_unspent",
    "plan_category",
    "resolve_upsert",
    "skip_reason",
]
