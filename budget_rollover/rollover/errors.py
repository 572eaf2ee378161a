"""
Rollover Engine Errors

StorageError (from the storage package) covers read/write failures and is
re-exported here so callers can catch every engine error from one place.
"""

from typing import TYPE_CHECKING

from budget_rollover.services.storage import StorageError

if TYPE_CHECKING:
    from budget_rollover.models.budget import RolloverResult


class RolloverError(Exception):
    """Base exception for rollover engine errors."""
    pass


class NotAuthenticatedError(RolloverError):
    """No user identity could be resolved. Nothing was read or written."""

    def __init__(self, operation: str = "rollover"):
        self.operation = operation
        super().__init__(f"User not authenticated ({operation})")


class NoSourceBudgetsError(RolloverError):
    """The source period has no budgets, so there is nothing to roll over."""

    def __init__(self, source_period: str):
        self.source_period = source_period
        super().__init__(
            f"No source budgets found to reset from ({source_period}). "
            "Create budgets for that month first."
        )


class PartialExecutionError(RolloverError):
    """
    Some category writes of an executed rollover failed.

    The categories in result.categories_processed remain committed.
    """

    def __init__(self, result: "RolloverResult"):
        self.result = result
        super().__init__(result.error or "Rollover partially failed")


__all__ = [
    "NoSourceBudgetsError",
    "NotAuthenticatedError",
    "PartialExecutionError",
    "RolloverError",
    "StorageError",
]
