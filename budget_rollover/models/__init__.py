"""
Data Models Package

This package contains all Pydantic models used by the Budget Rollover Engine.
All data flowing through the engine must conform to these schemas.
"""

from budget_rollover.models.budget import (
    HISTORY_LIMIT,
    PREFERENCE_TYPE_BUDGET_RESET,
    Budget,
    CategoryFailure,
    CategoryOutcome,
    CategoryType,
    Expense,
    Period,
    RecurrenceType,
    RolloverOptions,
    RolloverPlan,
    RolloverPreview,
    RolloverRecord,
    RolloverResult,
    RolloverSettings,
    SkipReason,
    UnspentRecord,
    UpsertAction,
)
from budget_rollover.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Constants
    "HISTORY_LIMIT",
    "PREFERENCE_TYPE_BUDGET_RESET",
    # Budget models
    "Budget",
    "CategoryFailure",
    "CategoryOutcome",
    "CategoryType",
    "Expense",
    "Period",
    "RecurrenceType",
    "RolloverOptions",
    "RolloverPlan",
    "RolloverPreview",
    "RolloverRecord",
    "RolloverResult",
    "RolloverSettings",
    "SkipReason",
    "UnspentRecord",
    "UpsertAction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
