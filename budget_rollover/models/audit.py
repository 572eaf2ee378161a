"""
Audit Models for the Budget Rollover Engine

Every rollover preview, execution and settings change is logged for audit
purposes. This provides:
1. Traceability of every budget the engine wrote
2. Debugging information when a rollover partially fails
3. A record of which settings a rollover ran with

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budget_rollover.models.budget import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Rollover
    ROLLOVER_PREVIEWED = "rollover_previewed"
    ROLLOVER_EXECUTED = "rollover_executed"
    ROLLOVER_PARTIALLY_FAILED = "rollover_partially_failed"
    ROLLOVER_REJECTED = "rollover_rejected"
    BUDGET_CARRIED_OVER = "budget_carried_over"

    # Settings
    SETTINGS_LOADED_DEFAULT = "settings_loaded_default"
    SETTINGS_SAVED = "settings_saved"

    # Failures
    AUTHENTICATION_FAILED = "authentication_failed"
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="User the event relates to, if resolved"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'rollover', 'settings')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Identifier of the entity (budget id, period label)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.rollover_previewed(user_id, preview, correlation_id)
        event = AuditEventBuilder.settings_saved(user_id, settings, correlation_id)
    """

    @staticmethod
    def rollover_previewed(
        user_id: str,
        source_period: str,
        target_period: str,
        total_carry_over: str,
        categories_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLOVER_PREVIEWED,
            user_id=user_id,
            entity_type="rollover",
            entity_id=f"{source_period}->{target_period}",
            correlation_id=correlation_id,
            description=f"Rollover previewed: {source_period} -> {target_period}",
            details={
                "total_carry_over": total_carry_over,
                "categories_count": categories_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def rollover_executed(
        user_id: str,
        source_period: str,
        target_period: str,
        total_carried_over: str,
        copied_budgets: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLOVER_EXECUTED,
            user_id=user_id,
            entity_type="rollover",
            entity_id=f"{source_period}->{target_period}",
            correlation_id=correlation_id,
            description=(
                f"Rollover executed: {copied_budgets} budgets copied, "
                f"{total_carried_over} carried over"
            ),
            details={
                "total_carried_over": total_carried_over,
                "copied_budgets": copied_budgets,
            },
            is_user_action=True,
        )

    @staticmethod
    def rollover_partially_failed(
        user_id: str,
        source_period: str,
        target_period: str,
        failures: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLOVER_PARTIALLY_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="rollover",
            entity_id=f"{source_period}->{target_period}",
            correlation_id=correlation_id,
            description=f"Rollover finished with {len(failures)} failures",
            details={"failures": failures},
        )

    @staticmethod
    def rollover_rejected(
        user_id: str,
        source_period: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLOVER_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="rollover",
            entity_id=source_period,
            correlation_id=correlation_id,
            description=f"Rollover from {source_period} refused",
            error_message=reason,
        )

    @staticmethod
    def budget_carried_over(
        user_id: str,
        budget_id: Optional[str],
        category: str,
        original_limit: str,
        new_limit: str,
        action: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CARRIED_OVER,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget {category}: {original_limit} -> {new_limit} ({action})",
            details={
                "category": category,
                "original_limit": original_limit,
                "new_limit": new_limit,
                "action": action,
            },
        )

    @staticmethod
    def settings_loaded_default(
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_LOADED_DEFAULT,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="settings",
            correlation_id=correlation_id,
            description="No saved rollover settings, using defaults",
        )

    @staticmethod
    def settings_saved(
        user_id: str,
        carry_over_categories: list[str],
        max_carry_over_percentage: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_SAVED,
            user_id=user_id,
            entity_type="settings",
            correlation_id=correlation_id,
            description="Rollover settings saved",
            details={
                "carry_over_categories": carry_over_categories,
                "max_carry_over_percentage": max_carry_over_percentage,
            },
            is_user_action=True,
        )

    @staticmethod
    def authentication_failed(
        operation: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHENTICATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"No authenticated user for {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
