"""
Audit Logger

DESIGN DECISION: Every rollover preview, execution and settings change is
logged. This provides:
1. Traceability of every budget the engine wrote
2. Debugging capability for partially failed rollovers
3. A history the user can inspect beyond the 12 stored rollover records

The audit logger:
- Is async to not block main flow
- Gracefully handles storage failures (audit persistence never breaks a rollover)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_rollover.models.audit import AuditEvent, AuditEventBuilder
from budget_rollover.models.budget import (
    CategoryOutcome,
    RolloverPreview,
    RolloverResult,
    RolloverSettings,
)
from budget_rollover.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def _money(amount: Decimal) -> str:
    return str(amount)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("budget_rollover.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_rollover_previewed(
        self,
        user_id: str,
        preview: RolloverPreview,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.rollover_previewed(
            user_id=user_id,
            source_period=preview.source_period,
            target_period=preview.target_period,
            total_carry_over=_money(preview.total_carry_over_amount),
            categories_count=preview.total_categories,
            correlation_id=correlation_id,
        ))

    async def log_rollover_executed(
        self,
        user_id: str,
        result: RolloverResult,
        correlation_id: UUID,
    ) -> None:
        """Log the aggregate outcome, plus failures if there were any."""
        record = result.reset_record
        await self.log(AuditEventBuilder.rollover_executed(
            user_id=user_id,
            source_period=record.source_period,
            target_period=record.target_period,
            total_carried_over=_money(result.total_carried_over_amount),
            copied_budgets=result.copied_budgets,
            correlation_id=correlation_id,
        ))

        if result.is_partial:
            failures = [failure.model_dump() for failure in result.failures]
            if result.history_error:
                failures.append({"category": None, "message": result.history_error})
            await self.log(AuditEventBuilder.rollover_partially_failed(
                user_id=user_id,
                source_period=record.source_period,
                target_period=record.target_period,
                failures=failures,
                correlation_id=correlation_id,
            ))

    async def log_budget_carried_over(
        self,
        user_id: str,
        budget_id: Optional[str],
        outcome: CategoryOutcome,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.budget_carried_over(
            user_id=user_id,
            budget_id=budget_id,
            category=outcome.category,
            original_limit=_money(outcome.original_limit),
            new_limit=_money(outcome.new_limit),
            action=outcome.action.value,
            correlation_id=correlation_id,
        ))

    async def log_rollover_rejected(
        self,
        user_id: str,
        source_period: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.rollover_rejected(
            user_id=user_id,
            source_period=source_period,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_settings_defaulted(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settings_loaded_default(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_settings_saved(
        self,
        user_id: str,
        settings: RolloverSettings,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settings_saved(
            user_id=user_id,
            carry_over_categories=list(settings.carry_over_categories),
            max_carry_over_percentage=_money(settings.max_carry_over_percentage),
            correlation_id=correlation_id,
        ))

    async def log_authentication_failed(
        self,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.authentication_failed(
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., one rollover execution).
    Pass it through all subsequent operations.
    """
    return uuid4()
