"""
Main Orchestrator for the Budget Rollover Engine

This module ties together the rollover components and defines the
user-facing flows:
1. Settings (load with defaults, save, history)
2. Unspent summary for a period
3. Preview (dry run) and execute of a rollover

DESIGN DECISION: The orchestrator enforces the boundaries:
- No storage access without a resolved user identity
- Execute always recomputes; it never replays a stale preview
- Every step is audited

Collaborators (storage, identity, audit) are injected; nothing here is a
process-wide singleton.
"""

from typing import Optional
from uuid import UUID

import structlog

from budget_rollover.audit import AuditLogger, create_correlation_id
from budget_rollover.config import get_settings
from budget_rollover.models.budget import (
    Period,
    RolloverOptions,
    RolloverPreview,
    RolloverRecord,
    RolloverResult,
    RolloverSettings,
    UnspentRecord,
)
from budget_rollover.rollover import (
    NoSourceBudgetsError,
    NotAuthenticatedError,
    PreferenceStore,
    RolloverPlanner,
    UnspentCalculator,
)
from budget_rollover.services.identity import IdentityProvider, StaticIdentityProvider
from budget_rollover.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsPreferenceStorage,
    InMemoryLedgerStorage,
    InMemoryPreferenceStorage,
    LedgerStorageInterface,
    PreferenceStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class RolloverFlow:
    """
    Entry point for every rollover operation.

    Flow for a rollover:
    1. Resolve user → NotAuthenticatedError if none
    2. Preview → show the plan (no writes)
    3. Execute → recompute the plan, write target budgets, append history

    Every public method resolves the user before touching storage.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        preference_storage: PreferenceStorageInterface,
        identity: IdentityProvider,
        audit_logger: Optional[AuditLogger] = None,
        default_settings: Optional[RolloverSettings] = None,
    ):
        self._identity = identity
        self._preferences = PreferenceStore(preference_storage, default_settings)
        self._calculator = UnspentCalculator(ledger)
        self._planner = RolloverPlanner(ledger, self._preferences, self._calculator)
        self._audit_logger = audit_logger

    async def _require_user(
        self,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        user_id = await self._identity.current_user_id()
        if not user_id:
            if self._audit_logger:
                await self._audit_logger.log_authentication_failed(
                    operation=operation,
                    correlation_id=correlation_id,
                )
            raise NotAuthenticatedError(operation)
        return user_id

    async def _audit_storage_error(
        self,
        operation: str,
        error: StorageError,
        user_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                user_id=user_id,
                correlation_id=correlation_id,
            )

    async def _audit_unexpected_error(
        self,
        operation: str,
        error: Exception,
        user_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": operation, "user_id": user_id},
                correlation_id=correlation_id,
            )

    # -------------------------------------------------------------------------
    # Settings & history
    # -------------------------------------------------------------------------

    async def get_settings(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> RolloverSettings:
        """Load the user's rollover settings, defaulting when none are saved."""
        user_id = await self._require_user("get_settings", correlation_id)

        try:
            settings, is_default = await self._preferences.load(user_id)
        except StorageError as e:
            await self._audit_storage_error("get_settings", e, user_id, correlation_id)
            raise

        if is_default and self._audit_logger:
            await self._audit_logger.log_settings_defaulted(
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return settings

    async def save_settings(
        self,
        settings: RolloverSettings,
        correlation_id: Optional[UUID] = None,
    ) -> RolloverSettings:
        """Save the user's rollover settings (last write wins)."""
        user_id = await self._require_user("save_settings", correlation_id)

        try:
            saved = await self._preferences.save_rollover_settings(user_id, settings)
        except StorageError as e:
            await self._audit_storage_error("save_settings", e, user_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_settings_saved(
                user_id=user_id,
                settings=saved,
                correlation_id=correlation_id,
            )
        return saved

    async def get_history(self) -> list[RolloverRecord]:
        """Past rollovers, most recent last (at most 12)."""
        user_id = await self._require_user("get_history")
        return await self._preferences.get_rollover_history(user_id)

    async def options_from_settings(
        self,
        source: Period,
        target: Optional[Period] = None,
    ) -> RolloverOptions:
        """Build rollover options from the user's saved settings."""
        settings = await self.get_settings()
        return RolloverOptions.from_settings(settings, source, target)

    # -------------------------------------------------------------------------
    # Rollover
    # -------------------------------------------------------------------------

    async def calculate_unspent(self, period: Period) -> list[UnspentRecord]:
        """Unspent amount and eligibility of every budget in period."""
        user_id = await self._require_user("calculate_unspent")
        return await self._calculator.calculate(user_id, period)

    async def preview(
        self,
        options: RolloverOptions,
        correlation_id: Optional[UUID] = None,
    ) -> RolloverPreview:
        """
        Dry run of a rollover.

        Raises:
            NotAuthenticatedError: No resolved user
            NoSourceBudgetsError: Source period has no budgets
            StorageError: Reading budgets or expenses failed
        """
        correlation_id = correlation_id or create_correlation_id()
        user_id = await self._require_user("preview", correlation_id)

        try:
            preview = await self._planner.preview(user_id, options)
        except NoSourceBudgetsError as e:
            if self._audit_logger:
                await self._audit_logger.log_rollover_rejected(
                    user_id=user_id,
                    source_period=e.source_period,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            await self._audit_storage_error("preview", e, user_id, correlation_id)
            raise
        except Exception as e:
            await self._audit_unexpected_error("preview", e, user_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_rollover_previewed(
                user_id=user_id,
                preview=preview,
                correlation_id=correlation_id,
            )
        return preview

    async def execute(
        self,
        options: RolloverOptions,
        correlation_id: Optional[UUID] = None,
    ) -> RolloverResult:
        """
        Execute a rollover.

        CRITICAL: This is called ONLY after explicit user confirmation,
        typically after a preview. The plan is recomputed from current data.

        Returns the result even when some categories failed; check
        result.error or call result.raise_for_errors().

        Raises:
            NotAuthenticatedError: No resolved user
            NoSourceBudgetsError: Source period has no budgets (nothing written)
            StorageError: Reading source or target budgets failed (nothing written)
        """
        correlation_id = correlation_id or create_correlation_id()
        user_id = await self._require_user("execute", correlation_id)

        try:
            result = await self._planner.execute(user_id, options)
        except NoSourceBudgetsError as e:
            if self._audit_logger:
                await self._audit_logger.log_rollover_rejected(
                    user_id=user_id,
                    source_period=e.source_period,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            await self._audit_storage_error("execute", e, user_id, correlation_id)
            raise
        except Exception as e:
            await self._audit_unexpected_error("execute", e, user_id, correlation_id)
            raise

        if self._audit_logger:
            for outcome in result.categories_processed:
                await self._audit_logger.log_budget_carried_over(
                    user_id=user_id,
                    budget_id=outcome.budget_id,
                    outcome=outcome,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_rollover_executed(
                user_id=user_id,
                result=result,
                correlation_id=correlation_id,
            )
        return result


def default_rollover_settings() -> RolloverSettings:
    """Default settings for users with none saved, from app configuration."""
    app = get_settings().app
    return RolloverSettings(
        carry_over_categories=app.default_categories_list,
        max_carry_over_percentage=app.default_max_carry_over_percentage,
    )


def create_app_components(
    use_storage: bool = True,
    identity: Optional[IdentityProvider] = None,
) -> tuple[RolloverFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize the configured storage backend.
                    Set to False for running against in-memory storage.
        identity: Identity collaborator. Defaults to the user id from
                 configuration (signed out when unset).

    Returns:
        (rollover_flow, sheets_client)
    """
    app = get_settings().app
    identity = identity or StaticIdentityProvider(app.user_id)

    sheets_client = None
    ledger: LedgerStorageInterface = InMemoryLedgerStorage()
    preference_storage: PreferenceStorageInterface = InMemoryPreferenceStorage()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage and app.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            ledger = GoogleSheetsLedgerStorage(sheets_client)
            preference_storage = GoogleSheetsPreferenceStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    rollover_flow = RolloverFlow(
        ledger=ledger,
        preference_storage=preference_storage,
        identity=identity,
        audit_logger=audit_logger,
        default_settings=default_rollover_settings(),
    )

    return rollover_flow, sheets_client
