"""
Settings & History Store

Persists each user's RolloverSettings document and the bounded rollover
history inside it. History has no storage of its own: it is read from and
written with the settings document.

Defaulting happens here and only here: a user with no saved document gets
the default settings, and a saved document missing keys is completed with
defaults when it is validated. A saved document that fails validation is a
storage read failure (StorageError), never a raw ValidationError.

Known limitation: two sessions of the same user saving at once race
last-write-wins, with no merge.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from budget_rollover.models.budget import (
    PREFERENCE_TYPE_BUDGET_RESET,
    RolloverRecord,
    RolloverSettings,
)
from budget_rollover.services.storage import PreferenceStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class PreferenceStore:
    """Loads and saves rollover settings through a PreferenceStorageInterface."""

    def __init__(
        self,
        storage: PreferenceStorageInterface,
        defaults: Optional[RolloverSettings] = None,
    ):
        """
        Args:
            storage: Preference document backend
            defaults: Settings returned for users with no saved document.
                     Falls back to the RolloverSettings field defaults.
        """
        self._storage = storage
        self._defaults = defaults or RolloverSettings()

    def default_settings(self) -> RolloverSettings:
        return self._defaults.model_copy(deep=True)

    async def load(self, user_id: str) -> tuple[RolloverSettings, bool]:
        """
        Load settings and report whether they were saved or defaulted.

        Returns:
            (settings, is_default)
        """
        try:
            payload = await self._storage.get_user_preference(
                user_id, PREFERENCE_TYPE_BUDGET_RESET
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load budget reset settings: {e}") from e

        if payload is None:
            logger.debug("rollover_settings_defaulted", user_id=user_id)
            return self.default_settings(), True

        try:
            return RolloverSettings.model_validate(payload), False
        except ValidationError as e:
            logger.error("rollover_settings_unreadable", user_id=user_id, error=str(e))
            raise StorageError(f"Stored budget reset settings are invalid: {e}") from e

    async def get_rollover_settings(self, user_id: str) -> RolloverSettings:
        settings, _ = await self.load(user_id)
        return settings

    async def save_rollover_settings(
        self,
        user_id: str,
        settings: RolloverSettings,
    ) -> RolloverSettings:
        """Upsert the settings document keyed by (user_id, "budget_reset")."""
        try:
            await self._storage.upsert_user_preference(
                user_id,
                PREFERENCE_TYPE_BUDGET_RESET,
                settings.to_document(),
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save budget reset settings: {e}") from e

        logger.info(
            "rollover_settings_saved",
            user_id=user_id,
            history_length=len(settings.reset_history),
        )
        return settings

    async def get_rollover_history(self, user_id: str) -> list[RolloverRecord]:
        """Past rollovers, most recent last."""
        settings = await self.get_rollover_settings(user_id)
        return list(settings.reset_history)

    async def record_rollover(
        self,
        user_id: str,
        record: RolloverRecord,
    ) -> RolloverSettings:
        """Append record to the history, keeping the newest entries only."""
        settings = await self.get_rollover_settings(user_id)
        return await self.save_rollover_settings(user_id, settings.with_record(record))
