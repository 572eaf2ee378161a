"""
Abstract Storage Interface

DESIGN DECISION: The engine talks to storage only through these interfaces.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep rollover logic decoupled from storage implementation

The interface is intentionally small: the engine reads budgets and expenses
for one period and writes budgets and one preference document. Transactional
guarantees, if any, belong to the backend.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from budget_rollover.models.audit import AuditEvent
from budget_rollover.models.budget import Budget, Expense


class LedgerStorageInterface(ABC):
    """
    Abstract interface for budget and expense storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def fetch_budgets(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[Budget]:
        """
        List a user's budgets for one period.

        Returns:
            Budgets in storage order (may be empty)

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def fetch_expenses(
        self,
        user_id: str,
        date_from: date,
        date_to: date,
    ) -> list[Expense]:
        """
        List a user's expenses dated within [date_from, date_to] inclusive.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert_budget(self, budget: Budget) -> Budget:
        """
        Insert a new budget row.

        Returns:
            The stored budget, with its id assigned

        Raises:
            DuplicateError: If (user, category, month, year) already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> Budget:
        """
        Replace an existing budget row, matched by id.

        Raises:
            NotFoundError: If no budget has this id
            StorageError: If the write fails
        """
        pass


class PreferenceStorageInterface(ABC):
    """
    Abstract interface for per-user preference documents.

    Documents are keyed by (user_id, preference_type).
    """

    @abstractmethod
    async def get_user_preference(
        self,
        user_id: str,
        preference_type: str,
    ) -> Optional[dict]:
        """
        Load a preference document.

        Returns:
            The stored payload, or None if the user has none
        """
        pass

    @abstractmethod
    async def upsert_user_preference(
        self,
        user_id: str,
        preference_type: str,
        payload: dict,
    ) -> None:
        """
        Create or replace a preference document.

        Last write wins; there is no merge.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
