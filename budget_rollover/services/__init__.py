"""Services package."""

from budget_rollover.services.identity import (
    IdentityProvider,
    StaticIdentityProvider,
)
from budget_rollover.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsPreferenceStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryPreferenceStorage,
    LedgerStorageInterface,
    NotFoundError,
    PreferenceStorageInterface,
    StorageError,
)

__all__ = [
    # Identity
    "IdentityProvider",
    "StaticIdentityProvider",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "GoogleSheetsPreferenceStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "InMemoryPreferenceStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "PreferenceStorageInterface",
    "StorageError",
]
