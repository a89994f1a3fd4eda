"""Services package."""

from treasury.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTreasuryStorage,
    InMemoryAuditStorage,
    InMemoryTreasuryStorage,
    MalformedRecordError,
    NotFoundError,
    StorageError,
    TreasuryStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTreasuryStorage",
    "InMemoryAuditStorage",
    "InMemoryTreasuryStorage",
    "MalformedRecordError",
    "NotFoundError",
    "StorageError",
    "TreasuryStorageInterface",
]
