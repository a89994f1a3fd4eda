"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and offline runs.
"""

from treasury.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    MalformedRecordError,
    NotFoundError,
    StorageError,
    TreasuryStorageInterface,
)
from treasury.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTreasuryStorage,
)
from treasury.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTreasuryStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TreasuryStorageInterface",
    # Exceptions
    "ConnectionError",
    "MalformedRecordError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTreasuryStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTreasuryStorage",
]
