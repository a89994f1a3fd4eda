"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the treasury core decoupled from storage implementation

Every collection has a load/save pair, and every save REPLACES the
whole collection. The core never relies on partial updates.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from treasury.models.audit import AuditEvent
from treasury.models.transaction import (
    Budget,
    DisbursementSheet,
    Project,
    RecurringObligation,
    Transaction,
    TreasurySettings,
)


class TreasuryStorageInterface(ABC):
    """
    Abstract interface for treasury storage operations.

    Any storage implementation (Google Sheets, SQLite, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load_transactions(self) -> list[Transaction]:
        """
        Load every transaction.

        Raises:
            MalformedRecordError: If a stored record fails validation
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        """
        Replace the stored transactions with `transactions`.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load_recurring_obligations(self) -> list[RecurringObligation]:
        pass

    @abstractmethod
    async def save_recurring_obligations(
        self,
        obligations: list[RecurringObligation],
    ) -> bool:
        pass

    @abstractmethod
    async def load_settings(self) -> Optional[TreasurySettings]:
        """
        Load persisted settings.

        Returns:
            The settings, or None if they were never saved
        """
        pass

    @abstractmethod
    async def save_settings(self, settings: TreasurySettings) -> bool:
        pass

    @abstractmethod
    async def load_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def save_budgets(self, budgets: list[Budget]) -> bool:
        pass

    @abstractmethod
    async def load_projects(self) -> list[Project]:
        pass

    @abstractmethod
    async def save_projects(self, projects: list[Project]) -> bool:
        pass

    @abstractmethod
    async def load_disbursement_sheets(self) -> list[DisbursementSheet]:
        pass

    @abstractmethod
    async def save_disbursement_sheets(self, sheets: list[DisbursementSheet]) -> bool:
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
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one catch-up run).

        Returns:
            List of related events in chronological order
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


class MalformedRecordError(StorageError):
    """A stored record could not be parsed or failed validation."""

    def __init__(self, collection: str, row_number: int, reason: str):
        self.collection = collection
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Malformed {collection} record at row {row_number}: {reason}")


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
