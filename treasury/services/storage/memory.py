"""
In-Memory Storage

Backs tests and local runs without Google credentials. Collections are
copied on the way in and out so callers never share mutable state with
the store - the same replace-the-whole-collection contract as the
Sheets backend.
"""

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
from treasury.services.storage.interface import (
    AuditStorageInterface,
    TreasuryStorageInterface,
)


class InMemoryTreasuryStorage(TreasuryStorageInterface):
    """One list per collection."""

    def __init__(
        self,
        transactions: Optional[list[Transaction]] = None,
        obligations: Optional[list[RecurringObligation]] = None,
        settings: Optional[TreasurySettings] = None,
        budgets: Optional[list[Budget]] = None,
        projects: Optional[list[Project]] = None,
        disbursement_sheets: Optional[list[DisbursementSheet]] = None,
    ):
        self._transactions = list(transactions or [])
        self._obligations = [o.model_copy() for o in obligations or []]
        self._settings = settings
        self._budgets = list(budgets or [])
        self._projects = list(projects or [])
        self._sheets = [s.model_copy(deep=True) for s in disbursement_sheets or []]
        # Number of save_* calls per collection
        self.save_counts: dict[str, int] = {}

    def _count(self, collection: str) -> None:
        self.save_counts[collection] = self.save_counts.get(collection, 0) + 1

    async def load_transactions(self) -> list[Transaction]:
        return list(self._transactions)

    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        self._count("transactions")
        self._transactions = list(transactions)
        return True

    async def load_recurring_obligations(self) -> list[RecurringObligation]:
        return [o.model_copy() for o in self._obligations]

    async def save_recurring_obligations(
        self,
        obligations: list[RecurringObligation],
    ) -> bool:
        self._count("recurring")
        self._obligations = [o.model_copy() for o in obligations]
        return True

    async def load_settings(self) -> Optional[TreasurySettings]:
        return self._settings.model_copy() if self._settings else None

    async def save_settings(self, settings: TreasurySettings) -> bool:
        self._count("settings")
        self._settings = settings.model_copy()
        return True

    async def load_budgets(self) -> list[Budget]:
        return list(self._budgets)

    async def save_budgets(self, budgets: list[Budget]) -> bool:
        self._count("budgets")
        self._budgets = list(budgets)
        return True

    async def load_projects(self) -> list[Project]:
        return list(self._projects)

    async def save_projects(self, projects: list[Project]) -> bool:
        self._count("projects")
        self._projects = list(projects)
        return True

    async def load_disbursement_sheets(self) -> list[DisbursementSheet]:
        return [s.model_copy(deep=True) for s in self._sheets]

    async def save_disbursement_sheets(self, sheets: list[DisbursementSheet]) -> bool:
        self._count("disbursements")
        self._sheets = [s.model_copy(deep=True) for s in sheets]
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
