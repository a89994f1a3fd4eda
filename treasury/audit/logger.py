"""
Audit Logger

DESIGN DECISION: Every change to the books is logged.
This provides:
1. Traceability of who changed the shared fund
2. A record of every catch-up run and what it generated
3. Debugging information when storage misbehaves

The audit logger:
- Gracefully handles failures (an audit write never breaks a save)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from treasury.models.audit import AuditEvent, AuditEventBuilder
from treasury.models.recurrence import CatchUpResult
from treasury.models.transaction import Transaction
from treasury.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit worksheet (for persistence and board visibility)
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
        self._logger = structlog.get_logger()

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
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_catch_up(
        self,
        result: CatchUpResult,
        persisted: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a catch-up run and each obligation that failed in it."""
        for failure in result.failures:
            await self.log(AuditEventBuilder.catch_up_obligation_failed(
                obligation_id=failure.obligation_id,
                error_type=failure.error_type,
                error_message=failure.error_message,
                correlation_id=correlation_id,
            ))

        await self.log(AuditEventBuilder.catch_up_completed(
            generated=len(result.generated_transactions),
            upcoming=len(result.upcoming_obligations),
            failed=len(result.failures),
            persisted=persisted,
            correlation_id=correlation_id,
        ))

    async def log_transaction_saved(
        self,
        transaction: Transaction,
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_saved(
            transaction_id=transaction.id,
            created=created,
            amount=str(transaction.amount),
            currency=transaction.currency.value,
            exchange_rate=(
                str(transaction.exchange_rate)
                if transaction.exchange_rate is not None
                else None
            ),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_recurring_saved(
        self,
        obligation_id: str,
        description: str,
        next_due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_saved(
            obligation_id=obligation_id,
            description=description,
            next_due_date=next_due_date,
            correlation_id=correlation_id,
        ))

    async def log_recurring_deleted(
        self,
        obligation_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_deleted(
            obligation_id=obligation_id,
            correlation_id=correlation_id,
        ))

    async def log_settings_updated(
        self,
        old_rate: Optional[Decimal],
        new_rate: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an exchange rate change."""
        await self.log(AuditEventBuilder.settings_updated(
            old_rate=str(old_rate) if old_rate is not None else None,
            new_rate=str(new_rate),
            correlation_id=correlation_id,
        ))

    async def log_budgets_saved(
        self,
        categories: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budgets_saved(
            categories=categories,
            correlation_id=correlation_id,
        ))

    async def log_project_changed(
        self,
        project_id: str,
        deleted: bool,
        unlinked_transactions: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.project_changed(
            project_id=project_id,
            deleted=deleted,
            unlinked_transactions=unlinked_transactions,
            correlation_id=correlation_id,
        ))

    async def log_disbursement_sheet_changed(
        self,
        sheet_id: str,
        deleted: bool,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.disbursement_sheet_changed(
            sheet_id=sheet_id,
            deleted=deleted,
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_validation_warning(
        self,
        entity_id: str,
        warnings: list[str],
        summary: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log warnings a save went through with."""
        await self.log(AuditEventBuilder.validation_warning(
            entity_id=entity_id,
            warnings=warnings,
            summary=summary,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        collection: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            collection=collection,
            error_message=error_message,
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
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action or a catch-up run.
    Pass it through all subsequent operations.
    """
    return uuid4()
