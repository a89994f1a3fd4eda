"""
Audit Models for Treasury

Every change to the treasury's books is logged for audit purposes.
This provides:
1. Complete traceability of who-changed-what
2. Debugging information when catch-up or storage misbehaves
3. Accountability for a shared organizational fund

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from treasury.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recurring obligations
    RECURRING_SAVED = "recurring_saved"
    RECURRING_DELETED = "recurring_deleted"
    CATCH_UP_COMPLETED = "catch_up_completed"
    CATCH_UP_OBLIGATION_FAILED = "catch_up_obligation_failed"

    # Configuration and planning
    SETTINGS_UPDATED = "settings_updated"
    BUDGETS_SAVED = "budgets_saved"
    PROJECT_SAVED = "project_saved"
    PROJECT_DELETED = "project_deleted"
    DISBURSEMENT_SHEET_SAVED = "disbursement_sheet_saved"
    DISBURSEMENT_SHEET_DELETED = "disbursement_sheet_deleted"

    # Validation
    VALIDATION_WARNING = "validation_warning"

    # System events
    SAVE_FAILED = "save_failed"
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'recurring', 'settings')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one catch-up run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(tx_id, created=True, ...)
        event = AuditEventBuilder.catch_up_completed(generated=3, ...)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        created: bool,
        amount: str,
        currency: str,
        exchange_rate: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = "created" if created else "updated"
        return AuditEvent(
            event_type=(
                AuditEventType.TRANSACTION_CREATED
                if created
                else AuditEventType.TRANSACTION_UPDATED
            ),
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {amount} {currency}",
            details={
                "amount": amount,
                "currency": currency,
                "exchange_rate": exchange_rate,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def recurring_saved(
        obligation_id: str,
        description: str,
        next_due_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_SAVED,
            entity_type="recurring",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Recurring expense saved: {description}",
            details={"next_due_date": next_due_date},
            is_user_action=True,
        )

    @staticmethod
    def recurring_deleted(
        obligation_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_DELETED,
            entity_type="recurring",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description="Recurring expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def catch_up_completed(
        generated: int,
        upcoming: int,
        failed: int,
        persisted: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATCH_UP_COMPLETED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            entity_type="recurring",
            correlation_id=correlation_id,
            description=(
                f"Catch-up generated {generated} transactions, "
                f"{upcoming} due tomorrow, {failed} failed"
            ),
            details={
                "generated": generated,
                "upcoming": upcoming,
                "failed": failed,
                "persisted": persisted,
            },
        )

    @staticmethod
    def catch_up_obligation_failed(
        obligation_id: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATCH_UP_OBLIGATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="recurring",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Could not advance recurring expense: {error_type}",
            error_message=error_message,
        )

    @staticmethod
    def settings_updated(
        old_rate: Optional[str],
        new_rate: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Exchange rate changed from {old_rate} to {new_rate}",
            details={"old_rate": old_rate, "new_rate": new_rate},
            is_user_action=True,
        )

    @staticmethod
    def budgets_saved(
        categories: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_SAVED,
            entity_type="budget",
            correlation_id=correlation_id,
            description=f"Budgets saved for {len(categories)} categories",
            details={"categories": categories},
            is_user_action=True,
        )

    @staticmethod
    def project_changed(
        project_id: str,
        deleted: bool,
        unlinked_transactions: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PROJECT_DELETED if deleted else AuditEventType.PROJECT_SAVED
            ),
            entity_type="project",
            entity_id=project_id,
            correlation_id=correlation_id,
            description="Project deleted" if deleted else "Project saved",
            details={"unlinked_transactions": unlinked_transactions},
            is_user_action=True,
        )

    @staticmethod
    def disbursement_sheet_changed(
        sheet_id: str,
        deleted: bool,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.DISBURSEMENT_SHEET_DELETED
                if deleted
                else AuditEventType.DISBURSEMENT_SHEET_SAVED
            ),
            entity_type="disbursement_sheet",
            entity_id=sheet_id,
            correlation_id=correlation_id,
            description=(
                "Disbursement sheet deleted" if deleted
                else f"Disbursement sheet saved with {record_count} records"
            ),
            details={"record_count": record_count},
            is_user_action=True,
        )

    @staticmethod
    def validation_warning(
        entity_id: str,
        warnings: list[str],
        summary: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        details = {"warnings": warnings}
        if summary:
            details["summary"] = summary
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Saved with {len(warnings)} validation warnings",
            details=details,
        )

    @staticmethod
    def save_failed(
        collection: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection,
            correlation_id=correlation_id,
            description=f"Failed to save {collection}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
