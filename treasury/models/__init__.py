"""
Data Models Package

This package contains all Pydantic models used by the treasury core.
All records flowing through the system must conform to these schemas.
"""

from treasury.models.transaction import (
    PRIMARY_CURRENCY,
    REPORTING_CURRENCY,
    Budget,
    Category,
    Currency,
    DisbursementMethod,
    DisbursementRecord,
    DisbursementSheet,
    ExpenseCategory,
    Frequency,
    Project,
    RecurringObligation,
    RevenueCategory,
    Transaction,
    TransactionType,
    TreasurySettings,
    categories_for,
    generate_id,
)
from treasury.models.recurrence import (
    AdvanceResult,
    CatchUpFailure,
    CatchUpResult,
    ReminderNotification,
)
from treasury.models.report import (
    BudgetLine,
    Dashboard,
    MonthlyTrendPoint,
    ProjectReport,
    ReportQuery,
    ReportResult,
    Totals,
    ValidationIssue,
    ValidationResult,
)
from treasury.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "PRIMARY_CURRENCY",
    "REPORTING_CURRENCY",
    "Budget",
    "Category",
    "Currency",
    "DisbursementMethod",
    "DisbursementRecord",
    "DisbursementSheet",
    "ExpenseCategory",
    "Frequency",
    "Project",
    "RecurringObligation",
    "RevenueCategory",
    "Transaction",
    "TransactionType",
    "TreasurySettings",
    "categories_for",
    "generate_id",
    # Recurrence
    "AdvanceResult",
    "CatchUpFailure",
    "CatchUpResult",
    "ReminderNotification",
    # Reports
    "BudgetLine",
    "Dashboard",
    "MonthlyTrendPoint",
    "ProjectReport",
    "ReportQuery",
    "ReportResult",
    "Totals",
    "ValidationIssue",
    "ValidationResult",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
