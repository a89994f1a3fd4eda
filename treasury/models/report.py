"""
Report Models

Derived views over the transaction store. Every amount in here is
expressed in the reporting currency.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from treasury.models.transaction import (
    Category,
    ExpenseCategory,
    Transaction,
    TransactionType,
    utc_now,
)


class Totals(BaseModel):
    """Dashboard headline figures."""

    total_revenue: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class MonthlyTrendPoint(BaseModel):
    """Revenue and expense for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    revenue: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class BudgetLine(BaseModel):
    """Budget-vs-actual for one expense category."""

    category: ExpenseCategory
    budget: Decimal
    actual: Decimal
    remaining: Decimal = Field(
        description="Negative when the category is overspent"
    )
    percent_used: Decimal = Field(
        ge=0,
        le=100,
        description="Capped at 100 for display"
    )

    @property
    def is_overspent(self) -> bool:
        return self.remaining < 0


class Dashboard(BaseModel):
    """Everything the dashboard page renders."""

    totals: Totals
    expense_by_category: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    trend: list[MonthlyTrendPoint] = Field(default_factory=list)
    recent_transactions: list[Transaction] = Field(default_factory=list)


# =============================================================================
# QUERY MODELS
# =============================================================================

class ReportQuery(BaseModel):
    """
    Filters for the reports page.

    Every filter is optional; an empty query matches everything.
    Date bounds are inclusive.
    """

    query_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    transaction_type: Optional[TransactionType] = None
    categories: list[Category] = Field(default_factory=list)
    project_id: Optional[str] = None

    @property
    def description(self) -> str:
        parts = ["Transactions"]
        if self.transaction_type:
            parts.append(f"type: {self.transaction_type.value}")
        if self.categories:
            parts.append("categories: " + ", ".join(c.value for c in self.categories))
        if self.project_id:
            parts.append(f"project: {self.project_id}")
        if self.date_from or self.date_to:
            start = self.date_from.isoformat() if self.date_from else "beginning"
            end = self.date_to.isoformat() if self.date_to else "today"
            parts.append(f"{start} to {end}")
        return " | ".join(parts)


class ReportResult(BaseModel):
    """Result of executing a ReportQuery."""

    query_id: UUID
    executed_at: datetime = Field(default_factory=utc_now)

    data_found: bool
    result_count: int = Field(ge=0)
    transactions: list[Transaction] = Field(default_factory=list)
    totals: Totals
    expense_distribution: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    query_description: str


class ProjectReport(BaseModel):
    """Transactions attributed to one project."""

    project_id: str
    project_name: str
    project_exists: bool
    budget: Decimal = Decimal("0")
    transactions: list[Transaction] = Field(default_factory=list)
    totals: Totals
    budget_used_percent: Decimal = Decimal("0")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'future_date', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of save-time validation."""

    entity_id: str
    validated_at: datetime = Field(default_factory=utc_now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
