"""
Save-Time Validation

DESIGN DECISION: Validation happens in two places:

STRUCTURAL - the pydantic models:
- Positive amounts, parseable dates
- Category belongs to the transaction's type
- Rate stripped where it may not appear
- Malformed persisted rows surface as MalformedRecordError on load

SEMANTIC - this module:
- Future date detection
- Absurd amount detection
- Snapshot rate far from the global rate
- Dangling project reference
- Duplicate budget categories

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; warnings do not block a save.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from treasury.config import AppSettings, get_settings
from treasury.currency.normalizer import require_valid_rate
from treasury.models.report import ValidationIssue, ValidationResult
from treasury.models.transaction import Budget, Project, Transaction


class DuplicateBudgetError(ValueError):
    """More than one budget was given for the same category."""
    pass


class TransactionValidator:
    """Semantic checks run before a transaction is saved."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(
        self,
        transaction: Transaction,
        global_rate: Decimal,
        projects: Iterable[Project] = (),
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run every semantic check.

        Returns:
            ValidationResult with all issues found
        """
        today = today or date.today()
        issues = []

        # Future date check (with tolerance)
        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({transaction.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Absurd amount check
        if transaction.amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount ({transaction.amount:,.2f} {transaction.currency.value}) "
                    "seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        # Snapshot rate far from the current rate
        if transaction.exchange_rate is not None:
            rate = require_valid_rate(global_rate)
            deviation = abs(transaction.exchange_rate - rate) / rate
            if deviation > self._settings.rate_deviation_warning_ratio:
                issues.append(ValidationIssue(
                    field="exchange_rate",
                    issue_type="suspicious_value",
                    message=(
                        f"Exchange rate {transaction.exchange_rate} differs from "
                        f"the current rate {rate} by {deviation:.0%}"
                    ),
                    severity="warning",
                    suggested_fix="Leave the rate empty to use the current rate",
                ))

        # Dangling project reference
        if transaction.project_id:
            known = {project.id for project in projects}
            if transaction.project_id not in known:
                issues.append(ValidationIssue(
                    field="project_id",
                    issue_type="unknown_reference",
                    message=f"Project {transaction.project_id} does not exist",
                    severity="warning",
                ))

        return ValidationResult(entity_id=transaction.id, issues=issues)


def validate_budgets(budgets: Iterable[Budget]) -> list[Budget]:
    """
    Ensure there is at most one budget per category.

    Raises:
        DuplicateBudgetError: If a category appears twice.
    """
    seen = set()
    result = []
    for budget in budgets:
        if budget.category in seen:
            raise DuplicateBudgetError(
                f"Duplicate budget for category {budget.category.value}"
            )
        seen.add(budget.category)
        result.append(budget)
    return result


def get_user_friendly_summary(result: ValidationResult) -> str:
    """Short text shown next to the save confirmation."""
    if not result.issues:
        return "All checks passed."

    lines = ["Please verify the following:"]
    for issue in result.issues:
        lines.append(f"  - {issue.message}")
        if issue.suggested_fix:
            lines.append(f"    {issue.suggested_fix}")
    return "\n".join(lines)
