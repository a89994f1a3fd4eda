"""Validation package."""

from treasury.validation.validator import (
    DuplicateBudgetError,
    TransactionValidator,
    get_user_friendly_summary,
    validate_budgets,
)

__all__ = [
    "DuplicateBudgetError",
    "TransactionValidator",
    "get_user_friendly_summary",
    "validate_budgets",
]
