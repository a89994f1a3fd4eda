"""
Core Data Models for Treasury

These models define the strict schemas for all records the treasury keeps.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Money is always Decimal. Dates are calendar dates
with no time component, so "overdue" comparisons never depend on the
time of day a session starts.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def generate_id(prefix: str) -> str:
    """
    Create a unique record identifier.

    Uses uuid4 rather than a timestamp, so ids generated in a tight
    loop (e.g. catch-up backfilling many months) never collide.
    """
    return f"{prefix}-{uuid4().hex}"


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    REVENUE = "revenue"
    EXPENSE = "expense"


class Currency(str, Enum):
    """Supported currencies."""
    EGP = "EGP"
    USD = "USD"


# Local currency that most amounts are recorded in
PRIMARY_CURRENCY = Currency.EGP
# Every report is expressed in this currency
REPORTING_CURRENCY = Currency.USD


class RevenueCategory(str, Enum):
    """
    Revenue categories.

    DESIGN DECISION: Values are disjoint from ExpenseCategory so that a
    stored category string always identifies exactly one enumeration.
    Member order is the report order.
    """
    GENERAL = "general_revenue"
    ZAKAT = "zakat"
    SADAQA = "sadaqa"
    PROJECT_SUPPORT = "project_support"
    EVENT_REVENUE = "event_revenue"
    GRANTS = "grants"


class ExpenseCategory(str, Enum):
    """Expense categories. Member order is the report order."""
    OPERATIONAL = "operational"
    SALARIES = "salaries"
    UTILITIES = "utilities"
    PROJECT_COSTS = "project_costs"
    RELIEF_AID = "relief_aid"
    REWARDS = "rewards"


Category = Union[RevenueCategory, ExpenseCategory]


class Frequency(str, Enum):
    """How often a recurring obligation falls due."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DisbursementMethod(str, Enum):
    """How aid reached a beneficiary."""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    IN_KIND = "in_kind"


def categories_for(transaction_type: TransactionType) -> type[Enum]:
    """Return the category enumeration valid for a transaction type."""
    if transaction_type == TransactionType.REVENUE:
        return RevenueCategory
    return ExpenseCategory


def _coerce(enum_cls: type[Enum], value: Any) -> Optional[Enum]:
    try:
        return enum_cls(value)
    except ValueError:
        return None


def carries_rate_snapshot(transaction_type: Any, currency: Any) -> bool:
    """Only expenses recorded in the primary currency keep a frozen rate."""
    return (
        _coerce(TransactionType, transaction_type) == TransactionType.EXPENSE
        and _coerce(Currency, currency) == PRIMARY_CURRENCY
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single revenue or expense entry.

    Transactions are immutable. An edit produces a new, fully
    re-validated instance via `with_changes`.

    `exchange_rate` is the EGP-per-USD rate frozen when an expense was
    recorded or last edited. It is only meaningful for expenses in the
    primary currency and is stripped from every other transaction.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique transaction ID, never reused"
    )
    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive magnitude in `currency`"
    )
    currency: Currency
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    category: Category
    exchange_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Frozen EGP-per-USD rate (primary-currency expenses only)"
    )
    project_id: Optional[str] = None
    recipient: Optional[str] = Field(
        default=None,
        max_length=200,
    )
    receipt_url: Optional[str] = None
    source_obligation_id: Optional[str] = Field(
        default=None,
        description="Recurring obligation this transaction was generated from"
    )

    @model_validator(mode='before')
    @classmethod
    def strip_exchange_rate(cls, data: Any) -> Any:
        """Drop a rate that the transaction is not allowed to carry."""
        if (
            isinstance(data, dict)
            and data.get("exchange_rate") is not None
            and not carries_rate_snapshot(data.get("type"), data.get("currency"))
        ):
            data = {**data, "exchange_rate": None}
        return data

    @model_validator(mode='after')
    def validate_category_matches_type(self) -> 'Transaction':
        """The category must come from the enumeration of its type."""
        expected = categories_for(self.type)
        if not isinstance(self.category, expected):
            raise ValueError(
                f"Category {self.category.value!r} is not a valid "
                f"{self.type.value} category"
            )
        return self

    @property
    def has_rate_snapshot(self) -> bool:
        return carries_rate_snapshot(self.type, self.currency)

    def with_changes(self, **changes: Any) -> 'Transaction':
        """Return a re-validated copy with `changes` applied."""
        data = self.model_dump()
        data.update(changes)
        return Transaction.model_validate(data)


# =============================================================================
# RECURRING OBLIGATIONS
# =============================================================================

class RecurringObligation(BaseModel):
    """
    Template for a periodic expense (rent, salaries, subscriptions).

    `next_due_date` lies on the grid defined by `start_date` and
    `frequency`. It only ever moves forward.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(..., gt=0)
    currency: Currency
    category: ExpenseCategory
    frequency: Frequency
    start_date: dt.date
    next_due_date: dt.date


# =============================================================================
# SETTINGS, BUDGETS, PROJECTS
# =============================================================================

class TreasurySettings(BaseModel):
    """
    Persisted treasury settings.

    Loaded once per session and passed explicitly to every
    normalization call; never read from ambient state.
    """

    reporting_rate_from_primary: Decimal = Field(
        ...,
        gt=0,
        description="How many EGP buy one USD"
    )


class Budget(BaseModel):
    """Monthly cap for one expense category, always in the reporting currency."""

    category: ExpenseCategory
    amount: Decimal = Field(..., ge=0)
    currency: Currency = Field(
        default=REPORTING_CURRENCY,
        description="Budgets are managed in the reporting currency"
    )

    @model_validator(mode='after')
    def validate_currency(self) -> 'Budget':
        if self.currency != REPORTING_CURRENCY:
            raise ValueError(
                f"Budgets must be in {REPORTING_CURRENCY.value}, got {self.currency.value}"
            )
        return self


class Project(BaseModel):
    """A project that transactions can be attributed to."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    budget: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Project budget in the reporting currency"
    )


# =============================================================================
# DISBURSEMENT ROLLS
# =============================================================================

class DisbursementRecord(BaseModel):
    """One beneficiary entry on an aid-disbursement roll."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    national_id: str = Field(default="", max_length=50)
    disbursement_date: dt.date
    method: DisbursementMethod
    phone: str = Field(default="", max_length=50)
    amount: Decimal = Field(..., ge=0)
    currency: Currency


class DisbursementSheet(BaseModel):
    """
    A named aid-disbursement roll.

    Records keep their insertion order.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    created_at: dt.datetime = Field(default_factory=utc_now)
    records: list[DisbursementRecord] = Field(default_factory=list)
