"""
Recurrence Models

Results of advancing recurring obligations and of the start-of-session
catch-up run.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from treasury.models.transaction import RecurringObligation, Transaction


class AdvanceResult(BaseModel):
    """What advancing a single obligation produced."""

    materialized: list[Transaction] = Field(default_factory=list)
    updated_next_due_date: date


class CatchUpFailure(BaseModel):
    """An obligation that could not be advanced during catch-up."""

    obligation_id: str
    description: str
    error_type: str
    error_message: str


class CatchUpResult(BaseModel):
    """
    Outcome of one catch-up run across all obligations.

    `updated_obligations` contains every obligation, changed or not.
    """

    generated_transactions: list[Transaction] = Field(default_factory=list)
    upcoming_obligations: list[RecurringObligation] = Field(default_factory=list)
    updated_obligations: list[RecurringObligation] = Field(default_factory=list)
    failures: list[CatchUpFailure] = Field(default_factory=list)

    @property
    def requires_persistence(self) -> bool:
        """Only write back when something was actually generated."""
        return len(self.generated_transactions) > 0


class ReminderNotification(BaseModel):
    """
    Non-blocking notification shown when a session starts.

    Empty when nothing was due; that is the common case.
    """

    generated: list[Transaction] = Field(default_factory=list)
    upcoming: list[RecurringObligation] = Field(default_factory=list)
    failures: list[CatchUpFailure] = Field(default_factory=list)
    error_message: Optional[str] = Field(
        default=None,
        description="Set when results could not be persisted"
    )

    @property
    def has_content(self) -> bool:
        return bool(
            self.generated or self.upcoming or self.failures or self.error_message
        )
