"""Recurring obligations package."""

from treasury.recurrence.coordinator import ReminderCoordinator, build_notification
from treasury.recurrence.engine import (
    RECURRING_SUFFIX,
    add_interval,
    advance,
    initial_next_due_date,
    is_due_tomorrow,
    materialize,
    next_occurrence,
)

__all__ = [
    "RECURRING_SUFFIX",
    "ReminderCoordinator",
    "add_interval",
    "advance",
    "build_notification",
    "initial_next_due_date",
    "is_due_tomorrow",
    "materialize",
    "next_occurrence",
]
