"""
Recurrence Engine

Turns recurring obligations into concrete expense transactions.

Every obligation defines a grid of due dates: start_date, then one
interval (month or year) after another. New obligations get a
`next_due_date` on that grid. When a session starts, every due date
strictly before "today" that has not been materialized yet becomes a
transaction. Nothing is skipped and nothing in the future is generated.

DESIGN DECISION: Month arithmetic clamps to the end of the month
(Jan 31 + 1 month = Feb 28/29), and each step is computed from a fixed
anchor rather than from the previous due date. A clamped date
therefore never drifts: Jan 31 -> Feb 28 -> Mar 31 -> Apr 30.
The anchor is start_date while next_due_date sits on its grid, and
next_due_date itself when it does not.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Union

from dateutil.relativedelta import relativedelta

from treasury.models.recurrence import AdvanceResult
from treasury.models.transaction import (
    Frequency,
    RecurringObligation,
    Transaction,
    TransactionType,
    generate_id,
)


RECURRING_SUFFIX = " (recurring)"

IdFactory = Callable[[str], str]


def as_calendar_date(value: Union[date, datetime]) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def add_interval(anchor: date, frequency: Frequency, count: int = 1) -> date:
    """Move `anchor` by `count` months or years, clamping to month end."""
    if frequency == Frequency.MONTHLY:
        return anchor + relativedelta(months=count)
    if frequency == Frequency.YEARLY:
        return anchor + relativedelta(years=count)
    raise ValueError(f"Unsupported frequency: {frequency!r}")


def _intervals_between(start_date: date, day: date, frequency: Frequency) -> int:
    """Whole calendar intervals from start_date's period to day's period."""
    if frequency == Frequency.MONTHLY:
        return (day.year - start_date.year) * 12 + (day.month - start_date.month)
    return day.year - start_date.year


def next_occurrence(start_date: date, frequency: Frequency, cursor: date) -> date:
    """First grid date strictly after `cursor`."""
    steps = _intervals_between(start_date, cursor, frequency)
    candidate = add_interval(start_date, frequency, steps)
    if candidate <= cursor:
        candidate = add_interval(start_date, frequency, steps + 1)
    return candidate


def initial_next_due_date(
    start_date: date,
    frequency: Frequency,
    today: Union[date, datetime],
) -> date:
    """
    First grid date that is not in the past.

    Used when an obligation is created or edited.
    """
    today = as_calendar_date(today)
    if start_date >= today:
        return start_date

    steps = _intervals_between(start_date, today, frequency)
    candidate = add_interval(start_date, frequency, steps)
    if candidate < today:
        candidate = add_interval(start_date, frequency, steps + 1)
    return candidate


def materialize(
    obligation: RecurringObligation,
    due_date: date,
    id_factory: IdFactory = generate_id,
    description_suffix: str = RECURRING_SUFFIX,
) -> Transaction:
    """
    Build the expense transaction for one occurrence.

    No rate is frozen onto it: it converts at the live global rate
    like any other transaction without a snapshot.
    """
    return Transaction(
        id=id_factory("tx-re"),
        type=TransactionType.EXPENSE,
        amount=obligation.amount,
        currency=obligation.currency,
        date=due_date,
        description=f"{obligation.description}{description_suffix}",
        category=obligation.category,
        source_obligation_id=obligation.id,
    )


def advance(
    obligation: RecurringObligation,
    today: Union[date, datetime],
    id_factory: IdFactory = generate_id,
    description_suffix: str = RECURRING_SUFFIX,
) -> AdvanceResult:
    """
    Materialize every occurrence due strictly before `today`.

    Calling this again with the returned `updated_next_due_date` and
    the same `today` produces nothing.
    """
    today = as_calendar_date(today)
    anchor, steps = _step_anchor(obligation)
    cursor = obligation.next_due_date
    materialized = []

    while cursor < today:
        materialized.append(
            materialize(obligation, cursor, id_factory, description_suffix)
        )
        steps += 1
        cursor = add_interval(anchor, obligation.frequency, steps)

    return AdvanceResult(materialized=materialized, updated_next_due_date=cursor)


def _step_anchor(obligation: RecurringObligation) -> tuple[date, int]:
    """
    Date to count steps from, and how many steps next_due_date already is.

    A cursor on the start_date grid keeps stepping from start_date. Any
    other cursor (edited by hand, or before start_date) becomes its own
    anchor, so its day of month is preserved.
    """
    start_date = obligation.start_date
    cursor = obligation.next_due_date
    steps = _intervals_between(start_date, cursor, obligation.frequency)
    if steps >= 0 and add_interval(start_date, obligation.frequency, steps) == cursor:
        return start_date, steps
    return cursor, 0


def is_due_tomorrow(
    obligation: RecurringObligation,
    today: Union[date, datetime],
) -> bool:
    """Reminder check only - never materializes anything."""
    return obligation.next_due_date == as_calendar_date(today) + timedelta(days=1)
