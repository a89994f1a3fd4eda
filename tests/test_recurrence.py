"""Tests for the recurrence engine."""

import itertools
from datetime import date, datetime
from decimal import Decimal

import pytest

from treasury.models.transaction import (
    Currency,
    ExpenseCategory,
    Frequency,
    RecurringObligation,
    TransactionType,
)
from treasury.recurrence import (
    add_interval,
    advance,
    initial_next_due_date,
    is_due_tomorrow,
    materialize,
    next_occurrence,
)


def make_obligation(**overrides) -> RecurringObligation:
    data = dict(
        id="re-1",
        description="Office rent",
        amount=Decimal("100"),
        currency=Currency.EGP,
        category=ExpenseCategory.OPERATIONAL,
        frequency=Frequency.MONTHLY,
        start_date=date(2024, 1, 15),
        next_due_date=date(2024, 1, 15),
    )
    data.update(overrides)
    return RecurringObligation(**data)


def counting_ids():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


class TestDateArithmetic:
    """Tests for interval arithmetic on the due-date grid."""

    def test_month_end_clamps(self):
        assert add_interval(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)
        assert add_interval(date(2023, 1, 31), Frequency.MONTHLY) == date(2023, 2, 28)

    def test_clamped_dates_do_not_drift(self):
        """Jan 31 -> Feb 29 -> Mar 31 -> Apr 30, anchored on the start date."""
        start = date(2024, 1, 31)
        cursor = start
        seen = []
        for _ in range(3):
            cursor = next_occurrence(start, Frequency.MONTHLY, cursor)
            seen.append(cursor)
        assert seen == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]

    def test_yearly_leap_day(self):
        start = date(2024, 2, 29)
        first = next_occurrence(start, Frequency.YEARLY, start)
        assert first == date(2025, 2, 28)
        assert add_interval(start, Frequency.YEARLY, 4) == date(2028, 2, 29)

    def test_next_occurrence_is_strictly_after_cursor(self):
        start = date(2024, 1, 15)
        assert next_occurrence(start, Frequency.MONTHLY, date(2024, 1, 15)) == date(2024, 2, 15)
        assert next_occurrence(start, Frequency.MONTHLY, date(2024, 1, 20)) == date(2024, 2, 15)


class TestInitialNextDueDate:
    """Tests for the due date of a newly created obligation."""

    def test_future_start_is_first_due_date(self):
        result = initial_next_due_date(date(2024, 6, 1), Frequency.MONTHLY, date(2024, 5, 1))
        assert result == date(2024, 6, 1)

    def test_start_today_is_due_today(self):
        result = initial_next_due_date(date(2024, 5, 1), Frequency.MONTHLY, date(2024, 5, 1))
        assert result == date(2024, 5, 1)

    def test_past_start_skips_to_next_grid_date(self):
        result = initial_next_due_date(date(2024, 1, 15), Frequency.MONTHLY, date(2024, 4, 20))
        assert result == date(2024, 5, 15)

    def test_past_start_landing_on_today(self):
        result = initial_next_due_date(date(2024, 1, 15), Frequency.MONTHLY, date(2024, 4, 15))
        assert result == date(2024, 4, 15)

    def test_yearly(self):
        result = initial_next_due_date(date(2020, 3, 1), Frequency.YEARLY, date(2024, 3, 2))
        assert result == date(2025, 3, 1)


class TestAdvance:
    """Tests for materializing overdue occurrences."""

    def test_three_months_overdue(self):
        """Exactly one transaction per missed month, dated on the grid."""
        obligation = make_obligation()
        result = advance(obligation, date(2024, 4, 10), id_factory=counting_ids())

        assert [tx.date for tx in result.materialized] == [
            date(2024, 1, 15),
            date(2024, 2, 15),
            date(2024, 3, 15),
        ]
        assert result.updated_next_due_date == date(2024, 4, 15)

    def test_materialized_transactions(self):
        obligation = make_obligation()
        result = advance(obligation, date(2024, 2, 1), id_factory=counting_ids())
        tx = result.materialized[0]

        assert tx.id == "tx-re-1"
        assert tx.type == TransactionType.EXPENSE
        assert tx.amount == Decimal("100")
        assert tx.currency == Currency.EGP
        assert tx.category == ExpenseCategory.OPERATIONAL
        assert tx.description == "Office rent (recurring)"
        assert tx.source_obligation_id == "re-1"
        assert tx.exchange_rate is None

    def test_due_today_is_not_materialized(self):
        """Only dates strictly before today are generated."""
        obligation = make_obligation(next_due_date=date(2024, 3, 15))
        result = advance(obligation, date(2024, 3, 15))
        assert result.materialized == []
        assert result.updated_next_due_date == date(2024, 3, 15)

    def test_idempotent(self):
        """A second run with the updated cursor generates nothing."""
        obligation = make_obligation()
        today = date(2024, 6, 1)
        first = advance(obligation, today)
        second = advance(
            obligation.model_copy(update={"next_due_date": first.updated_next_due_date}),
            today,
        )
        assert len(first.materialized) == 5
        assert second.materialized == []
        assert second.updated_next_due_date == first.updated_next_due_date

    @pytest.mark.parametrize("today", [date(2023, 12, 1), date(2024, 1, 15), date(2025, 7, 4)])
    def test_due_date_never_regresses(self, today):
        obligation = make_obligation()
        result = advance(obligation, today)
        assert result.updated_next_due_date >= obligation.next_due_date

    def test_month_end_obligation_backfill(self):
        obligation = make_obligation(
            start_date=date(2024, 1, 31),
            next_due_date=date(2024, 1, 31),
        )
        result = advance(obligation, date(2024, 5, 1))
        assert [tx.date for tx in result.materialized] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]
        assert result.updated_next_due_date == date(2024, 5, 31)

    def test_yearly_backfill(self):
        obligation = make_obligation(
            frequency=Frequency.YEARLY,
            start_date=date(2021, 7, 1),
            next_due_date=date(2021, 7, 1),
        )
        result = advance(obligation, date(2024, 1, 1))
        assert [tx.date for tx in result.materialized] == [
            date(2021, 7, 1),
            date(2022, 7, 1),
            date(2023, 7, 1),
        ]
        assert result.updated_next_due_date == date(2024, 7, 1)

    def test_accepts_datetime(self):
        obligation = make_obligation()
        result = advance(obligation, datetime(2024, 2, 1, 23, 59))
        assert len(result.materialized) == 1

    def test_custom_suffix(self):
        tx = materialize(make_obligation(), date(2024, 1, 15), counting_ids(), " [auto]")
        assert tx.description == "Office rent [auto]"

    @pytest.mark.parametrize(
        "start_date, next_due_date, today, expected, updated",
        [
            # due day moved off the start_date grid
            (
                date(2024, 1, 15), date(2024, 1, 25), date(2024, 4, 20),
                [date(2024, 1, 25), date(2024, 2, 25), date(2024, 3, 25)],
                date(2024, 4, 25),
            ),
            # next due date earlier than start_date
            (
                date(2024, 3, 10), date(2024, 1, 5), date(2024, 3, 20),
                [date(2024, 1, 5), date(2024, 2, 5), date(2024, 3, 5)],
                date(2024, 4, 5),
            ),
            # month-end cursor off the grid still clamps without drifting
            (
                date(2024, 1, 15), date(2024, 1, 31), date(2024, 5, 1),
                [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)],
                date(2024, 5, 31),
            ),
        ],
    )
    def test_off_grid_cursor_keeps_its_day(
        self, start_date, next_due_date, today, expected, updated
    ):
        """One transaction per interval counted from the stored next due date."""
        obligation = make_obligation(start_date=start_date, next_due_date=next_due_date)
        result = advance(obligation, today)

        assert [tx.date for tx in result.materialized] == expected
        assert result.updated_next_due_date == updated

    def test_off_grid_cursor_is_idempotent(self):
        obligation = make_obligation(next_due_date=date(2024, 1, 25))
        today = date(2024, 4, 20)
        first = advance(obligation, today)
        second = advance(
            obligation.model_copy(update={"next_due_date": first.updated_next_due_date}),
            today,
        )
        assert second.materialized == []
        assert second.updated_next_due_date == date(2024, 4, 25)

    def test_clamped_cursor_resumes_on_grid(self):
        """A cursor stored as Feb 29 by an earlier run still returns to Mar 31."""
        obligation = make_obligation(
            start_date=date(2024, 1, 31),
            next_due_date=date(2024, 1, 31),
        )
        first = advance(obligation, date(2024, 2, 15))
        assert first.updated_next_due_date == date(2024, 2, 29)

        second = advance(
            obligation.model_copy(update={"next_due_date": first.updated_next_due_date}),
            date(2024, 4, 1),
        )
        assert [tx.date for tx in second.materialized] == [
            date(2024, 2, 29),
            date(2024, 3, 31),
        ]
        assert second.updated_next_due_date == date(2024, 4, 30)


class TestIsDueTomorrow:
    """Tests for the reminder check."""

    def test_due_tomorrow(self):
        obligation = make_obligation(next_due_date=date(2024, 3, 1))
        assert is_due_tomorrow(obligation, date(2024, 2, 29))

    def test_not_due_tomorrow(self):
        obligation = make_obligation(next_due_date=date(2024, 3, 2))
        assert not is_due_tomorrow(obligation, date(2024, 2, 29))
        assert not is_due_tomorrow(obligation, date(2024, 3, 2))
