"""Tests for the start-of-session reminder coordinator."""

from datetime import date
from decimal import Decimal

from treasury.models.transaction import (
    Currency,
    ExpenseCategory,
    Frequency,
    RecurringObligation,
    generate_id,
)
from treasury.recurrence import ReminderCoordinator, build_notification


TODAY = date(2024, 4, 10)


def make_obligation(obligation_id, next_due_date, **overrides) -> RecurringObligation:
    data = dict(
        id=obligation_id,
        description=f"Obligation {obligation_id}",
        amount=Decimal("100"),
        currency=Currency.EGP,
        category=ExpenseCategory.SALARIES,
        frequency=Frequency.MONTHLY,
        start_date=date(2024, 1, next_due_date.day),
        next_due_date=next_due_date,
    )
    data.update(overrides)
    return RecurringObligation(**data)


class TestRunCatchUp:
    """Tests for a full catch-up run."""

    def test_nothing_due(self):
        coordinator = ReminderCoordinator()
        obligations = [make_obligation("re-1", date(2024, 4, 20))]
        result = coordinator.run_catch_up(obligations, TODAY)

        assert result.generated_transactions == []
        assert result.upcoming_obligations == []
        assert result.failures == []
        assert result.updated_obligations == obligations
        assert not result.requires_persistence
        assert not build_notification(result).has_content

    def test_backfills_and_advances(self):
        coordinator = ReminderCoordinator()
        obligations = [
            make_obligation("re-1", date(2024, 1, 5)),
            make_obligation("re-2", date(2024, 4, 1)),
        ]
        result = coordinator.run_catch_up(obligations, TODAY)

        assert len(result.generated_transactions) == 5
        assert [o.next_due_date for o in result.updated_obligations] == [
            date(2024, 5, 5),
            date(2024, 5, 1),
        ]
        assert result.requires_persistence

    def test_off_grid_obligation(self):
        """A due day that differs from the start day is kept as is."""
        coordinator = ReminderCoordinator()
        obligation = make_obligation(
            "re-1", date(2024, 1, 25), start_date=date(2024, 1, 15)
        )
        result = coordinator.run_catch_up([obligation], TODAY)

        assert [tx.date for tx in result.generated_transactions] == [
            date(2024, 1, 25),
            date(2024, 2, 25),
            date(2024, 3, 25),
        ]
        assert result.updated_obligations[0].next_due_date == date(2024, 4, 25)

    def test_inputs_are_not_mutated(self):
        coordinator = ReminderCoordinator()
        obligation = make_obligation("re-1", date(2024, 1, 5))
        coordinator.run_catch_up([obligation], TODAY)
        assert obligation.next_due_date == date(2024, 1, 5)

    def test_second_run_is_idempotent(self):
        coordinator = ReminderCoordinator()
        first = coordinator.run_catch_up([make_obligation("re-1", date(2024, 1, 5))], TODAY)
        second = coordinator.run_catch_up(first.updated_obligations, TODAY)
        assert second.generated_transactions == []
        assert not second.requires_persistence

    def test_upcoming_reminder(self):
        coordinator = ReminderCoordinator()
        obligations = [
            make_obligation("re-1", date(2024, 4, 11)),
            make_obligation("re-2", date(2024, 4, 12)),
        ]
        result = coordinator.run_catch_up(obligations, TODAY)
        assert [o.id for o in result.upcoming_obligations] == ["re-1"]
        assert result.generated_transactions == []

    def test_upcoming_checked_after_advancing(self):
        """An obligation caught up to tomorrow is also a reminder."""
        coordinator = ReminderCoordinator()
        obligation = make_obligation("re-1", date(2024, 3, 11))
        result = coordinator.run_catch_up([obligation], TODAY)
        assert len(result.generated_transactions) == 1
        assert [o.next_due_date for o in result.upcoming_obligations] == [date(2024, 4, 11)]

    def test_custom_description_suffix(self):
        coordinator = ReminderCoordinator(description_suffix=" - auto")
        result = coordinator.run_catch_up([make_obligation("re-1", date(2024, 4, 1))], TODAY)
        assert result.generated_transactions[0].description == "Obligation re-1 - auto"


class TestFailureIsolation:
    """One broken obligation must not block the others."""

    def test_failure_is_isolated(self):
        calls = []

        def flaky_ids(prefix: str) -> str:
            calls.append(prefix)
            if len(calls) == 2:
                raise RuntimeError("id service unavailable")
            return generate_id(prefix)

        coordinator = ReminderCoordinator(id_factory=flaky_ids)
        broken = make_obligation("re-broken", date(2024, 2, 1))
        healthy = make_obligation("re-ok", date(2024, 4, 1))
        # re-broken needs 3 ids (Feb, Mar, Apr 1); the second one fails
        result = coordinator.run_catch_up([broken, healthy], TODAY)

        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.obligation_id == "re-broken"
        assert failure.error_type == "RuntimeError"
        assert "id service unavailable" in failure.error_message

        # The healthy obligation still advanced
        assert len(result.generated_transactions) == 1
        assert result.generated_transactions[0].source_obligation_id == "re-ok"

        # The broken one is kept unchanged
        assert result.updated_obligations[0] == broken
        assert result.updated_obligations[1].next_due_date == date(2024, 5, 1)

    def test_failures_reach_the_notification(self):
        def broken_ids(prefix: str) -> str:
            raise RuntimeError("boom")

        coordinator = ReminderCoordinator(id_factory=broken_ids)
        result = coordinator.run_catch_up([make_obligation("re-1", date(2024, 3, 1))], TODAY)
        notification = build_notification(result)

        assert notification.has_content
        assert notification.generated == []
        assert notification.failures[0].obligation_id == "re-1"
