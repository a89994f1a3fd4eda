"""
Reminder Coordinator

Runs the recurrence engine across every obligation when a session
starts and gathers the results into a single payload.

DESIGN DECISION: One broken obligation must not block the others.
Failures are isolated per obligation, logged, and surfaced in the
result; the failed obligation is returned unchanged so nothing is
lost when the caller persists.
"""

from datetime import date, datetime
from typing import Iterable, Union

import structlog

from treasury.models.recurrence import (
    CatchUpFailure,
    CatchUpResult,
    ReminderNotification,
)
from treasury.models.transaction import RecurringObligation, generate_id
from treasury.recurrence.engine import (
    RECURRING_SUFFIX,
    IdFactory,
    advance,
    as_calendar_date,
    is_due_tomorrow,
)


class ReminderCoordinator:
    """
    Start-of-session catch-up for recurring obligations.

    Pure over its inputs: persisting the result is the caller's job,
    and only needed when `CatchUpResult.requires_persistence` is true.
    """

    def __init__(
        self,
        id_factory: IdFactory = generate_id,
        description_suffix: str = RECURRING_SUFFIX,
    ):
        self._id_factory = id_factory
        self._description_suffix = description_suffix
        self._logger = structlog.get_logger()

    def run_catch_up(
        self,
        obligations: Iterable[RecurringObligation],
        today: Union[date, datetime],
    ) -> CatchUpResult:
        """
        Advance every obligation to `today`.

        Returns:
            CatchUpResult with generated transactions, obligations due
            tomorrow, every obligation (updated or not) and any failures.
        """
        today = as_calendar_date(today)
        result = CatchUpResult()

        for obligation in obligations:
            try:
                advanced = advance(
                    obligation,
                    today,
                    id_factory=self._id_factory,
                    description_suffix=self._description_suffix,
                )
            except Exception as e:
                self._logger.error(
                    "catch_up_obligation_failed",
                    obligation_id=obligation.id,
                    error=str(e),
                )
                result.failures.append(CatchUpFailure(
                    obligation_id=obligation.id,
                    description=obligation.description,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ))
                result.updated_obligations.append(obligation)
                continue

            updated = obligation.model_copy(
                update={"next_due_date": advanced.updated_next_due_date}
            )
            result.generated_transactions.extend(advanced.materialized)
            result.updated_obligations.append(updated)

            if is_due_tomorrow(updated, today):
                result.upcoming_obligations.append(updated)

        self._logger.info(
            "catch_up_finished",
            generated=len(result.generated_transactions),
            upcoming=len(result.upcoming_obligations),
            failed=len(result.failures),
        )
        return result


def build_notification(result: CatchUpResult) -> ReminderNotification:
    """User-facing summary of a catch-up run."""
    return ReminderNotification(
        generated=result.generated_transactions,
        upcoming=result.upcoming_obligations,
        failures=result.failures,
    )
