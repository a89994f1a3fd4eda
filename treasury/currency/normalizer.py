"""
Currency Normalization

Every report is expressed in the reporting currency (USD). Amounts
recorded in the primary currency (EGP) are divided by an EGP-per-USD rate:

- Expenses in EGP carry a rate frozen when they were recorded or
  last edited. That snapshot always wins.
- Everything else in EGP uses the global rate passed in by the caller.

DESIGN DECISION: The global rate is an explicit argument, never read
from ambient settings. A missing or non-positive rate is a
configuration error and is raised immediately - silently substituting
a default would corrupt every total downstream.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from treasury.models.transaction import (
    REPORTING_CURRENCY,
    Transaction,
    TransactionType,
)


class ConfigurationError(Exception):
    """Base exception for invalid treasury configuration."""
    pass


class ExchangeRateError(ConfigurationError):
    """An exchange rate is missing, non-numeric or not positive."""

    def __init__(self, rate: Any, reason: str):
        self.rate = rate
        super().__init__(f"Invalid exchange rate {rate!r}: {reason}")


def require_valid_rate(rate: Any) -> Decimal:
    """
    Convert `rate` to a Decimal, rejecting anything unusable.

    Raises:
        ExchangeRateError: If the rate is missing, non-numeric,
            non-finite or not strictly positive.
    """
    if rate is None:
        raise ExchangeRateError(rate, "no rate configured")
    if isinstance(rate, bool):
        raise ExchangeRateError(rate, "not a number")

    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    except (InvalidOperation, ValueError):
        raise ExchangeRateError(rate, "not a number")

    if not value.is_finite():
        raise ExchangeRateError(rate, "not a finite number")
    if value <= 0:
        raise ExchangeRateError(rate, "must be greater than zero")
    return value


def effective_rate(transaction: Transaction, global_rate: Decimal) -> Decimal:
    """Rate used to convert a primary-currency transaction."""
    if (
        transaction.type == TransactionType.EXPENSE
        and transaction.exchange_rate is not None
    ):
        return require_valid_rate(transaction.exchange_rate)
    return global_rate


def to_reporting_amount(transaction: Transaction, global_rate: Any) -> Decimal:
    """
    Express a transaction's amount in the reporting currency.

    Amounts already in the reporting currency are returned unchanged,
    whatever `global_rate` is.
    """
    if transaction.currency == REPORTING_CURRENCY:
        return transaction.amount

    rate = effective_rate(transaction, require_valid_rate(global_rate))
    return transaction.amount / rate


# =============================================================================
# RATE SNAPSHOT POLICY
# Applied where transactions are created or edited, not when reading.
# =============================================================================

def stamp_new_transaction(transaction: Transaction, global_rate: Any) -> Transaction:
    """
    Freeze the current global rate onto a newly recorded transaction.

    Only primary-currency expenses keep the rate; it is cleared on
    everything else.
    """
    if not transaction.has_rate_snapshot:
        return transaction.with_changes(exchange_rate=None)
    return transaction.with_changes(exchange_rate=require_valid_rate(global_rate))


def restamp_edited_transaction(
    transaction: Transaction,
    global_rate: Any,
    supplied_rate: Optional[Any] = None,
) -> Transaction:
    """
    Re-apply the rate snapshot after an edit.

    When the editor did not supply a rate, the CURRENT global rate is
    stamped, so an edited expense picks up any rate drift since it was
    recorded. See DESIGN.md (open questions) before changing this.
    """
    if not transaction.has_rate_snapshot:
        return transaction.with_changes(exchange_rate=None)

    if supplied_rate is not None:
        return transaction.with_changes(exchange_rate=require_valid_rate(supplied_rate))
    return transaction.with_changes(exchange_rate=require_valid_rate(global_rate))
