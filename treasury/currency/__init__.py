"""Currency normalization package."""

from treasury.currency.normalizer import (
    ConfigurationError,
    ExchangeRateError,
    effective_rate,
    require_valid_rate,
    restamp_edited_transaction,
    stamp_new_transaction,
    to_reporting_amount,
)

__all__ = [
    "ConfigurationError",
    "ExchangeRateError",
    "effective_rate",
    "require_valid_rate",
    "restamp_edited_transaction",
    "stamp_new_transaction",
    "to_reporting_amount",
]
