"""Reporting aggregations package."""

from treasury.reports.aggregation import (
    budget_usage_percent,
    budget_vs_actual,
    by_category,
    month_bounds,
    monthly_trend,
    totals,
)

__all__ = [
    "budget_usage_percent",
    "budget_vs_actual",
    "by_category",
    "month_bounds",
    "monthly_trend",
    "totals",
]
