"""
Aggregation Engine

Folds a transaction collection into the views the dashboard and the
reports page show. Every figure is in the reporting currency.

All functions are pure. The global rate is validated once, before any
folding, so a bad rate fails the whole call instead of producing a
partially converted total.

Category ordering always follows the enum definition order, so reports
are stable across runs regardless of transaction order.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from dateutil.relativedelta import relativedelta

from treasury.currency.normalizer import require_valid_rate, to_reporting_amount
from treasury.models.report import BudgetLine, MonthlyTrendPoint, Totals
from treasury.models.transaction import (
    Budget,
    Category,
    ExpenseCategory,
    Transaction,
    TransactionType,
    categories_for,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def totals(transactions: Iterable[Transaction], global_rate: Any) -> Totals:
    """Total revenue, total expense and the resulting balance."""
    rate = require_valid_rate(global_rate)
    revenue = ZERO
    expense = ZERO

    for tx in transactions:
        amount = to_reporting_amount(tx, rate)
        if tx.type == TransactionType.REVENUE:
            revenue += amount
        else:
            expense += amount

    return Totals(
        total_revenue=revenue,
        total_expense=expense,
        balance=revenue - expense,
    )


def by_category(
    transactions: Iterable[Transaction],
    global_rate: Any,
    type_filter: TransactionType,
) -> dict[Category, Decimal]:
    """
    Sum per category for one transaction type.

    Categories without matching transactions are absent, not zero.
    """
    rate = require_valid_rate(global_rate)
    sums: dict[Category, Decimal] = {}

    for tx in transactions:
        if tx.type != type_filter:
            continue
        sums[tx.category] = sums.get(tx.category, ZERO) + to_reporting_amount(tx, rate)

    return {
        category: sums[category]
        for category in categories_for(type_filter)
        if category in sums
    }


def monthly_trend(
    transactions: Iterable[Transaction],
    global_rate: Any,
    month_count: int,
    reference_date: date,
) -> list[MonthlyTrendPoint]:
    """
    Revenue and expense for `month_count` months ending at the
    reference month, oldest first.

    Transactions outside the window are ignored.
    """
    if month_count < 1:
        raise ValueError(f"month_count must be at least 1, got {month_count}")
    rate = require_valid_rate(global_rate)

    first_month = reference_date.replace(day=1) - relativedelta(months=month_count - 1)
    buckets: dict[tuple[int, int], MonthlyTrendPoint] = {}
    for offset in range(month_count):
        month_start = first_month + relativedelta(months=offset)
        buckets[(month_start.year, month_start.month)] = MonthlyTrendPoint(
            year=month_start.year,
            month=month_start.month,
        )

    for tx in transactions:
        bucket = buckets.get((tx.date.year, tx.date.month))
        if bucket is None:
            continue
        amount = to_reporting_amount(tx, rate)
        if tx.type == TransactionType.REVENUE:
            bucket.revenue += amount
        else:
            bucket.expense += amount

    return list(buckets.values())


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the calendar month containing `day`."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def budget_vs_actual(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    global_rate: Any,
    period_start: date,
    period_end: date,
) -> list[BudgetLine]:
    """
    Compare each expense category's spend in [period_start, period_end]
    with its budget.

    Every expense category gets a line; a category without a budget
    has a budget of zero.
    """
    rate = require_valid_rate(global_rate)
    caps = {budget.category: budget.amount for budget in budgets}

    in_period = [
        tx for tx in transactions
        if tx.type == TransactionType.EXPENSE
        and period_start <= tx.date <= period_end
    ]
    actuals = by_category(in_period, rate, TransactionType.EXPENSE)

    lines = []
    for category in ExpenseCategory:
        budget = caps.get(category, ZERO)
        actual = actuals.get(category, ZERO)
        lines.append(BudgetLine(
            category=category,
            budget=budget,
            actual=actual,
            remaining=budget - actual,
            percent_used=_percent_used(actual, budget),
        ))
    return lines


def _percent_used(actual: Decimal, budget: Decimal) -> Decimal:
    if budget <= 0:
        return ZERO
    return min(actual / budget * HUNDRED, HUNDRED)


def budget_usage_percent(spent: Decimal, budget: Optional[Decimal]) -> Decimal:
    """Capped usage percentage for any budget (category or project)."""
    return _percent_used(spent, budget or ZERO)
