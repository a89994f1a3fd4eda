"""Tests for the aggregation engine."""

from datetime import date
from decimal import Decimal

import pytest

from treasury.currency import ExchangeRateError
from treasury.models.transaction import (
    Budget,
    Currency,
    ExpenseCategory,
    RevenueCategory,
    Transaction,
    TransactionType,
)
from treasury.reports import (
    budget_usage_percent,
    budget_vs_actual,
    by_category,
    month_bounds,
    monthly_trend,
    totals,
)


RATE = Decimal("50")


def expense(amount, category=ExpenseCategory.OPERATIONAL, on=date(2024, 6, 10),
            currency=Currency.USD, rate=None, tx_id="e"):
    return Transaction(
        id=tx_id,
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        currency=currency,
        date=on,
        category=category,
        exchange_rate=rate,
    )


def revenue(amount, category=RevenueCategory.ZAKAT, on=date(2024, 6, 5),
            currency=Currency.USD, tx_id="r"):
    return Transaction(
        id=tx_id,
        type=TransactionType.REVENUE,
        amount=Decimal(amount),
        currency=currency,
        date=on,
        category=category,
    )


class TestTotals:
    """Tests for headline totals."""

    def test_mixed_currencies(self):
        transactions = [
            revenue("1000"),
            revenue("5000", currency=Currency.EGP),          # 100 USD
            expense("300"),
            expense("2000", currency=Currency.EGP, rate=Decimal("40")),  # 50 USD
        ]
        result = totals(transactions, RATE)
        assert result.total_revenue == Decimal("1100")
        assert result.total_expense == Decimal("350")
        assert result.balance == Decimal("750")

    def test_empty(self):
        result = totals([], RATE)
        assert result.total_revenue == 0
        assert result.balance == 0

    def test_bad_rate_fails_even_without_conversions(self):
        with pytest.raises(ExchangeRateError):
            totals([revenue("10")], Decimal("-1"))


class TestByCategory:
    """Tests for per-category sums."""

    def test_only_requested_type(self):
        transactions = [
            revenue("1000"),
            expense("100", ExpenseCategory.SALARIES),
            expense("50", ExpenseCategory.UTILITIES),
            expense("25", ExpenseCategory.SALARIES),
        ]
        result = by_category(transactions, RATE, TransactionType.EXPENSE)
        assert result == {
            ExpenseCategory.SALARIES: Decimal("125"),
            ExpenseCategory.UTILITIES: Decimal("50"),
        }

    def test_empty_categories_are_absent(self):
        """Categories with no matching transactions are missing, not zero."""
        transactions = [revenue("1000"), expense("10", ExpenseCategory.REWARDS)]
        result = by_category(transactions, RATE, TransactionType.EXPENSE)
        assert ExpenseCategory.OPERATIONAL not in result
        assert RevenueCategory.ZAKAT not in result
        assert list(result) == [ExpenseCategory.REWARDS]

    def test_enum_order(self):
        transactions = [
            expense("1", ExpenseCategory.REWARDS),
            expense("1", ExpenseCategory.OPERATIONAL),
            expense("1", ExpenseCategory.RELIEF_AID),
        ]
        result = by_category(transactions, RATE, TransactionType.EXPENSE)
        assert list(result) == [
            ExpenseCategory.OPERATIONAL,
            ExpenseCategory.RELIEF_AID,
            ExpenseCategory.REWARDS,
        ]

    def test_revenue(self):
        transactions = [
            revenue("100", RevenueCategory.GRANTS),
            revenue("2500", RevenueCategory.GRANTS, currency=Currency.EGP),
        ]
        result = by_category(transactions, RATE, TransactionType.REVENUE)
        assert result == {RevenueCategory.GRANTS: Decimal("150")}


class TestMonthlyTrend:
    """Tests for the month-by-month trend."""

    def test_six_month_window(self):
        reference = date(2024, 6, 20)
        transactions = [
            revenue("100", on=date(2024, 6, 1)),
            expense("40", on=date(2024, 6, 30)),
            expense("10", on=date(2024, 1, 31)),
            revenue("999", on=date(2023, 10, 20)),  # 8 months back
        ]
        trend = monthly_trend(transactions, RATE, 6, reference)

        assert [p.label for p in trend] == [
            "2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06",
        ]
        assert trend[-1].revenue == Decimal("100")
        assert trend[-1].expense == Decimal("40")
        assert trend[0].expense == Decimal("10")
        assert sum(p.revenue for p in trend) == Decimal("100")

    def test_window_crosses_year(self):
        trend = monthly_trend([], RATE, 3, date(2024, 2, 1))
        assert [p.label for p in trend] == ["2023-12", "2024-01", "2024-02"]
        assert all(p.revenue == 0 and p.expense == 0 for p in trend)

    def test_future_transactions_ignored(self):
        trend = monthly_trend([expense("5", on=date(2024, 7, 1))], RATE, 6, date(2024, 6, 1))
        assert sum(p.expense for p in trend) == 0

    def test_month_count_must_be_positive(self):
        with pytest.raises(ValueError):
            monthly_trend([], RATE, 0, date(2024, 6, 1))


class TestBudgetVsActual:
    """Tests for budget comparisons."""

    def test_overspent_category_is_capped(self):
        period = month_bounds(date(2024, 6, 15))
        transactions = [
            expense("150", ExpenseCategory.UTILITIES),
            expense("5000", ExpenseCategory.UTILITIES, currency=Currency.EGP),  # 100 USD
            expense("999", ExpenseCategory.UTILITIES, on=date(2024, 5, 31)),   # outside
            revenue("10000"),
        ]
        budgets = [Budget(category=ExpenseCategory.UTILITIES, amount=Decimal("200"))]

        lines = budget_vs_actual(transactions, budgets, RATE, *period)
        utilities = next(line for line in lines if line.category == ExpenseCategory.UTILITIES)

        assert utilities.actual == Decimal("250")
        assert utilities.remaining == Decimal("-50")
        assert utilities.percent_used == Decimal("100")
        assert utilities.is_overspent

    def test_every_expense_category_listed(self):
        period = month_bounds(date(2024, 6, 15))
        lines = budget_vs_actual([], [], RATE, *period)
        assert [line.category for line in lines] == list(ExpenseCategory)
        assert all(line.percent_used == 0 for line in lines)

    def test_partial_usage(self):
        period = month_bounds(date(2024, 6, 15))
        budgets = [Budget(category=ExpenseCategory.SALARIES, amount=Decimal("400"))]
        lines = budget_vs_actual(
            [expense("100", ExpenseCategory.SALARIES)], budgets, RATE, *period
        )
        salaries = next(line for line in lines if line.category == ExpenseCategory.SALARIES)
        assert salaries.percent_used == Decimal("25")
        assert salaries.remaining == Decimal("300")

    def test_month_bounds(self):
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(date(2023, 12, 31)) == (date(2023, 12, 1), date(2023, 12, 31))

    def test_budget_usage_percent(self):
        assert budget_usage_percent(Decimal("50"), Decimal("200")) == Decimal("25")
        assert budget_usage_percent(Decimal("50"), None) == 0
        assert budget_usage_percent(Decimal("500"), Decimal("200")) == Decimal("100")
