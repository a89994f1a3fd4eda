"""Tests for the financial summary agent (the model is always a stub)."""

import asyncio
from datetime import date
from decimal import Decimal

from treasury.agents import FinancialSummaryAgent, fallback_summary
from treasury.models.report import Totals
from treasury.models.transaction import (
    Currency,
    ExpenseCategory,
    Transaction,
    TransactionType,
)


class StubResponse:
    def __init__(self, text):
        self.text = text


class StubModel:
    """Records prompts and returns a canned response."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return StubResponse(self.text)


TOTALS = Totals(
    total_revenue=Decimal("1200"),
    total_expense=Decimal("300"),
    balance=Decimal("900"),
)

TRANSACTIONS = [
    Transaction(
        id="tx-1",
        type=TransactionType.EXPENSE,
        amount=Decimal("300"),
        currency=Currency.USD,
        date=date(2024, 5, 1),
        category=ExpenseCategory.RELIEF_AID,
    ),
]


class TestGenerateSummary:
    """Tests for narrative summaries."""

    def test_uses_model_text(self):
        model = StubModel(text="  The fund is healthy.  ")
        agent = FinancialSummaryAgent(model=model)

        summary = asyncio.run(agent.generate_summary(TOTALS, Decimal("50"), TRANSACTIONS))

        assert summary == "The fund is healthy."
        assert "Total revenue: 1,200.00 USD" in model.prompts[0]
        assert "relief_aid: 300.00 USD" in model.prompts[0]

    def test_falls_back_when_model_fails(self):
        agent = FinancialSummaryAgent(model=StubModel(error=RuntimeError("quota")))

        summary = asyncio.run(agent.generate_summary(TOTALS, Decimal("50"), TRANSACTIONS))

        assert "Balance: 900.00 USD." in summary
        assert "relief aid" in summary

    def test_falls_back_on_empty_text(self):
        agent = FinancialSummaryAgent(model=StubModel(text="   "))
        summary = asyncio.run(agent.generate_summary(TOTALS, Decimal("50"), []))
        assert summary.startswith("Total revenue: 1,200.00 USD.")

    def test_fallback_mentions_deficit(self):
        deficit = Totals(
            total_revenue=Decimal("10"),
            total_expense=Decimal("20"),
            balance=Decimal("-10"),
        )
        assert "Expenses exceed revenue" in fallback_summary(deficit, {})


class TestSuggestExpenseCategory:
    """Tests for category suggestions."""

    def test_parses_json(self):
        model = StubModel(
            text='Sure: {"category": "utilities", "confidence": 0.9, "reasoning": "electricity"}'
        )
        agent = FinancialSummaryAgent(model=model)

        suggestion = asyncio.run(agent.suggest_expense_category("Electricity bill"))

        assert suggestion.category == ExpenseCategory.UTILITIES
        assert suggestion.confidence == 0.9

    def test_unknown_category_becomes_operational(self):
        model = StubModel(text='{"category": "groceries", "confidence": 0.7}')
        agent = FinancialSummaryAgent(model=model)

        suggestion = asyncio.run(agent.suggest_expense_category("Food"))

        assert suggestion.category == ExpenseCategory.OPERATIONAL
        assert suggestion.confidence == 0.7

    def test_fallback_on_error(self):
        agent = FinancialSummaryAgent(model=StubModel(error=ValueError("bad key")))

        suggestion = asyncio.run(agent.suggest_expense_category("Stuff"))

        assert suggestion.category == ExpenseCategory.OPERATIONAL
        assert suggestion.confidence == 0.3
