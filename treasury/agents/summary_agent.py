"""
Financial Summary Agent

DESIGN DECISION: The LLM is a WRITER, not an ACCOUNTANT.

CRITICAL BOUNDARIES:
   - CAN: Describe totals that were computed deterministically
   - CAN: Suggest an expense category from a free-text description
   - CANNOT: Compute, round or invent any figure
   - CANNOT: Persist anything

Every number in the prompt comes from the AggregationEngine. If the
model call fails for any reason, a deterministic summary built from the
same numbers is returned instead, so the page never goes blank.
"""

import json
from decimal import Decimal
from typing import Any, Iterable, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from treasury.config import get_settings
from treasury.models.report import Totals
from treasury.models.transaction import (
    REPORTING_CURRENCY,
    ExpenseCategory,
    Transaction,
    TransactionType,
)
from treasury.reports.aggregation import by_category


class CategorySuggestion(BaseModel):
    """AI's suggestion for an expense category."""

    category: ExpenseCategory
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


def _extract_json(text: str) -> Optional[dict]:
    """Find the JSON object in a model response."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        return json.loads(text[start:end])
    return None


def fallback_summary(
    totals: Totals,
    expense_breakdown: dict[ExpenseCategory, Decimal],
) -> str:
    """Plain summary used when the model is unavailable."""
    currency = REPORTING_CURRENCY.value
    parts = [
        f"Total revenue: {totals.total_revenue:,.2f} {currency}.",
        f"Total expenses: {totals.total_expense:,.2f} {currency}.",
        f"Balance: {totals.balance:,.2f} {currency}.",
    ]
    if expense_breakdown:
        top_category, top_amount = max(
            expense_breakdown.items(), key=lambda item: item[1]
        )
        parts.append(
            f"Largest expense category: "
            f"{top_category.value.replace('_', ' ')} "
            f"({top_amount:,.2f} {currency})."
        )
    if totals.balance < 0:
        parts.append("Expenses exceed revenue for the recorded period.")
    return " ".join(parts)


class FinancialSummaryAgent:
    """
    Narrative summaries over the treasury's aggregates.

    RESPONSIBILITIES:
    - Turn computed totals into a short paragraph for the board
    - Suggest a category for a new expense

    BOUNDARIES:
    - NEVER sees raw storage
    - NEVER changes a number
    """

    def __init__(self, model: Optional[Any] = None):
        self._logger = structlog.get_logger()
        if model is not None:
            self._model = model
        else:
            self._settings = get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def generate_summary(
        self,
        totals: Totals,
        global_rate: Decimal,
        transactions: Iterable[Transaction],
    ) -> str:
        """
        Summarize the treasury's position.

        Args:
            totals: Headline figures from the aggregation engine
            global_rate: Current primary-per-reporting rate
            transactions: Transactions behind the totals

        Returns:
            A short paragraph. Falls back to a deterministic summary
            when the model call fails.
        """
        transactions = list(transactions)
        breakdown = by_category(transactions, global_rate, TransactionType.EXPENSE)
        currency = REPORTING_CURRENCY.value

        breakdown_lines = "\n".join(
            f"- {category.value}: {amount:,.2f} {currency}"
            for category, amount in breakdown.items()
        ) or "- none"

        prompt = f"""You are writing a short financial summary for the board of a charitable organization.

Use ONLY the figures below. Do not compute new numbers, do not round differently,
and do not mention anything that is not listed.

Total revenue: {totals.total_revenue:,.2f} {currency}
Total expenses: {totals.total_expense:,.2f} {currency}
Balance: {totals.balance:,.2f} {currency}
Exchange rate: {global_rate} EGP per {currency}
Number of transactions: {len(transactions)}

Expenses by category:
{breakdown_lines}

Write 3 to 5 plain sentences. Mention the largest expense category and whether
the balance is positive."""

        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
            if text:
                return text
        except Exception as e:
            self._logger.warning("summary_generation_failed", error=str(e))

        return fallback_summary(totals, breakdown)

    async def suggest_expense_category(
        self,
        description: str,
    ) -> CategorySuggestion:
        """
        Suggest a category for an expense description.

        Returns a suggestion the treasurer can accept or override.
        """
        categories = [cat.value for cat in ExpenseCategory]

        prompt = f"""You are helping categorize an expense for a charitable organization's treasury.

Expense description: "{description}"

Available categories: {', '.join(categories)}

Respond with ONLY a JSON object in this exact format:
{{"category": "category_name", "confidence": 0.8, "reasoning": "brief explanation"}}

Be conservative - if unsure, use "operational"."""

        try:
            response = await self._model.generate_content_async(prompt)
            data = _extract_json(response.text.strip())
            if data:
                try:
                    category = ExpenseCategory(str(data.get("category", "")).lower())
                except ValueError:
                    category = ExpenseCategory.OPERATIONAL

                return CategorySuggestion(
                    category=category,
                    confidence=min(max(float(data.get("confidence", 0.5)), 0.0), 1.0),
                    reasoning=data.get("reasoning", "Based on the description"),
                )
        except Exception as e:
            self._logger.warning("category_suggestion_failed", error=str(e))

        return CategorySuggestion(
            category=ExpenseCategory.OPERATIONAL,
            confidence=0.3,
            reasoning="Could not determine category - please select manually",
        )
