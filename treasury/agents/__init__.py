"""AI agents package."""

from treasury.agents.summary_agent import (
    CategorySuggestion,
    FinancialSummaryAgent,
    fallback_summary,
)

__all__ = ["CategorySuggestion", "FinancialSummaryAgent", "fallback_summary"]
