"""Report query package."""

from treasury.queries.executor import (
    ReportExecutor,
    filter_transactions,
    project_display_name,
)

__all__ = ["ReportExecutor", "filter_transactions", "project_display_name"]
