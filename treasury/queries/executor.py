"""
Report Query Execution

DESIGN DECISION: Report queries are DETERMINISTIC filters over the
transaction list the session already holds. Nothing here reads storage;
the caller passes the transactions and the current global rate.

Referential gaps are expected (projects are deleted independently of
the transactions pointing at them) and degrade to a placeholder name.
"""

from typing import Any, Iterable, Optional

from treasury.config import get_settings
from treasury.models.report import ProjectReport, ReportQuery, ReportResult
from treasury.models.transaction import Project, Transaction, TransactionType
from treasury.reports.aggregation import budget_usage_percent, by_category, totals


def filter_transactions(
    transactions: Iterable[Transaction],
    query: ReportQuery,
) -> list[Transaction]:
    """Apply every filter set on `query` (date bounds are inclusive)."""
    matched = []
    for tx in transactions:
        if query.date_from and tx.date < query.date_from:
            continue
        if query.date_to and tx.date > query.date_to:
            continue
        if query.transaction_type and tx.type != query.transaction_type:
            continue
        if query.categories and tx.category not in query.categories:
            continue
        if query.project_id and tx.project_id != query.project_id:
            continue
        matched.append(tx)
    return matched


def project_display_name(
    project_id: Optional[str],
    projects: Iterable[Project],
    placeholder: Optional[str] = None,
) -> Optional[str]:
    """
    Name of the referenced project.

    Returns None when there is no reference and the placeholder when
    the project no longer exists.
    """
    if not project_id:
        return None
    for project in projects:
        if project.id == project_id:
            return project.name
    if placeholder is None:
        placeholder = get_settings().app.deleted_project_placeholder
    return placeholder


class ReportExecutor:
    """
    Executes report queries against an in-memory transaction list.

    GUARANTEES:
    - Only reports on the transactions given
    - Every amount is in the reporting currency
    - Clear "no data found" if nothing matches
    """

    def __init__(self, placeholder: Optional[str] = None):
        self._placeholder = placeholder or get_settings().app.deleted_project_placeholder

    def execute(
        self,
        query: ReportQuery,
        transactions: Iterable[Transaction],
        global_rate: Any,
    ) -> ReportResult:
        """Filter, then total and break down expenses by category."""
        matched = filter_transactions(transactions, query)
        matched.sort(key=lambda tx: tx.date, reverse=True)

        return ReportResult(
            query_id=query.query_id,
            data_found=len(matched) > 0,
            result_count=len(matched),
            transactions=matched,
            totals=totals(matched, global_rate),
            expense_distribution=by_category(matched, global_rate, TransactionType.EXPENSE),
            query_description=query.description,
        )

    def project_report(
        self,
        project_id: str,
        transactions: Iterable[Transaction],
        projects: Iterable[Project],
        global_rate: Any,
    ) -> ProjectReport:
        """Everything booked against one project, with its budget usage."""
        projects = list(projects)
        project = next((p for p in projects if p.id == project_id), None)
        linked = [tx for tx in transactions if tx.project_id == project_id]
        linked.sort(key=lambda tx: tx.date, reverse=True)
        project_totals = totals(linked, global_rate)
        budget = project.budget if project else None

        return ProjectReport(
            project_id=project_id,
            project_name=project_display_name(project_id, projects, self._placeholder),
            project_exists=project is not None,
            budget=budget or 0,
            transactions=linked,
            totals=project_totals,
            budget_used_percent=budget_usage_percent(project_totals.total_expense, budget),
        )
