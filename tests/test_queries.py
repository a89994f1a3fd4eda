"""Tests for report query execution."""

from datetime import date
from decimal import Decimal

from treasury.models.report import ReportQuery
from treasury.models.transaction import (
    Currency,
    ExpenseCategory,
    Project,
    RevenueCategory,
    Transaction,
    TransactionType,
)
from treasury.queries import ReportExecutor, filter_transactions, project_display_name


RATE = Decimal("50")

PROJECTS = [
    Project(id="proj-school", name="School renovation", budget=Decimal("1000")),
]

TRANSACTIONS = [
    Transaction(
        id="tx-1",
        type=TransactionType.REVENUE,
        amount=Decimal("5000"),
        currency=Currency.EGP,
        date=date(2024, 1, 10),
        category=RevenueCategory.PROJECT_SUPPORT,
        project_id="proj-school",
    ),
    Transaction(
        id="tx-2",
        type=TransactionType.EXPENSE,
        amount=Decimal("400"),
        currency=Currency.USD,
        date=date(2024, 2, 3),
        category=ExpenseCategory.PROJECT_COSTS,
        project_id="proj-school",
    ),
    Transaction(
        id="tx-3",
        type=TransactionType.EXPENSE,
        amount=Decimal("50"),
        currency=Currency.USD,
        date=date(2024, 3, 1),
        category=ExpenseCategory.UTILITIES,
    ),
    Transaction(
        id="tx-4",
        type=TransactionType.EXPENSE,
        amount=Decimal("20"),
        currency=Currency.USD,
        date=date(2024, 3, 2),
        category=ExpenseCategory.RELIEF_AID,
        project_id="proj-gone",
    ),
]


class TestFilterTransactions:
    """Tests for query filters."""

    def test_empty_query_matches_everything(self):
        assert len(filter_transactions(TRANSACTIONS, ReportQuery())) == 4

    def test_inclusive_date_bounds(self):
        query = ReportQuery(date_from=date(2024, 2, 3), date_to=date(2024, 3, 1))
        assert [tx.id for tx in filter_transactions(TRANSACTIONS, query)] == ["tx-2", "tx-3"]

    def test_type_and_categories(self):
        query = ReportQuery(
            transaction_type=TransactionType.EXPENSE,
            categories=[ExpenseCategory.UTILITIES, ExpenseCategory.RELIEF_AID],
        )
        assert [tx.id for tx in filter_transactions(TRANSACTIONS, query)] == ["tx-3", "tx-4"]

    def test_project(self):
        query = ReportQuery(project_id="proj-school")
        assert [tx.id for tx in filter_transactions(TRANSACTIONS, query)] == ["tx-1", "tx-2"]


class TestReportExecutor:
    """Tests for executing report queries."""

    def test_execute(self):
        executor = ReportExecutor(placeholder="Deleted project")
        result = executor.execute(
            ReportQuery(transaction_type=TransactionType.EXPENSE),
            TRANSACTIONS,
            RATE,
        )
        assert result.data_found
        assert result.result_count == 3
        assert [tx.id for tx in result.transactions] == ["tx-4", "tx-3", "tx-2"]
        assert result.totals.total_expense == Decimal("470")
        assert result.totals.total_revenue == 0
        assert result.expense_distribution[ExpenseCategory.PROJECT_COSTS] == Decimal("400")

    def test_no_data_found(self):
        executor = ReportExecutor(placeholder="Deleted project")
        result = executor.execute(
            ReportQuery(date_from=date(2030, 1, 1)),
            TRANSACTIONS,
            RATE,
        )
        assert not result.data_found
        assert result.result_count == 0
        assert result.totals.balance == 0

    def test_project_report(self):
        executor = ReportExecutor(placeholder="Deleted project")
        report = executor.project_report("proj-school", TRANSACTIONS, PROJECTS, RATE)

        assert report.project_exists
        assert report.project_name == "School renovation"
        assert report.totals.total_revenue == Decimal("100")
        assert report.totals.total_expense == Decimal("400")
        assert report.budget_used_percent == Decimal("40")

    def test_project_report_for_deleted_project(self):
        executor = ReportExecutor(placeholder="Deleted project")
        report = executor.project_report("proj-gone", TRANSACTIONS, PROJECTS, RATE)

        assert not report.project_exists
        assert report.project_name == "Deleted project"
        assert report.budget == 0
        assert report.budget_used_percent == 0
        assert [tx.id for tx in report.transactions] == ["tx-4"]


class TestProjectDisplayName:
    """Tests for dangling project references."""

    def test_known_project(self):
        assert project_display_name("proj-school", PROJECTS, "Gone") == "School renovation"

    def test_missing_project_uses_placeholder(self):
        assert project_display_name("proj-gone", PROJECTS, "Gone") == "Gone"

    def test_no_reference(self):
        assert project_display_name(None, PROJECTS, "Gone") is None
