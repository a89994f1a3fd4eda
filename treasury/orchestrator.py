"""
Main Orchestrator for the Treasury

This module ties together all the components and defines the
flows a treasury session goes through:
1. Session start (load -> catch up recurring expenses -> notify)
2. Book-keeping (transactions, recurring expenses, settings, budgets,
   projects, disbursement rolls)
3. Reporting (dashboard, budget-vs-actual, filtered reports, summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The global rate is loaded once and passed explicitly to every engine
- Catch-up results are only written back when something was generated
- In-memory state only changes after the storage write succeeded
- Every change is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from treasury.agents import CategorySuggestion, FinancialSummaryAgent, fallback_summary
from treasury.audit import AuditLogger, create_correlation_id
from treasury.config import AppSettings, get_settings
from treasury.currency import (
    require_valid_rate,
    restamp_edited_transaction,
    stamp_new_transaction,
)
from treasury.models.recurrence import ReminderNotification
from treasury.models.report import (
    BudgetLine,
    Dashboard,
    ProjectReport,
    ReportQuery,
    ReportResult,
    ValidationResult,
)
from treasury.models.transaction import (
    Budget,
    DisbursementRecord,
    DisbursementSheet,
    Project,
    RecurringObligation,
    Transaction,
    TransactionType,
    TreasurySettings,
    generate_id,
)
from treasury.queries import ReportExecutor, project_display_name
from treasury.recurrence import (
    ReminderCoordinator,
    build_notification,
    initial_next_due_date,
)
from treasury.reports import budget_vs_actual, by_category, month_bounds, monthly_trend, totals
from treasury.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTreasuryStorage,
    InMemoryTreasuryStorage,
    NotFoundError,
    StorageError,
    TreasuryStorageInterface,
)
from treasury.validation import (
    TransactionValidator,
    get_user_friendly_summary,
    validate_budgets,
)


RECENT_TRANSACTIONS = 5


def newest_first(transactions: list[Transaction]) -> list[Transaction]:
    """Sort by date, newest first; ties keep their existing order."""
    return sorted(transactions, key=lambda tx: tx.date, reverse=True)


class TreasurySession:
    """
    In-memory state for one treasury session.

    Flow:
    1. start() → Load every collection, run catch-up, return reminders
    2. save_* / delete_* → Validate, persist, then update memory
    3. dashboard() / budget_report() / run_report() → Pure aggregations

    A single writer is assumed: there is no locking and no merge of
    concurrent edits.
    """

    def __init__(
        self,
        storage: TreasuryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        summary_agent: Optional[FinancialSummaryAgent] = None,
        coordinator: Optional[ReminderCoordinator] = None,
        validator: Optional[TransactionValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._app_settings = settings or get_settings().app
        self._storage = storage
        self._audit_logger = audit_logger
        self._summary_agent = summary_agent
        self._coordinator = coordinator or ReminderCoordinator(
            description_suffix=self._app_settings.recurring_description_suffix,
        )
        self._validator = validator or TransactionValidator(self._app_settings)
        self._executor = ReportExecutor(self._app_settings.deleted_project_placeholder)
        self._logger = structlog.get_logger()

        self.transactions: list[Transaction] = []
        self.obligations: list[RecurringObligation] = []
        self.treasury_settings = TreasurySettings(
            reporting_rate_from_primary=self._app_settings.default_reporting_rate,
        )
        self.budgets: list[Budget] = []
        self.projects: list[Project] = []
        self.disbursement_sheets: list[DisbursementSheet] = []

    @property
    def global_rate(self) -> Decimal:
        return self.treasury_settings.reporting_rate_from_primary

    # =========================================================================
    # SESSION START
    # =========================================================================

    async def load(self) -> None:
        """
        Load every collection from storage.

        Raises:
            MalformedRecordError: If a persisted record is invalid
            StorageError: If storage cannot be read
        """
        self.transactions = newest_first(await self._storage.load_transactions())
        self.obligations = await self._storage.load_recurring_obligations()
        stored_settings = await self._storage.load_settings()
        if stored_settings is not None:
            self.treasury_settings = stored_settings
        self.budgets = await self._storage.load_budgets()
        self.projects = await self._storage.load_projects()
        self.disbursement_sheets = await self._storage.load_disbursement_sheets()

    async def start(self, today: Optional[date] = None) -> ReminderNotification:
        """
        Begin a session: load, catch up recurring expenses, notify.

        Storage failures while writing catch-up results are reported in
        the notification instead of being raised.

        Raises:
            StorageError: If loading fails (audited as a system error)
        """
        today = today or date.today()
        correlation_id = create_correlation_id()

        try:
            await self.load()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"stage": "load"},
                    correlation_id=correlation_id,
                )
            raise

        result = self._coordinator.run_catch_up(self.obligations, today)
        notification = build_notification(result)
        persisted = False

        if result.requires_persistence:
            updated_transactions = newest_first(
                result.generated_transactions + self.transactions
            )
            try:
                await self._storage.save_transactions(updated_transactions)
                await self._storage.save_recurring_obligations(result.updated_obligations)
                persisted = True
            except StorageError as e:
                notification.error_message = (
                    f"Recurring expenses were generated but could not be saved: {e}"
                )
                if self._audit_logger:
                    await self._audit_logger.log_save_failed(
                        collection="recurring",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
            # In-memory state reflects the run even when the write failed
            self.obligations = result.updated_obligations
            self.transactions = updated_transactions

        self._logger.info(
            "session_started",
            transactions=len(self.transactions),
            obligations=len(self.obligations),
            persisted=persisted,
        )

        if self._audit_logger:
            await self._audit_logger.log_catch_up(
                result,
                persisted=persisted,
                correlation_id=correlation_id,
            )

        return notification

    async def _persist(
        self,
        collection: str,
        save: Any,
        payload: Any,
        correlation_id: Optional[UUID],
    ) -> None:
        """Run a storage save, auditing and re-raising any failure."""
        try:
            await save(payload)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    collection=collection,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((tx for tx in self.transactions if tx.id == transaction_id), None)

    async def save_transaction(
        self,
        transaction: Union[Transaction, dict],
        supplied_rate: Optional[Any] = None,
        today: Optional[date] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Record a new transaction or apply an edit.

        New transactions (no id, or an id not in the store) get the
        current global rate frozen onto them. Edits are re-stamped with
        `supplied_rate`, or the current global rate when none is given.
        A dict edit that carries its own `exchange_rate` supplies that
        rate unless `supplied_rate` is passed.

        Returns:
            (saved_transaction, validation_result). Warnings never
            block the save.

        Raises:
            ExchangeRateError: If a supplied rate is not usable
            StorageError: If the save fails
        """
        correlation_id = create_correlation_id()

        if isinstance(transaction, dict):
            data = dict(transaction)
            if not data.get("id"):
                data["id"] = generate_id("tx")
            if supplied_rate is None:
                supplied_rate = data.get("exchange_rate")
            transaction = Transaction.model_validate(data)

        existing = self.find_transaction(transaction.id)
        if existing is None:
            saved = stamp_new_transaction(transaction, self.global_rate)
        else:
            saved = restamp_edited_transaction(transaction, self.global_rate, supplied_rate)

        validation = self._validator.validate(
            saved,
            self.global_rate,
            projects=self.projects,
            today=today,
        )

        remaining = [tx for tx in self.transactions if tx.id != saved.id]
        updated = newest_first([saved] + remaining)
        await self._persist(
            "transactions", self._storage.save_transactions, updated, correlation_id
        )
        self.transactions = updated

        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                saved,
                created=existing is None,
                correlation_id=correlation_id,
            )
            if validation.warnings:
                await self._audit_logger.log_validation_warning(
                    entity_id=saved.id,
                    warnings=validation.warnings,
                    summary=get_user_friendly_summary(validation),
                    correlation_id=correlation_id,
                )

        return saved, validation

    async def delete_transaction(self, transaction_id: str) -> None:
        """
        Raises:
            NotFoundError: If no transaction has this id
        """
        if self.find_transaction(transaction_id) is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        remaining = [tx for tx in self.transactions if tx.id != transaction_id]
        await self._persist("transactions", self._storage.save_transactions, remaining, None)
        self.transactions = remaining

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id)

    # =========================================================================
    # RECURRING OBLIGATIONS
    # =========================================================================

    async def save_recurring_obligation(
        self,
        obligation: Union[RecurringObligation, dict],
        today: Optional[date] = None,
    ) -> RecurringObligation:
        """
        Create or edit a recurring expense.

        The next due date is recomputed as the first date on the
        obligation's schedule that is not in the past.
        """
        today = today or date.today()

        if isinstance(obligation, dict):
            data = dict(obligation)
            if not data.get("id"):
                data["id"] = generate_id("re")
            data.setdefault("next_due_date", data.get("start_date"))
            obligation = RecurringObligation.model_validate(data)

        saved = obligation.model_copy(update={
            "next_due_date": initial_next_due_date(
                obligation.start_date, obligation.frequency, today
            ),
        })

        if any(o.id == saved.id for o in self.obligations):
            updated = [saved if o.id == saved.id else o for o in self.obligations]
        else:
            updated = self.obligations + [saved]

        await self._persist(
            "recurring", self._storage.save_recurring_obligations, updated, None
        )
        self.obligations = updated

        if self._audit_logger:
            await self._audit_logger.log_recurring_saved(
                obligation_id=saved.id,
                description=saved.description,
                next_due_date=saved.next_due_date.isoformat(),
            )
        return saved

    async def delete_recurring_obligation(self, obligation_id: str) -> None:
        """
        Stop a recurring expense. Transactions it already generated stay.

        Raises:
            NotFoundError: If no obligation has this id
        """
        remaining = [o for o in self.obligations if o.id != obligation_id]
        if len(remaining) == len(self.obligations):
            raise NotFoundError(f"Recurring expense not found: {obligation_id}")

        await self._persist(
            "recurring", self._storage.save_recurring_obligations, remaining, None
        )
        self.obligations = remaining

        if self._audit_logger:
            await self._audit_logger.log_recurring_deleted(obligation_id)

    # =========================================================================
    # SETTINGS AND BUDGETS
    # =========================================================================

    async def save_settings(self, reporting_rate_from_primary: Any) -> TreasurySettings:
        """
        Change the global exchange rate.

        Existing expense snapshots are untouched.

        Raises:
            ExchangeRateError: If the rate is not a positive number
        """
        rate = require_valid_rate(reporting_rate_from_primary)
        old_rate = self.global_rate
        new_settings = TreasurySettings(reporting_rate_from_primary=rate)

        await self._persist("settings", self._storage.save_settings, new_settings, None)
        self.treasury_settings = new_settings

        if self._audit_logger:
            await self._audit_logger.log_settings_updated(old_rate, rate)
        return new_settings

    async def save_budgets(self, budgets: list[Budget]) -> list[Budget]:
        """
        Replace every budget.

        Raises:
            DuplicateBudgetError: If a category appears twice
        """
        budgets = validate_budgets(budgets)

        await self._persist("budgets", self._storage.save_budgets, budgets, None)
        self.budgets = budgets

        if self._audit_logger:
            await self._audit_logger.log_budgets_saved(
                [budget.category.value for budget in budgets]
            )
        return budgets

    # =========================================================================
    # PROJECTS
    # =========================================================================

    async def save_project(self, project: Union[Project, dict]) -> Project:
        if isinstance(project, dict):
            data = dict(project)
            if not data.get("id"):
                data["id"] = generate_id("proj")
            project = Project.model_validate(data)

        if any(p.id == project.id for p in self.projects):
            updated = [project if p.id == project.id else p for p in self.projects]
        else:
            updated = self.projects + [project]

        await self._persist("projects", self._storage.save_projects, updated, None)
        self.projects = updated

        if self._audit_logger:
            await self._audit_logger.log_project_changed(project.id, deleted=False)
        return project

    async def delete_project(self, project_id: str) -> int:
        """
        Delete a project after unlinking every transaction pointing at it.

        Returns:
            Number of transactions that were unlinked

        Raises:
            NotFoundError: If no project has this id
        """
        remaining = [p for p in self.projects if p.id != project_id]
        if len(remaining) == len(self.projects):
            raise NotFoundError(f"Project not found: {project_id}")

        unlinked = 0
        updated_transactions = []
        for tx in self.transactions:
            if tx.project_id == project_id:
                tx = tx.with_changes(project_id=None)
                unlinked += 1
            updated_transactions.append(tx)

        if unlinked:
            await self._persist(
                "transactions",
                self._storage.save_transactions,
                updated_transactions,
                None,
            )
            self.transactions = updated_transactions

        await self._persist("projects", self._storage.save_projects, remaining, None)
        self.projects = remaining

        if self._audit_logger:
            await self._audit_logger.log_project_changed(
                project_id,
                deleted=True,
                unlinked_transactions=unlinked,
            )
        return unlinked

    def project_name(self, project_id: Optional[str]) -> Optional[str]:
        """Display name for a transaction's project reference."""
        return project_display_name(
            project_id,
            self.projects,
            self._app_settings.deleted_project_placeholder,
        )

    # =========================================================================
    # DISBURSEMENT ROLLS
    # =========================================================================

    def find_disbursement_sheet(self, sheet_id: str) -> DisbursementSheet:
        """
        Raises:
            NotFoundError: If no sheet has this id
        """
        for sheet in self.disbursement_sheets:
            if sheet.id == sheet_id:
                return sheet
        raise NotFoundError(f"Disbursement sheet not found: {sheet_id}")

    async def _store_sheets(
        self,
        sheets: list[DisbursementSheet],
        changed: DisbursementSheet,
        deleted: bool = False,
    ) -> None:
        await self._persist(
            "disbursements", self._storage.save_disbursement_sheets, sheets, None
        )
        self.disbursement_sheets = sheets

        if self._audit_logger:
            await self._audit_logger.log_disbursement_sheet_changed(
                sheet_id=changed.id,
                deleted=deleted,
                record_count=len(changed.records),
            )

    async def save_disbursement_sheet(
        self,
        sheet: Union[DisbursementSheet, dict],
    ) -> DisbursementSheet:
        if isinstance(sheet, dict):
            data = dict(sheet)
            if not data.get("id"):
                data["id"] = generate_id("ds")
            sheet = DisbursementSheet.model_validate(data)

        if any(s.id == sheet.id for s in self.disbursement_sheets):
            updated = [sheet if s.id == sheet.id else s for s in self.disbursement_sheets]
        else:
            updated = self.disbursement_sheets + [sheet]

        await self._store_sheets(updated, sheet)
        return sheet

    async def delete_disbursement_sheet(self, sheet_id: str) -> None:
        sheet = self.find_disbursement_sheet(sheet_id)
        remaining = [s for s in self.disbursement_sheets if s.id != sheet_id]
        await self._store_sheets(remaining, sheet, deleted=True)

    async def add_disbursement_record(
        self,
        sheet_id: str,
        record: Union[DisbursementRecord, dict],
    ) -> DisbursementRecord:
        """Append a beneficiary to a roll, keeping insertion order."""
        sheet = self.find_disbursement_sheet(sheet_id)

        if isinstance(record, dict):
            data = dict(record)
            if not data.get("id"):
                data["id"] = generate_id("rec")
            record = DisbursementRecord.model_validate(data)

        changed = sheet.model_copy(update={"records": sheet.records + [record]})
        await self._store_sheets(
            [changed if s.id == sheet_id else s for s in self.disbursement_sheets],
            changed,
        )
        return record

    async def remove_disbursement_record(self, sheet_id: str, record_id: str) -> None:
        """
        Raises:
            NotFoundError: If the sheet or the record does not exist
        """
        sheet = self.find_disbursement_sheet(sheet_id)
        records = [r for r in sheet.records if r.id != record_id]
        if len(records) == len(sheet.records):
            raise NotFoundError(f"Disbursement record not found: {record_id}")

        changed = sheet.model_copy(update={"records": records})
        await self._store_sheets(
            [changed if s.id == sheet_id else s for s in self.disbursement_sheets],
            changed,
        )

    # =========================================================================
    # REPORTING
    # =========================================================================

    def dashboard(self, today: Optional[date] = None) -> Dashboard:
        """Headline totals, expense breakdown, trend and latest entries."""
        today = today or date.today()
        return Dashboard(
            totals=totals(self.transactions, self.global_rate),
            expense_by_category=by_category(
                self.transactions, self.global_rate, TransactionType.EXPENSE
            ),
            trend=monthly_trend(
                self.transactions,
                self.global_rate,
                self._app_settings.trend_months,
                today,
            ),
            recent_transactions=self.transactions[:RECENT_TRANSACTIONS],
        )

    def budget_report(self, today: Optional[date] = None) -> list[BudgetLine]:
        """Budget-vs-actual for the current calendar month."""
        period_start, period_end = month_bounds(today or date.today())
        return budget_vs_actual(
            self.transactions,
            self.budgets,
            self.global_rate,
            period_start,
            period_end,
        )

    def run_report(self, query: ReportQuery) -> ReportResult:
        return self._executor.execute(query, self.transactions, self.global_rate)

    def project_report(self, project_id: str) -> ProjectReport:
        return self._executor.project_report(
            project_id,
            self.transactions,
            self.projects,
            self.global_rate,
        )

    async def generate_summary(self) -> str:
        """Narrative summary of the treasury's overall position."""
        current_totals = totals(self.transactions, self.global_rate)
        if self._summary_agent is None:
            return fallback_summary(
                current_totals,
                by_category(self.transactions, self.global_rate, TransactionType.EXPENSE),
            )

        try:
            return await self._summary_agent.generate_summary(
                current_totals,
                self.global_rate,
                self.transactions,
            )
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                )
            return fallback_summary(
                current_totals,
                by_category(self.transactions, self.global_rate, TransactionType.EXPENSE),
            )

    async def suggest_expense_category(self, description: str) -> Optional[CategorySuggestion]:
        """Category hint for a new expense, or None without a summary agent."""
        if self._summary_agent is None:
            return None
        return await self._summary_agent.suggest_expense_category(description)


def create_app_components(
    use_storage: bool = True,
) -> tuple[TreasurySession, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run against in-memory storage.

    Returns:
        (session, sheets_client)
    """
    logger = structlog.get_logger()
    sheets_client = None
    storage: TreasuryStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsTreasuryStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryTreasuryStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        storage = InMemoryTreasuryStorage()
        audit_logger = AuditLogger()  # Local-only logging

    try:
        summary_agent = FinancialSummaryAgent()
    except Exception as e:
        logger.warning("summary_agent_not_configured", error=str(e))
        summary_agent = None

    session = TreasurySession(
        storage=storage,
        audit_logger=audit_logger,
        summary_agent=summary_agent,
    )
    return session, sheets_client
