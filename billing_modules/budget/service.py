"""
Budget Module Service (``billing_modules.budget.service``).

Responsibility
--------------
Budget lifecycle (draft editing, publishing, copying, deletion) and the
read side used by reports: effective budgets for a month and budget
totals for a month range.

Architecture position
---------------------
**Modules layer** -- ``BudgetService`` is the sole public entry point for
budget operations.  Effectiveness and aggregation are delegated to the
pure engines in ``billing_engines``; rows are read through
``BudgetSelector``.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary (``commit``
  on success, ``rollback`` on exception).  A publish therefore becomes
  visible all at once: closed entries and promoted drafts commit
  together.
* Only DRAFT rows are editable; PUBLISHED rows change only through
  publish-driven auto-close.
* Publishing a month assigns version = max PUBLISHED version of entries
  starting in that month + 1, and closes every open PUBLISHED entry for
  the same customer+article that started strictly earlier, ending it in
  the month before the batch.
* ``budget_range`` reads all overlapping PUBLISHED rows with one query and
  evaluates every month against that single snapshot.

Failure modes
-------------
* ``PeriodLockedError`` -- draft edits, copies or deletes in a locked month.
* ``CustomerNotFoundError`` / ``ArticleNotFoundError`` -- unknown references.
* ``BudgetEntryNotFoundError`` / ``BudgetEntryNotEditableError``.
* ``NoDraftsToPublishError`` / ``NoPublishedBudgetError``.
* ``ValueError`` -- negative hours or amount.
"""

from __future__ import annotations

from decimal import Decimal
from itertools import groupby
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from billing_config import BillingConfig, get_active_config
from billing_engines.budget_aggregation import BudgetTotal, aggregate_budget_range
from billing_engines.budget_effectiveness import evaluate_effective_budgets
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import BudgetEntry, BudgetFilter, BudgetStatus
from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import (
    BudgetEntryKeyMismatchError,
    BudgetEntryNotEditableError,
    BudgetEntryNotFoundError,
    NoDraftsToPublishError,
    NoPublishedBudgetError,
)
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.models.budget_entry import BudgetEntryModel
from billing_kernel.selectors.budget_selector import BudgetSelector, starts_on_or_before
from billing_kernel.selectors.reference_selector import ReferenceSelector
from billing_kernel.services.period_lock_service import PeriodLockService
from billing_modules.budget.models import BudgetHistoryGroup, PublishResult

logger = get_logger("modules.budget.service")


class BudgetService:
    """
    Orchestrates budget management.

    Contract
    --------
    * Mutating methods commit; read methods never write.
    * Clock and configuration are injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._budgets = BudgetSelector(session)
        self._references = ReferenceSelector(session)
        self._locks = PeriodLockService(session, self._clock)

    # =========================================================================
    # Drafts
    # =========================================================================

    def upsert_draft(
        self,
        customer_id: UUID,
        article_id: UUID,
        start: YearMonth,
        hours: Decimal,
        amount: Decimal,
        actor_id: UUID,
        entry_id: UUID | None = None,
    ) -> BudgetEntry:
        """
        Create or edit the DRAFT row for a customer+article in ``start``.

        Without ``entry_id`` an existing draft for the same pair and month
        is updated in place; there is at most one draft per pair and month.
        With ``entry_id`` the addressed row must be a draft for exactly
        this customer, article and month.
        """
        if hours < 0:
            raise ValueError(f"hours must be non-negative, got {hours}")
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        with LogContext.bind(actor_id=actor_id, customer_id=customer_id, period=start):
            try:
                self._locks.assert_open(start)
                self._references.find_customer(customer_id)
                self._references.find_article(article_id)

                if entry_id is not None:
                    row = self._editable_row(entry_id, customer_id, article_id, start)
                else:
                    row = self._find_draft(customer_id, article_id, start)

                is_new = row is None
                if row is None:
                    row = BudgetEntryModel(
                        customer_id=customer_id,
                        article_id=article_id,
                        start_year=start.year,
                        start_month=start.month,
                        hours=hours,
                        amount=amount,
                        status=BudgetStatus.DRAFT.value,
                        version=0,
                        created_by_id=actor_id,
                    )
                    self._session.add(row)
                else:
                    row.hours = hours
                    row.amount = amount
                    row.updated_by_id = actor_id

                self._session.flush()
                entry = row.to_dto()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "budget_draft_saved",
                extra={
                    "entry_id": str(entry.id),
                    "article_id": str(article_id),
                    "hours": str(hours),
                    "amount": str(amount),
                    "is_new": is_new,
                },
            )
        return entry

    def _editable_row(
        self,
        entry_id: UUID,
        customer_id: UUID,
        article_id: UUID,
        start: YearMonth,
    ) -> BudgetEntryModel:
        """The DRAFT row ``entry_id``, checked against its own month's lock and keys."""
        row = self._session.get(BudgetEntryModel, entry_id)
        if row is None:
            raise BudgetEntryNotFoundError(str(entry_id))
        row_start = YearMonth(row.start_year, row.start_month)
        self._locks.assert_open(row_start)
        if row.status != BudgetStatus.DRAFT.value:
            raise BudgetEntryNotEditableError(str(row.id), row.status)
        for field, expected, actual in (
            ("customer_id", row.customer_id, customer_id),
            ("article_id", row.article_id, article_id),
            ("start", row_start, start),
        ):
            if expected != actual:
                raise BudgetEntryKeyMismatchError(str(row.id), field, str(expected), str(actual))
        return row

    def _find_draft(
        self, customer_id: UUID, article_id: UUID, start: YearMonth,
    ) -> BudgetEntryModel | None:
        return self._session.scalars(
            select(BudgetEntryModel).where(
                BudgetEntryModel.customer_id == customer_id,
                BudgetEntryModel.article_id == article_id,
                BudgetEntryModel.start_year == start.year,
                BudgetEntryModel.start_month == start.month,
                BudgetEntryModel.status == BudgetStatus.DRAFT.value,
            )
        ).first()

    def list_entries(
        self, period: YearMonth, status: BudgetStatus | None = None,
    ) -> list[BudgetEntry]:
        """Entries whose start period is ``period``."""
        return self._budgets.find_starting_in(period, status)

    # =========================================================================
    # Publish
    # =========================================================================

    def publish(self, period: YearMonth, actor_id: UUID) -> PublishResult:
        """
        Publish every DRAFT row starting in ``period`` as one version.

        Runs as a single transaction: the auto-close of superseded entries
        and the promotion of drafts commit together or not at all.
        """
        with LogContext.bind(actor_id=actor_id, period=period):
            return self._publish(period, actor_id)

    def _publish(self, period: YearMonth, actor_id: UUID) -> PublishResult:
        logger.info("budget_publish_started")
        try:
            drafts = self._session.scalars(
                select(BudgetEntryModel).where(
                    BudgetEntryModel.start_year == period.year,
                    BudgetEntryModel.start_month == period.month,
                    BudgetEntryModel.status == BudgetStatus.DRAFT.value,
                )
            ).all()
            if not drafts:
                raise NoDraftsToPublishError(period.label)

            max_version = self._session.scalar(
                select(func.max(BudgetEntryModel.version)).where(
                    BudgetEntryModel.start_year == period.year,
                    BudgetEntryModel.start_month == period.month,
                    BudgetEntryModel.status == BudgetStatus.PUBLISHED.value,
                )
            )
            version = (max_version or 0) + 1

            closed = self._close_superseded(
                period,
                {(row.customer_id, row.article_id) for row in drafts},
                actor_id,
            )

            for row in drafts:
                row.status = BudgetStatus.PUBLISHED.value
                row.version = version
                row.updated_by_id = actor_id

            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        result = PublishResult(published=len(drafts), version=version, closed=closed)
        logger.info(
            "budget_published",
            extra={
                "published": result.published,
                "version": result.version,
                "closed": result.closed,
            },
        )
        return result

    def _close_superseded(
        self,
        period: YearMonth,
        pairs: set[tuple[UUID, UUID]],
        actor_id: UUID,
    ) -> int:
        """End open PUBLISHED entries for ``pairs`` that started before ``period``."""
        previous = period.previous()
        candidates = self._session.scalars(
            select(BudgetEntryModel).where(
                BudgetEntryModel.status == BudgetStatus.PUBLISHED.value,
                BudgetEntryModel.end_year.is_(None),
                starts_on_or_before(previous),
                BudgetEntryModel.customer_id.in_(list({customer for customer, _ in pairs})),
            )
        ).all()
        closed = 0
        for row in candidates:
            if (row.customer_id, row.article_id) not in pairs:
                continue
            row.end_year = previous.year
            row.end_month = previous.month
            row.updated_by_id = actor_id
            closed += 1
            logger.debug(
                "budget_entry_closed",
                extra={"entry_id": str(row.id), "end": previous.label},
            )
        return closed

    # =========================================================================
    # Copy / delete
    # =========================================================================

    def copy_from_previous_month(self, period: YearMonth, actor_id: UUID) -> int:
        """
        Create drafts for ``period`` from the budget effective in the month before.

        Pairs that already have a draft for ``period`` are skipped.

        Returns:
            Number of drafts created.
        """
        with LogContext.bind(actor_id=actor_id, period=period):
            return self._copy_from_previous_month(period, actor_id)

    def _copy_from_previous_month(self, period: YearMonth, actor_id: UUID) -> int:
        source_period = period.previous()
        try:
            self._locks.assert_open(period)
            source = self.effective_budgets(source_period)
            if not source:
                raise NoPublishedBudgetError(source_period.label)

            existing = {
                entry.key
                for entry in self._budgets.find_starting_in(period, BudgetStatus.DRAFT)
            }
            created = 0
            for entry in source:
                if entry.key in existing:
                    continue
                self._session.add(
                    BudgetEntryModel(
                        customer_id=entry.customer_id,
                        article_id=entry.article_id,
                        start_year=period.year,
                        start_month=period.month,
                        hours=entry.hours,
                        amount=entry.amount,
                        status=BudgetStatus.DRAFT.value,
                        version=0,
                        created_by_id=actor_id,
                    )
                )
                created += 1
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "budget_copied_from_previous_month",
            extra={
                "source_period": source_period.label,
                "created_count": created,
                "skipped": len(source) - created,
            },
        )
        return created

    def delete_entry(self, entry_id: UUID) -> None:
        try:
            row = self._session.get(BudgetEntryModel, entry_id)
            if row is None:
                raise BudgetEntryNotFoundError(str(entry_id))
            self._locks.assert_open(YearMonth(row.start_year, row.start_month))
            self._session.delete(row)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("budget_entry_deleted", extra={"entry_id": str(entry_id)})

    def delete_entries(
        self,
        customer_id: UUID,
        period: YearMonth,
        status: BudgetStatus,
    ) -> int:
        """Delete every entry of a customer starting in ``period`` with ``status``."""
        try:
            self._locks.assert_open(period)
            result = self._session.execute(
                delete(BudgetEntryModel).where(
                    BudgetEntryModel.customer_id == customer_id,
                    BudgetEntryModel.start_year == period.year,
                    BudgetEntryModel.start_month == period.month,
                    BudgetEntryModel.status == status.value,
                )
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "budget_entries_deleted",
            extra={
                "customer_id": str(customer_id),
                "period": period.label,
                "status": status.value,
                "deleted": result.rowcount,
            },
        )
        return result.rowcount

    # =========================================================================
    # Read side
    # =========================================================================

    def effective_budgets(
        self,
        period: YearMonth,
        budget_filter: BudgetFilter | None = None,
    ) -> list[BudgetEntry]:
        """Deduplicated budget entries in force in ``period``."""
        rows = self._budgets.find_published_overlapping(period, period, budget_filter)
        return evaluate_effective_budgets(rows, period, budget_filter)

    def budget_range(
        self,
        start: YearMonth,
        end: YearMonth,
        budget_filter: BudgetFilter | None = None,
    ) -> dict[str, BudgetTotal]:
        """Per customer+article budget totals over [start, end], summed month by month."""
        snapshot = self._budgets.find_published_overlapping(start, end, budget_filter)
        return aggregate_budget_range(
            snapshot,
            start,
            end,
            budget_filter,
            max_workers=self._config.range_max_workers,
        )

    def history(
        self, customer_id: UUID, article_id: UUID | None = None,
    ) -> list[BudgetHistoryGroup]:
        """All entries for a customer grouped by start period, newest first."""
        entries = self._budgets.find_history(customer_id, article_id)
        return [
            BudgetHistoryGroup(period=period, entries=tuple(group))
            for period, group in groupby(entries, key=lambda entry: entry.start)
        ]
