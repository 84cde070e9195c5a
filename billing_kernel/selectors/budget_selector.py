"""
Module: billing_kernel.selectors.budget_selector
Responsibility: Read-only budget entry queries.  Supplies the rows the
    effectiveness evaluator and the range aggregator compute over.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - find_published_overlapping() returns every PUBLISHED row whose
      validity window intersects [start, end]; that set is a superset of
      what any month inside the range can select, so one read serves as
      the snapshot for a whole range.
    - Results are ordered deterministically (start period, version, id).

Failure modes:
    - Returns an empty list when nothing matches; never raises for an
      empty or inverted range.
"""

from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.sql import Select

from billing_kernel.domain.dtos import BudgetEntry, BudgetFilter, BudgetStatus
from billing_kernel.domain.periods import YearMonth
from billing_kernel.models.budget_entry import BudgetEntryModel
from billing_kernel.selectors.base import BaseSelector

_ORDERING = (
    BudgetEntryModel.start_year,
    BudgetEntryModel.start_month,
    BudgetEntryModel.version,
    BudgetEntryModel.id,
)


def starts_on_or_before(period: YearMonth):
    """SQL form of ``entry.start <= period``."""
    return or_(
        BudgetEntryModel.start_year < period.year,
        and_(
            BudgetEntryModel.start_year == period.year,
            BudgetEntryModel.start_month <= period.month,
        ),
    )


def ends_on_or_after(period: YearMonth):
    """SQL form of ``entry.end is None or entry.end >= period``."""
    return or_(
        BudgetEntryModel.end_year.is_(None),
        BudgetEntryModel.end_year > period.year,
        and_(
            BudgetEntryModel.end_year == period.year,
            BudgetEntryModel.end_month >= period.month,
        ),
    )


def apply_budget_filter(stmt: Select, budget_filter: BudgetFilter | None) -> Select:
    """Translate a BudgetFilter into WHERE clauses."""
    if budget_filter is None:
        return stmt
    if budget_filter.status is not None:
        stmt = stmt.where(BudgetEntryModel.status == budget_filter.status.value)
    if budget_filter.customer_id is not None:
        stmt = stmt.where(BudgetEntryModel.customer_id == budget_filter.customer_id)
    if budget_filter.customer_ids is not None:
        stmt = stmt.where(BudgetEntryModel.customer_id.in_(budget_filter.customer_ids))
    if budget_filter.article_id is not None:
        stmt = stmt.where(BudgetEntryModel.article_id == budget_filter.article_id)
    return stmt


class BudgetSelector(BaseSelector[BudgetEntryModel]):
    """Selector for budget entries."""

    def find_budget_entries(
        self, budget_filter: BudgetFilter | None = None,
    ) -> list[BudgetEntry]:
        """All entries matching ``budget_filter`` (status, customer(s), article)."""
        stmt = apply_budget_filter(select(BudgetEntryModel), budget_filter)
        rows = self.session.scalars(stmt.order_by(*_ORDERING)).all()
        return [row.to_dto() for row in rows]

    def find_published_overlapping(
        self,
        start: YearMonth,
        end: YearMonth,
        budget_filter: BudgetFilter | None = None,
    ) -> list[BudgetEntry]:
        """
        PUBLISHED entries whose window intersects [start, end].

        The status of ``budget_filter`` is ignored; only PUBLISHED rows can
        ever be effective.
        """
        if start > end:
            return []
        stmt = select(BudgetEntryModel).where(
            BudgetEntryModel.status == BudgetStatus.PUBLISHED.value,
            starts_on_or_before(end),
            ends_on_or_after(start),
        )
        if budget_filter is not None:
            stmt = apply_budget_filter(
                stmt,
                BudgetFilter(
                    customer_id=budget_filter.customer_id,
                    customer_ids=budget_filter.customer_ids,
                    article_id=budget_filter.article_id,
                    status=None,
                ),
            )
        rows = self.session.scalars(stmt.order_by(*_ORDERING)).all()
        return [row.to_dto() for row in rows]

    def find_starting_in(
        self, period: YearMonth, status: BudgetStatus | None = None,
    ) -> list[BudgetEntry]:
        """Entries whose start period is exactly ``period``."""
        stmt = select(BudgetEntryModel).where(
            BudgetEntryModel.start_year == period.year,
            BudgetEntryModel.start_month == period.month,
        )
        if status is not None:
            stmt = stmt.where(BudgetEntryModel.status == status.value)
        rows = self.session.scalars(stmt.order_by(*_ORDERING)).all()
        return [row.to_dto() for row in rows]

    def find_history(
        self, customer_id: UUID, article_id: UUID | None = None,
    ) -> list[BudgetEntry]:
        """Every entry for a customer (optionally one article), newest start first."""
        stmt = select(BudgetEntryModel).where(BudgetEntryModel.customer_id == customer_id)
        if article_id is not None:
            stmt = stmt.where(BudgetEntryModel.article_id == article_id)
        stmt = stmt.order_by(
            BudgetEntryModel.start_year.desc(),
            BudgetEntryModel.start_month.desc(),
            BudgetEntryModel.version.desc(),
            BudgetEntryModel.id,
        )
        return [row.to_dto() for row in self.session.scalars(stmt).all()]
