"""
Module: billing_kernel.selectors.time_entry_selector
Responsibility: Read-only time entry queries, including the joined view
    (entry + article classification) that KPI reporting consumes.
Architecture position: Kernel > Selectors.

Failure modes:
    - TimeEntryNotFoundError from get_entry() for an unknown id.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.dtos import ArticleGroupType, TimeEntry
from billing_kernel.exceptions import TimeEntryNotFoundError
from billing_kernel.models.article import ArticleGroupModel, ArticleModel
from billing_kernel.models.time_entry import TimeEntryModel
from billing_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ClassifiedTimeEntry:
    """A time entry together with its article's KPI classification."""

    entry: TimeEntry
    article_group_type: ArticleGroupType
    included_in_fixed_price: bool


class TimeEntrySelector(BaseSelector[TimeEntryModel]):
    """Selector for time entries."""

    def get_entry(self, entry_id: UUID) -> TimeEntry:
        row = self.session.get(TimeEntryModel, entry_id)
        if row is None:
            raise TimeEntryNotFoundError(str(entry_id))
        return row.to_dto()

    def find_entries(
        self,
        start_date: date,
        end_date: date,
        employee_id: UUID | None = None,
        customer_ids: Iterable[UUID] | None = None,
    ) -> list[TimeEntry]:
        """Entries dated within [start_date, end_date]."""
        stmt = select(TimeEntryModel).where(
            TimeEntryModel.entry_date >= start_date,
            TimeEntryModel.entry_date <= end_date,
        )
        if employee_id is not None:
            stmt = stmt.where(TimeEntryModel.employee_id == employee_id)
        if customer_ids is not None:
            stmt = stmt.where(TimeEntryModel.customer_id.in_(list(customer_ids)))
        stmt = stmt.order_by(TimeEntryModel.entry_date, TimeEntryModel.id)
        return [row.to_dto() for row in self.session.scalars(stmt).all()]

    def find_classified_entries(
        self,
        start_date: date,
        end_date: date,
        employee_ids: Iterable[UUID] | None = None,
        customer_ids: Iterable[UUID] | None = None,
    ) -> list[ClassifiedTimeEntry]:
        """Entries within [start_date, end_date] joined to their article group."""
        stmt = (
            select(
                TimeEntryModel,
                ArticleGroupModel.group_type,
                ArticleModel.included_in_fixed_price,
            )
            .join(ArticleModel, TimeEntryModel.article_id == ArticleModel.id)
            .join(ArticleGroupModel, ArticleModel.article_group_id == ArticleGroupModel.id)
            .where(
                TimeEntryModel.entry_date >= start_date,
                TimeEntryModel.entry_date <= end_date,
            )
        )
        if employee_ids is not None:
            stmt = stmt.where(TimeEntryModel.employee_id.in_(list(employee_ids)))
        if customer_ids is not None:
            stmt = stmt.where(TimeEntryModel.customer_id.in_(list(customer_ids)))
        stmt = stmt.order_by(TimeEntryModel.entry_date, TimeEntryModel.id)
        return [
            ClassifiedTimeEntry(
                entry=row.to_dto(),
                article_group_type=ArticleGroupType(group_type),
                included_in_fixed_price=included,
            )
            for row, group_type, included in self.session.execute(stmt).all()
        ]
