"""
Module: billing_kernel.models.budget_entry
Responsibility: ORM persistence for budget entries.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - end_year/end_month are both null (ongoing) or both set.
    - ``version`` is 0 while DRAFT and positive once PUBLISHED.
    - Rows are the full history: a revised budget is a new row, the older
      one is closed rather than overwritten.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import BudgetEntry, BudgetStatus


class BudgetEntryModel(TrackedBase):
    """A monthly hours/amount allocation for one customer+article pair."""

    __tablename__ = "budget_entries"

    __table_args__ = (
        Index("idx_budget_status_start", "status", "start_year", "start_month"),
        Index("idx_budget_pair", "customer_id", "article_id"),
        CheckConstraint("start_month BETWEEN 1 AND 12", name="ck_budget_start_month"),
        CheckConstraint(
            "(end_year IS NULL AND end_month IS NULL)"
            " OR (end_year IS NOT NULL AND end_month IS NOT NULL)",
            name="ck_budget_end_pair",
        ),
    )

    customer_id: Mapped[UUID] = mapped_column(ForeignKey("customers.id"), nullable=False)
    article_id: Mapped[UUID] = mapped_column(ForeignKey("articles.id"), nullable=False)

    start_year: Mapped[int] = mapped_column(nullable=False)
    start_month: Mapped[int] = mapped_column(nullable=False)
    end_year: Mapped[int | None] = mapped_column(nullable=True)
    end_month: Mapped[int | None] = mapped_column(nullable=True)

    hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BudgetStatus.DRAFT.value,
    )
    version: Mapped[int] = mapped_column(nullable=False, default=0)

    def to_dto(self) -> BudgetEntry:
        return BudgetEntry(
            id=self.id,
            customer_id=self.customer_id,
            article_id=self.article_id,
            start_year=self.start_year,
            start_month=self.start_month,
            end_year=self.end_year,
            end_month=self.end_month,
            hours=self.hours,
            amount=self.amount,
            status=BudgetStatus(self.status),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, entry: BudgetEntry, created_by_id: UUID) -> "BudgetEntryModel":
        return cls(
            id=entry.id,
            customer_id=entry.customer_id,
            article_id=entry.article_id,
            start_year=entry.start_year,
            start_month=entry.start_month,
            end_year=entry.end_year,
            end_month=entry.end_month,
            hours=entry.hours,
            amount=entry.amount,
            status=entry.status.value,
            version=entry.version,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        end = f"{self.end_year}-{self.end_month:02d}" if self.end_year else "open"
        return (
            f"<BudgetEntryModel {self.start_year}-{self.start_month:02d}..{end}"
            f" [{self.status} v{self.version}]>"
        )
