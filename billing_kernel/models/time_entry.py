"""
Module: billing_kernel.models.time_entry
Responsibility: ORM persistence for time entries and their derived pricing.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - cost_amount, calculated_price and pricing_rule_id are written only by
      the time-entry pipeline (resolver + calculator); nothing else in the
      code base assigns them.
    - 0 <= hours <= 24 (database check).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import TimeEntry


class TimeEntryModel(TrackedBase):
    """One worked-hours record for (employee, customer, article, date)."""

    __tablename__ = "time_entries"

    __table_args__ = (
        Index("idx_time_entry_employee_date", "employee_id", "entry_date"),
        Index("idx_time_entry_customer_date", "customer_id", "entry_date"),
        CheckConstraint("hours >= 0 AND hours <= 24", name="ck_time_entry_hours"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    customer_id: Mapped[UUID] = mapped_column(ForeignKey("customers.id"), nullable=False)
    article_id: Mapped[UUID] = mapped_column(ForeignKey("articles.id"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)

    cost_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    calculated_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    pricing_rule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pricing_rules.id"), nullable=True,
    )
    running_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_text: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def to_dto(self) -> TimeEntry:
        return TimeEntry(
            id=self.id,
            employee_id=self.employee_id,
            customer_id=self.customer_id,
            article_id=self.article_id,
            entry_date=self.entry_date,
            hours=self.hours,
            cost_amount=self.cost_amount,
            calculated_price=self.calculated_price,
            pricing_rule_id=self.pricing_rule_id,
            running_price=self.running_price,
            comment=self.comment,
            invoice_text=self.invoice_text,
        )

    def __repr__(self) -> str:
        return f"<TimeEntryModel {self.entry_date} {self.hours}h>"
