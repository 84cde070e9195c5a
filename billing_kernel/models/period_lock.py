"""
Module: billing_kernel.models.period_lock
Responsibility: ORM persistence for month locks.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one lock row per (year, month).  Unlocking keeps the row and
      stamps unlocked_at; re-locking clears the stamp.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase


class PeriodLockModel(TrackedBase):
    """A lock on one calendar month."""

    __tablename__ = "period_locks"

    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_period_lock_month"),
    )

    year: Mapped[int] = mapped_column(nullable=False)
    month: Mapped[int] = mapped_column(nullable=False)
    locked_at: Mapped[datetime] = mapped_column(nullable=False)
    locked_by_id: Mapped[UUID] = mapped_column(nullable=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    unlocked_by_id: Mapped[UUID | None] = mapped_column(nullable=True)

    @property
    def is_active(self) -> bool:
        return self.unlocked_at is None

    def __repr__(self) -> str:
        state = "locked" if self.is_active else "unlocked"
        return f"<PeriodLockModel {self.year}-{self.month:02d} {state}>"
