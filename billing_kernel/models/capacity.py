"""
Module: billing_kernel.models.capacity
Responsibility: ORM persistence for the inputs to capacity math: employee
    absences and the working-day calendar.
Architecture position: Kernel > Models.  May import from db/ only.

Calendar rows are seeded outside this package; when a month has no rows,
capacity falls back to the configured default number of work days.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base, TrackedBase


class AbsenceModel(TrackedBase):
    """Hours an employee is away on a given day (vacation, sick leave...)."""

    __tablename__ = "absences"

    __table_args__ = (
        Index("idx_absence_employee_date", "employee_id", "absence_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    absence_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String(50), nullable=True)


class CalendarDayModel(Base):
    """One calendar day with weekend/holiday flags."""

    __tablename__ = "calendar_days"

    __table_args__ = (
        UniqueConstraint("day", name="uq_calendar_day"),
    )

    day: Mapped[date] = mapped_column(Date, nullable=False)
    is_weekend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    holiday_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def is_work_day(self) -> bool:
        return not (self.is_weekend or self.is_holiday)
