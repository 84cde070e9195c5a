"""
Module: billing_kernel.selectors.capacity_selector
Responsibility: Read-only queries feeding capacity math: working days per
    month from the calendar and absence hours per employee.
Architecture position: Kernel > Selectors.

Failure modes:
    - count_work_days() returns None when the calendar holds no rows for
      the month; the caller decides the fallback.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from billing_kernel.domain.periods import YearMonth
from billing_kernel.models.capacity import AbsenceModel, CalendarDayModel
from billing_kernel.selectors.base import BaseSelector


class CapacitySelector(BaseSelector[CalendarDayModel]):
    """Selector for calendar days and absences."""

    def count_work_days(self, period: YearMonth) -> int | None:
        """Non-weekend, non-holiday days in ``period``; None without calendar data."""
        in_month = (
            CalendarDayModel.day >= period.first_day,
            CalendarDayModel.day <= period.last_day,
        )
        total = self.session.scalar(select(func.count(CalendarDayModel.id)).where(*in_month))
        if not total:
            return None
        return self.session.scalar(
            select(func.count(CalendarDayModel.id)).where(
                *in_month,
                CalendarDayModel.is_weekend.is_(False),
                CalendarDayModel.is_holiday.is_(False),
            )
        )

    def absence_hours(
        self,
        period: YearMonth,
        employee_ids: Iterable[UUID] | None = None,
    ) -> Decimal:
        """Total absence hours within ``period``."""
        stmt = select(func.coalesce(func.sum(AbsenceModel.hours), 0)).where(
            AbsenceModel.absence_date >= period.first_day,
            AbsenceModel.absence_date <= period.last_day,
        )
        if employee_ids is not None:
            stmt = stmt.where(AbsenceModel.employee_id.in_(list(employee_ids)))
        return Decimal(str(self.session.scalar(stmt)))
