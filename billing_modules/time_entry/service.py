"""
Time Entry Module Service (``billing_modules.time_entry.service``).

Responsibility
--------------
Saving, repricing, deleting and copying time entries.  Every save runs the
pricing pipeline: effective cost per hour, pricing rule resolution and
price calculation.

Architecture position
---------------------
**Modules layer**.  The derived fields ``cost_amount``,
``calculated_price`` and ``pricing_rule_id`` are assigned in exactly one
place, ``_apply_pricing``; nothing else in the code base writes them.

Invariants enforced
-------------------
* 0 <= hours <= 24.
* No write lands in a locked month: the entry's month (and, when editing,
  its previous month) must be open.
* Copying a week re-prices each copy on its new date rather than
  duplicating the old derived values.  The user-entered running price,
  comment and invoice text are carried over unchanged.
* Mutating methods commit on success and roll back on exception.

Failure modes
-------------
* ``InvalidHoursError``, ``PeriodLockedError``.
* ``EmployeeNotFoundError`` / ``CustomerNotFoundError`` /
  ``ArticleNotFoundError`` / ``TimeEntryNotFoundError``.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from billing_config import BillingConfig, get_active_config
from billing_engines.price_calculator import (
    PriceCalculation,
    calculate_price,
    effective_cost_per_hour,
)
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import TimeEntry
from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import InvalidHoursError, TimeEntryNotFoundError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.models.time_entry import TimeEntryModel
from billing_kernel.selectors.reference_selector import ReferenceSelector
from billing_kernel.selectors.time_entry_selector import TimeEntrySelector
from billing_kernel.services.period_lock_service import PeriodLockService
from billing_modules.pricing.service import PricingService

logger = get_logger("modules.time_entry.service")

MAX_HOURS_PER_DAY = Decimal("24")


class TimeEntryService:
    """
    Orchestrates time entry writes through the pricing pipeline.

    Contract
    --------
    * ``upsert`` and ``reprice`` always recompute the derived fields.
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
        self._entries = TimeEntrySelector(session)
        self._references = ReferenceSelector(session)
        self._locks = PeriodLockService(session, self._clock)
        self._pricing = PricingService(session, self._clock)

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _calculate(
        self,
        employee_id: UUID,
        customer_id: UUID,
        article_id: UUID,
        entry_date: date,
        hours: Decimal,
    ) -> PriceCalculation:
        employee = self._references.find_employee(employee_id)
        self._references.find_customer(customer_id)
        article = self._references.find_article(article_id)

        record = self._references.find_employee_cost_history(employee_id, entry_date)
        cost_per_hour = effective_cost_per_hour(
            employee, [record] if record is not None else [], entry_date,
        )
        rule = self._pricing.resolve_for_article(customer_id, article, entry_date)
        return calculate_price(
            hours, rule, employee, cost_per_hour,
            money_places=self._config.money_places,
        )

    @staticmethod
    def _apply_pricing(row: TimeEntryModel, calculation: PriceCalculation) -> None:
        row.cost_amount = calculation.cost_amount
        row.calculated_price = calculation.calculated_price
        row.pricing_rule_id = calculation.pricing_rule_id

    @staticmethod
    def _validate_hours(hours: Decimal) -> None:
        if hours < 0 or hours > MAX_HOURS_PER_DAY:
            raise InvalidHoursError(str(hours))

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert(
        self,
        employee_id: UUID,
        customer_id: UUID,
        article_id: UUID,
        entry_date: date,
        hours: Decimal,
        actor_id: UUID,
        entry_id: UUID | None = None,
        comment: str | None = None,
        invoice_text: str | None = None,
        running_price: Decimal | None = None,
    ) -> TimeEntry:
        """Create or edit a time entry and price it."""
        self._validate_hours(hours)

        with LogContext.bind(
            actor_id=actor_id,
            employee_id=employee_id,
            customer_id=customer_id,
            period=YearMonth.from_date(entry_date),
        ):
            try:
                self._locks.assert_open(YearMonth.from_date(entry_date))

                row: TimeEntryModel | None = None
                if entry_id is not None:
                    row = self._session.get(TimeEntryModel, entry_id)
                    if row is None:
                        raise TimeEntryNotFoundError(str(entry_id))
                    self._locks.assert_open(YearMonth.from_date(row.entry_date))

                calculation = self._calculate(
                    employee_id, customer_id, article_id, entry_date, hours,
                )

                if row is None:
                    row = TimeEntryModel(created_by_id=actor_id)
                    self._session.add(row)
                else:
                    row.updated_by_id = actor_id
                row.employee_id = employee_id
                row.customer_id = customer_id
                row.article_id = article_id
                row.entry_date = entry_date
                row.hours = hours
                row.comment = comment
                row.invoice_text = invoice_text
                row.running_price = running_price
                self._apply_pricing(row, calculation)

                self._session.flush()
                entry = row.to_dto()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "time_entry_saved",
                extra={
                    "entry_id": str(entry.id),
                    "entry_date": entry_date,
                    "hours": str(hours),
                    "cost_amount": str(entry.cost_amount),
                    "calculated_price": str(entry.calculated_price),
                    "pricing_rule_id": (
                        str(entry.pricing_rule_id) if entry.pricing_rule_id else None
                    ),
                },
            )
        return entry

    def reprice(self, entry_id: UUID, actor_id: UUID) -> TimeEntry:
        """Recompute the derived pricing fields of an existing entry."""
        with LogContext.bind(actor_id=actor_id):
            return self._reprice(entry_id, actor_id)

    def _reprice(self, entry_id: UUID, actor_id: UUID) -> TimeEntry:
        try:
            row = self._session.get(TimeEntryModel, entry_id)
            if row is None:
                raise TimeEntryNotFoundError(str(entry_id))
            self._locks.assert_open(YearMonth.from_date(row.entry_date))
            previous_price = row.calculated_price
            calculation = self._calculate(
                row.employee_id, row.customer_id, row.article_id, row.entry_date, row.hours,
            )
            self._apply_pricing(row, calculation)
            row.updated_by_id = actor_id
            self._session.flush()
            entry = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "time_entry_repriced",
            extra={
                "entry_id": str(entry_id),
                "previous_price": str(previous_price),
                "calculated_price": str(entry.calculated_price),
            },
        )
        return entry

    def delete(self, entry_id: UUID) -> None:
        try:
            row = self._session.get(TimeEntryModel, entry_id)
            if row is None:
                raise TimeEntryNotFoundError(str(entry_id))
            self._locks.assert_open(YearMonth.from_date(row.entry_date))
            self._session.delete(row)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("time_entry_deleted", extra={"entry_id": str(entry_id)})

    def copy_previous_week(
        self,
        employee_id: UUID,
        target_week_start: date,
        actor_id: UUID,
    ) -> int:
        """
        Copy last week's entries seven days forward, re-pricing each copy.

        Returns:
            Number of entries created.
        """
        with LogContext.bind(actor_id=actor_id, employee_id=employee_id):
            return self._copy_previous_week(employee_id, target_week_start, actor_id)

    def _copy_previous_week(
        self, employee_id: UUID, target_week_start: date, actor_id: UUID,
    ) -> int:
        source_start = target_week_start - timedelta(days=7)
        source_end = source_start + timedelta(days=6)
        try:
            source = self._entries.find_entries(source_start, source_end, employee_id)
            for entry in source:
                new_date = entry.entry_date + timedelta(days=7)
                self._locks.assert_open(YearMonth.from_date(new_date))
                calculation = self._calculate(
                    entry.employee_id, entry.customer_id, entry.article_id,
                    new_date, entry.hours,
                )
                row = TimeEntryModel(
                    employee_id=entry.employee_id,
                    customer_id=entry.customer_id,
                    article_id=entry.article_id,
                    entry_date=new_date,
                    hours=entry.hours,
                    comment=entry.comment,
                    invoice_text=entry.invoice_text,
                    running_price=entry.running_price,
                    created_by_id=actor_id,
                )
                self._apply_pricing(row, calculation)
                self._session.add(row)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "time_entries_copied",
            extra={
                "source_week_start": source_start,
                "target_week_start": target_week_start,
                "copied_count": len(source),
            },
        )
        return len(source)

    # =========================================================================
    # Reads
    # =========================================================================

    def week(self, employee_id: UUID, week_start: date) -> list[TimeEntry]:
        return self._entries.find_entries(
            week_start, week_start + timedelta(days=6), employee_id,
        )

    def day(self, employee_id: UUID, on_date: date) -> list[TimeEntry]:
        return self._entries.find_entries(on_date, on_date, employee_id)
