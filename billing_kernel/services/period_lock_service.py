"""
PeriodLockService -- month locks for time entries and budgets.

Responsibility:
    Locks and unlocks calendar months and answers whether a month is
    open for writes.  Time-entry and budget services call
    ``assert_open()`` before every mutation.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - At most one lock row per month; unlocking stamps the row instead of
      deleting it, so the lock history survives.
    - Locking an already locked month is a no-op.

Failure modes:
    - PeriodLockedError from assert_open() on a locked month.
    - PeriodNotLockedError from unlock() when no active lock exists.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import PeriodLockedError, PeriodNotLockedError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.period_lock import PeriodLockModel
from billing_kernel.services.base import BaseService

logger = get_logger("services.period_lock")


class PeriodLockService(BaseService[PeriodLockModel]):
    """
    Service for month locks.

    Guarantees:
        - ``lock`` and ``unlock`` flush within the caller's transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _find(self, period: YearMonth) -> PeriodLockModel | None:
        return self.session.scalars(
            select(PeriodLockModel).where(
                PeriodLockModel.year == period.year,
                PeriodLockModel.month == period.month,
            )
        ).first()

    def is_locked(self, period: YearMonth) -> bool:
        row = self._find(period)
        return row is not None and row.is_active

    def assert_open(self, period: YearMonth) -> None:
        """Raise PeriodLockedError when ``period`` is locked."""
        if self.is_locked(period):
            logger.warning(
                "period_locked_write_rejected",
                extra={"period": period.label},
            )
            raise PeriodLockedError(period.label)

    def lock(self, period: YearMonth, actor_id: UUID) -> None:
        row = self._find(period)
        now = self._clock.now()
        if row is None:
            row = PeriodLockModel(
                year=period.year,
                month=period.month,
                locked_at=now,
                locked_by_id=actor_id,
                created_by_id=actor_id,
            )
            self.session.add(row)
        elif row.is_active:
            return
        else:
            row.locked_at = now
            row.locked_by_id = actor_id
            row.unlocked_at = None
            row.unlocked_by_id = None
            row.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "period_locked",
            extra={"period": period.label, "actor_id": str(actor_id)},
        )

    def unlock(self, period: YearMonth, actor_id: UUID) -> None:
        row = self._find(period)
        if row is None or not row.is_active:
            raise PeriodNotLockedError(period.label)
        row.unlocked_at = self._clock.now()
        row.unlocked_by_id = actor_id
        row.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "period_unlocked",
            extra={"period": period.label, "actor_id": str(actor_id)},
        )
