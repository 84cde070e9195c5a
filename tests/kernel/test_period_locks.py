"""Tests for PeriodLockService."""

import pytest

from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import PeriodLockedError, PeriodNotLockedError
from billing_kernel.models import PeriodLockModel
from billing_kernel.services.period_lock_service import PeriodLockService

MAR = YearMonth(2024, 3)


@pytest.fixture
def locks(session, clock):
    return PeriodLockService(session, clock)


class TestPeriodLocks:

    def test_open_by_default(self, locks):
        assert not locks.is_locked(MAR)
        locks.assert_open(MAR)

    def test_lock(self, locks, test_actor_id):
        locks.lock(MAR, test_actor_id)

        assert locks.is_locked(MAR)
        with pytest.raises(PeriodLockedError):
            locks.assert_open(MAR)

    def test_lock_twice_is_noop(self, session, locks, test_actor_id):
        locks.lock(MAR, test_actor_id)
        locks.lock(MAR, test_actor_id)

        assert session.query(PeriodLockModel).count() == 1

    def test_unlock_keeps_row(self, session, locks, clock, test_actor_id):
        locks.lock(MAR, test_actor_id)

        locks.unlock(MAR, test_actor_id)

        assert not locks.is_locked(MAR)
        [row] = session.query(PeriodLockModel).all()
        assert row.unlocked_by_id == test_actor_id

    def test_relock_after_unlock(self, locks, test_actor_id):
        locks.lock(MAR, test_actor_id)
        locks.unlock(MAR, test_actor_id)

        locks.lock(MAR, test_actor_id)

        assert locks.is_locked(MAR)

    def test_unlock_when_not_locked(self, locks, test_actor_id):
        with pytest.raises(PeriodNotLockedError):
            locks.unlock(MAR, test_actor_id)

    def test_other_months_unaffected(self, locks, test_actor_id):
        locks.lock(MAR, test_actor_id)

        assert not locks.is_locked(MAR.next())
        assert not locks.is_locked(MAR.previous())
