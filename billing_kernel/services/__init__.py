"""Kernel services (flush-only; callers own the transaction)."""

from billing_kernel.services.base import BaseService
from billing_kernel.services.period_lock_service import PeriodLockService

__all__ = ["BaseService", "PeriodLockService"]
