"""
Budget module result types.
"""

from __future__ import annotations

from dataclasses import dataclass

from billing_kernel.domain.dtos import BudgetEntry
from billing_kernel.domain.periods import YearMonth


@dataclass(frozen=True)
class PublishResult:
    """Outcome of publishing a month's drafts."""

    published: int
    version: int
    closed: int


@dataclass(frozen=True)
class BudgetHistoryGroup:
    """All entries of one customer (and article) starting in ``period``."""

    period: YearMonth
    entries: tuple[BudgetEntry, ...]
