"""
billing_engines.budget_aggregation -- Budget totals across a month range.

Responsibility:
    Sum the effective budget hours and amount for every customer+article
    pair across each calendar month of an inclusive range.  This is the
    "budget for the range" figure used by every multi-month report.

Architecture position:
    Engines -- pure calculation layer.  ``aggregate_budget_range`` works on
    an in-memory snapshot; ``aggregate_budget_range_fetched`` accepts a
    per-month fetch callable and may fan the fetches out over a thread
    pool, since months are independent.

Invariants enforced:
    - Monthly re-summation: an entry effective in N months of the range
      contributes its hours/amount N times.  Totals are therefore linear in
      the range: [Jan, Mar] == [Jan] + [Feb] + [Mar] per pair.
    - Months are merged in calendar order regardless of completion order,
      so results do not depend on worker scheduling.

Failure modes:
    - An inverted range (start after end) yields an empty mapping.
    - Exceptions raised by a fetch callable propagate to the caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from billing_engines.budget_effectiveness import select_effective
from billing_engines.tracer import traced_engine
from billing_kernel.domain.dtos import BudgetEntry, BudgetFilter, pair_key
from billing_kernel.domain.periods import YearMonth, month_range
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.budget_aggregation")

BudgetFetch = Callable[[YearMonth], Iterable[BudgetEntry]]


@dataclass(frozen=True)
class BudgetTotal:
    """Summed budget for one customer+article pair over a range."""

    customer_id: UUID
    article_id: UUID
    total_hours: Decimal
    total_amount: Decimal

    @property
    def key(self) -> str:
        return pair_key(self.customer_id, self.article_id)


def _accumulate(
    monthly: Iterable[Sequence[BudgetEntry]],
) -> dict[str, BudgetTotal]:
    hours: dict[str, Decimal] = {}
    amounts: dict[str, Decimal] = {}
    pairs: dict[str, tuple[UUID, UUID]] = {}
    for effective in monthly:
        for entry in effective:
            key = entry.key
            pairs.setdefault(key, (entry.customer_id, entry.article_id))
            hours[key] = hours.get(key, Decimal("0")) + entry.hours
            amounts[key] = amounts.get(key, Decimal("0")) + entry.amount
    return {
        key: BudgetTotal(
            customer_id=customer_id,
            article_id=article_id,
            total_hours=hours[key],
            total_amount=amounts[key],
        )
        for key, (customer_id, article_id) in pairs.items()
    }


def _map_months(
    months: list[YearMonth],
    evaluate: Callable[[YearMonth], Sequence[BudgetEntry]],
    max_workers: int | None,
) -> list[Sequence[BudgetEntry]]:
    if max_workers is None or max_workers <= 1 or len(months) <= 1:
        return [evaluate(month) for month in months]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # Executor.map yields in submission order.
        return list(pool.map(evaluate, months))


@traced_engine(
    "budget_aggregation", "1.0",
    fingerprint_fields=("start", "end", "budget_filter"),
)
def aggregate_budget_range(
    entries: Iterable[BudgetEntry],
    start: YearMonth,
    end: YearMonth,
    budget_filter: BudgetFilter | None = None,
    max_workers: int | None = None,
) -> dict[str, BudgetTotal]:
    """
    Aggregate budget totals over [start, end] from one snapshot of rows.

    Args:
        entries: Snapshot of budget rows; must contain every PUBLISHED row
            that could be effective in any month of the range.
        start: First month (inclusive).
        end: Last month (inclusive).
        budget_filter: Optional restriction by customer(s)/article.
        max_workers: Evaluate months on a thread pool of this size.

    Returns:
        Mapping ``"customerId:articleId" -> BudgetTotal``.
    """
    t0 = time.monotonic()
    snapshot = list(entries)
    months = list(month_range(start, end))
    monthly = _map_months(
        months,
        lambda month: select_effective(snapshot, month, budget_filter),
        max_workers,
    )
    totals = _accumulate(monthly)

    logger.info(
        "budget_range_aggregated",
        extra={
            "start": start.label,
            "end": end.label,
            "month_count": len(months),
            "snapshot_size": len(snapshot),
            "pair_count": len(totals),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        },
    )
    return totals


@traced_engine(
    "budget_aggregation", "1.0",
    fingerprint_fields=("start", "end", "budget_filter"),
)
def aggregate_budget_range_fetched(
    fetch: BudgetFetch,
    start: YearMonth,
    end: YearMonth,
    budget_filter: BudgetFilter | None = None,
    max_workers: int | None = None,
) -> dict[str, BudgetTotal]:
    """
    Aggregate budget totals with one fetch per month.

    ``fetch(month)`` returns the candidate rows for that month.  With
    ``max_workers`` the fetches run concurrently; each callable invocation
    must therefore be safe to run on its own thread.
    """
    months = list(month_range(start, end))
    monthly = _map_months(
        months,
        lambda month: select_effective(fetch(month), month, budget_filter),
        max_workers,
    )
    totals = _accumulate(monthly)
    logger.info(
        "budget_range_aggregated",
        extra={
            "start": start.label,
            "end": end.label,
            "month_count": len(months),
            "pair_count": len(totals),
            "fan_out": bool(max_workers and max_workers > 1),
        },
    )
    return totals
