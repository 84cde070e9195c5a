"""
billing_engines.budget_effectiveness -- Which budget entries are in force for a month.

Responsibility:
    Decide, for a target month, which PUBLISHED budget entries are
    effective, and collapse several effective entries for the same
    customer+article pair down to one.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Works on budget rows
    already fetched by the caller.

Invariants enforced:
    - An entry is effective for (Y, M) iff it is PUBLISHED, starts on or
      before (Y, M) and is open-ended or ends on or after (Y, M).
    - At most one entry per customer+article survives deduplication.  The
      survivor has the greatest (start_year, start_month); ties are broken
      by the greatest version, then the greatest id string, so the result
      never depends on input order.

Failure modes:
    - None.  An empty effective set is a valid result.
"""

from __future__ import annotations

from collections.abc import Iterable

from billing_engines.tracer import traced_engine
from billing_kernel.domain.dtos import BudgetEntry, BudgetFilter, BudgetStatus
from billing_kernel.domain.periods import YearMonth
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.budget_effectiveness")


def is_effective(entry: BudgetEntry, period: YearMonth) -> bool:
    """True when ``entry`` is a PUBLISHED entry whose window covers ``period``."""
    if entry.status != BudgetStatus.PUBLISHED:
        return False
    starts_in_time = entry.start_year < period.year or (
        entry.start_year == period.year and entry.start_month <= period.month
    )
    if not starts_in_time:
        return False
    if entry.end_year is None:
        return True
    return entry.end_year > period.year or (
        entry.end_year == period.year and entry.end_month >= period.month
    )


def _precedence(entry: BudgetEntry) -> tuple[int, int, int, str]:
    return (entry.start_year, entry.start_month, entry.version, str(entry.id))


def deduplicate_budget_entries(entries: Iterable[BudgetEntry]) -> list[BudgetEntry]:
    """
    Keep one entry per customer+article pair.

    The most recently started entry wins; see the module docstring for
    the tie-break.  Output order follows the first appearance of each pair.
    """
    winners: dict[str, BudgetEntry] = {}
    for entry in entries:
        current = winners.get(entry.key)
        if current is None or _precedence(entry) > _precedence(current):
            winners[entry.key] = entry
    return list(winners.values())


@traced_engine(
    "budget_effectiveness", "1.0",
    fingerprint_fields=("period", "budget_filter"),
)
def evaluate_effective_budgets(
    entries: Iterable[BudgetEntry],
    period: YearMonth,
    budget_filter: BudgetFilter | None = None,
) -> list[BudgetEntry]:
    """
    Effective, deduplicated budget entries for ``period``.

    Args:
        entries: Candidate rows (any status; non-PUBLISHED rows are ignored).
        period: Target month.
        budget_filter: Optional extra restriction by customer(s)/article.
            Its ``status`` field is irrelevant here: only PUBLISHED rows
            can be effective.

    Returns:
        One entry per customer+article pair.
    """
    effective = select_effective(entries, period, budget_filter)
    logger.debug(
        "effective_budgets_evaluated",
        extra={"period": period.label, "effective_count": len(effective)},
    )
    return effective


def select_effective(
    entries: Iterable[BudgetEntry],
    period: YearMonth,
    budget_filter: BudgetFilter | None = None,
) -> list[BudgetEntry]:
    """Untraced form of :func:`evaluate_effective_budgets`; the range aggregator calls it once per month."""
    return deduplicate_budget_entries(
        entry
        for entry in entries
        if is_effective(entry, period)
        and (budget_filter is None or _matches_keys(budget_filter, entry))
    )


def _matches_keys(budget_filter: BudgetFilter, entry: BudgetEntry) -> bool:
    if budget_filter.customer_id is not None and entry.customer_id != budget_filter.customer_id:
        return False
    if budget_filter.customer_ids is not None and entry.customer_id not in budget_filter.customer_ids:
        return False
    if budget_filter.article_id is not None and entry.article_id != budget_filter.article_id:
        return False
    return True
