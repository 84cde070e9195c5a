"""
KPI calculations -- pure functions.

All functions are pure: no I/O, no side effects, no database (the
traced ``calculate_kpis`` entrypoint only emits its trace record).  Every
function is total: empty input gives 0, and ratios with a zero (or, for
utilization, non-positive) denominator give 0.

Ratios are quantized to ``places`` decimal places (4 by default); sums
of hours and money are returned exactly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from billing_engines.tracer import traced_engine
from billing_kernel.domain.dtos import ArticleGroupType

ZERO = Decimal("0")
RATIO_PLACES = 4


@dataclass(frozen=True)
class TimeEntryData:
    hours: Decimal
    calculated_price: Decimal
    cost_amount: Decimal
    article_group_type: ArticleGroupType
    running_price: Decimal | None = None


@dataclass(frozen=True)
class BudgetData:
    hours: Decimal = ZERO
    amount: Decimal = ZERO


@dataclass(frozen=True)
class CapacityData:
    total_working_hours: Decimal = ZERO
    absence_hours: Decimal = ZERO


@dataclass(frozen=True)
class KPIResult:
    tb: Decimal
    tg_percent: Decimal
    utilization: Decimal
    total_revenue: Decimal
    total_cost: Decimal
    total_hours: Decimal
    debitable_hours: Decimal
    available_hours: Decimal
    budget_hours: Decimal
    budget_amount: Decimal
    budget_variance_hours: Decimal
    budget_variance_amount: Decimal


class PortfolioStatus(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass(frozen=True)
class PortfolioThresholds:
    """Traffic-light limits: TG% below / deviation above a limit trips it."""

    tg_red: Decimal = Decimal("0.20")
    tg_yellow: Decimal = Decimal("0.40")
    deviation_red: Decimal = Decimal("0.25")
    deviation_yellow: Decimal = Decimal("0.10")


def _ratio(numerator: Decimal, denominator: Decimal, places: int = RATIO_PLACES) -> Decimal:
    if denominator == 0:
        return ZERO
    return (numerator / denominator).quantize(Decimal(1).scaleb(-places))


# Hours and utilization (beläggning)


def calculate_debitable_hours(entries: Iterable[TimeEntryData]) -> Decimal:
    """All hours except INTERNTID."""
    return sum(
        (e.hours for e in entries if e.article_group_type != ArticleGroupType.INTERNTID),
        ZERO,
    )


def calculate_total_hours(entries: Iterable[TimeEntryData]) -> Decimal:
    return sum((e.hours for e in entries), ZERO)


def calculate_available_hours(capacity: CapacityData) -> Decimal:
    return capacity.total_working_hours - capacity.absence_hours


def calculate_utilization(
    entries: Sequence[TimeEntryData],
    capacity: CapacityData,
    places: int = RATIO_PLACES,
) -> Decimal:
    """Debitable hours / available hours; 0 when nothing is available."""
    available = calculate_available_hours(capacity)
    if available <= 0:
        return ZERO
    return _ratio(calculate_debitable_hours(entries), available, places)


def calculate_capacity_hours(
    work_days: int,
    weekly_hours: Decimal,
    work_days_per_week: int = 5,
) -> Decimal:
    """Working hours in a month: work days at the employee's daily rate."""
    if work_days_per_week <= 0:
        raise ValueError("work_days_per_week must be positive")
    return Decimal(work_days) * weekly_hours / Decimal(work_days_per_week)


# Contribution margin (TB) and margin ratio (TG%)


def calculate_total_revenue(entries: Iterable[TimeEntryData]) -> Decimal:
    return sum((e.calculated_price for e in entries), ZERO)


def calculate_total_cost(entries: Iterable[TimeEntryData]) -> Decimal:
    return sum((e.cost_amount for e in entries), ZERO)


def calculate_tb(entries: Sequence[TimeEntryData]) -> Decimal:
    """Täckningsbidrag = revenue - cost (may be negative)."""
    return calculate_total_revenue(entries) - calculate_total_cost(entries)


def calculate_entry_tb(entry: TimeEntryData) -> Decimal:
    return entry.calculated_price - entry.cost_amount


def calculate_tg_percent(
    entries: Sequence[TimeEntryData],
    places: int = RATIO_PLACES,
) -> Decimal:
    """Täckningsgrad = TB / revenue, as a fraction."""
    return _ratio(calculate_tb(entries), calculate_total_revenue(entries), places)


def calculate_tg_percent_for_group(
    groups: Mapping[str, Sequence[TimeEntryData]],
    places: int = RATIO_PLACES,
) -> dict[str, Decimal]:
    return {key: calculate_tg_percent(entries, places) for key, entries in groups.items()}


# Budget variance


def calculate_budget_variance_hours(
    entries: Sequence[TimeEntryData],
    budget: BudgetData,
) -> Decimal:
    """Positive = over budget."""
    return calculate_total_hours(entries) - budget.hours


def calculate_budget_variance_amount(
    entries: Sequence[TimeEntryData],
    budget: BudgetData,
) -> Decimal:
    return calculate_total_revenue(entries) - budget.amount


def calculate_budget_deviation_percent(
    actual: Decimal,
    budget: Decimal,
    places: int = RATIO_PLACES,
) -> Decimal:
    """(actual - budget) / budget; 0.1 means 10% over."""
    return _ratio(actual - budget, budget, places)


def calculate_could_have_billed_diff(entries: Iterable[TimeEntryData]) -> Decimal:
    """Σ(calculated_price - running_price); entries without a running price add 0."""
    total = ZERO
    for e in entries:
        running = e.running_price if e.running_price is not None else e.calculated_price
        total += e.calculated_price - running
    return total


# Composite


@traced_engine("kpi", "1.0", fingerprint_fields=("capacity", "budget", "places"))
def calculate_kpis(
    entries: Sequence[TimeEntryData],
    capacity: CapacityData,
    budget: BudgetData,
    places: int = RATIO_PLACES,
) -> KPIResult:
    revenue = calculate_total_revenue(entries)
    cost = calculate_total_cost(entries)
    return KPIResult(
        tb=revenue - cost,
        tg_percent=calculate_tg_percent(entries, places),
        utilization=calculate_utilization(entries, capacity, places),
        total_revenue=revenue,
        total_cost=cost,
        total_hours=calculate_total_hours(entries),
        debitable_hours=calculate_debitable_hours(entries),
        available_hours=calculate_available_hours(capacity),
        budget_hours=budget.hours,
        budget_amount=budget.amount,
        budget_variance_hours=calculate_budget_variance_hours(entries, budget),
        budget_variance_amount=calculate_budget_variance_amount(entries, budget),
    )


def portfolio_status(
    tg_percent: Decimal,
    budget_deviation: Decimal,
    thresholds: PortfolioThresholds | None = None,
) -> PortfolioStatus:
    t = thresholds or PortfolioThresholds()
    if tg_percent < t.tg_red or budget_deviation > t.deviation_red:
        return PortfolioStatus.RED
    if tg_percent < t.tg_yellow or budget_deviation > t.deviation_yellow:
        return PortfolioStatus.YELLOW
    return PortfolioStatus.GREEN


# Fixed price (fastpris)


def calculate_fixed_price_tb(budget_amount: Decimal, actual_cost: Decimal) -> Decimal:
    """TB of a fixed-price engagement: the agreed amount less the actual cost."""
    return budget_amount - actual_cost


def calculate_fixed_price_tg_percent(
    budget_amount: Decimal,
    actual_cost: Decimal,
    places: int = RATIO_PLACES,
) -> Decimal:
    return _ratio(calculate_fixed_price_tb(budget_amount, actual_cost), budget_amount, places)
