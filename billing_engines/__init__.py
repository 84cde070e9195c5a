"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: budget effectiveness, budget range aggregation,
    pricing rule resolution, price calculation and KPI formulas.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.domain and billing_kernel.logging_config
    (and sibling engine modules).  MUST NOT import billing_modules.

Invariants enforced:
    - Purity: engines never read a clock.  Every date is an explicit
      parameter.
    - Decimal-only arithmetic for hours and money.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Public engine entrypoints are wrapped by ``@traced_engine`` and emit
    BILLING_ENGINE_TRACE records.
"""

from billing_engines.budget_aggregation import (
    BudgetTotal,
    aggregate_budget_range,
    aggregate_budget_range_fetched,
)
from billing_engines.budget_effectiveness import (
    deduplicate_budget_entries,
    evaluate_effective_budgets,
    is_effective,
    select_effective,
)
from billing_engines.kpi import (
    BudgetData,
    CapacityData,
    KPIResult,
    PortfolioStatus,
    PortfolioThresholds,
    TimeEntryData,
    calculate_available_hours,
    calculate_budget_deviation_percent,
    calculate_budget_variance_amount,
    calculate_budget_variance_hours,
    calculate_capacity_hours,
    calculate_could_have_billed_diff,
    calculate_debitable_hours,
    calculate_entry_tb,
    calculate_fixed_price_tb,
    calculate_fixed_price_tg_percent,
    calculate_kpis,
    calculate_tb,
    calculate_tg_percent,
    calculate_tg_percent_for_group,
    calculate_total_cost,
    calculate_total_hours,
    calculate_total_revenue,
    calculate_utilization,
    portfolio_status,
)
from billing_engines.price_calculator import (
    PriceCalculation,
    calculate_price,
    effective_cost_per_hour,
)
from billing_engines.pricing import (
    TIER_ORDER,
    candidate_rules,
    resolve_pricing_rule,
)

__all__ = [
    "BudgetData",
    "BudgetTotal",
    "CapacityData",
    "KPIResult",
    "PortfolioStatus",
    "PortfolioThresholds",
    "PriceCalculation",
    "TIER_ORDER",
    "TimeEntryData",
    "aggregate_budget_range",
    "aggregate_budget_range_fetched",
    "calculate_available_hours",
    "calculate_budget_deviation_percent",
    "calculate_budget_variance_amount",
    "calculate_budget_variance_hours",
    "calculate_capacity_hours",
    "calculate_could_have_billed_diff",
    "calculate_debitable_hours",
    "calculate_entry_tb",
    "calculate_fixed_price_tb",
    "calculate_fixed_price_tg_percent",
    "calculate_kpis",
    "calculate_price",
    "calculate_tb",
    "calculate_tg_percent",
    "calculate_tg_percent_for_group",
    "calculate_total_cost",
    "calculate_total_hours",
    "calculate_total_revenue",
    "calculate_utilization",
    "candidate_rules",
    "deduplicate_budget_entries",
    "effective_cost_per_hour",
    "evaluate_effective_budgets",
    "is_effective",
    "portfolio_status",
    "resolve_pricing_rule",
    "select_effective",
]
