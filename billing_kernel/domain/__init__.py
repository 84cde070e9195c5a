"""
Pure domain layer.

Frozen DTOs, the year/month period value object, pricing rule scope
types, and the injectable clock.  No dependencies on the ORM, the
database or I/O.
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.dtos import (
    Article,
    ArticleGroup,
    ArticleGroupType,
    BudgetEntry,
    BudgetFilter,
    BudgetStatus,
    Customer,
    CustomerType,
    Employee,
    EmployeeCostRecord,
    TimeEntry,
    pair_key,
)
from billing_kernel.domain.periods import YearMonth, month_range
from billing_kernel.domain.pricing import (
    ArticleGroupScope,
    ArticleScope,
    CustomerArticleScope,
    CustomerScope,
    GlobalScope,
    PricingRule,
    PricingScope,
    PricingScopeType,
    build_scope,
    scope_keys,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Periods
    "YearMonth",
    "month_range",
    # DTOs
    "Article",
    "ArticleGroup",
    "ArticleGroupType",
    "BudgetEntry",
    "BudgetFilter",
    "BudgetStatus",
    "Customer",
    "CustomerType",
    "Employee",
    "EmployeeCostRecord",
    "TimeEntry",
    "pair_key",
    # Pricing
    "PricingRule",
    "PricingScope",
    "PricingScopeType",
    "GlobalScope",
    "ArticleGroupScope",
    "ArticleScope",
    "CustomerScope",
    "CustomerArticleScope",
    "build_scope",
    "scope_keys",
]
