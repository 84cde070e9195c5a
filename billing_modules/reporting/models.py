"""
Reporting module result types.

All amounts are Decimal; ratios are fractions (0.25 == 25%).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from billing_engines.kpi import KPIResult, PortfolioStatus
from billing_kernel.domain.dtos import Customer, Employee
from billing_kernel.domain.periods import YearMonth


class FixedPriceArticleFilter(str, Enum):
    """Which articles the fixed-price analysis covers."""

    FIXED_PRICE = "FIXED_PRICE"  # articles included in the fixed price
    TILLAGG = "TILLAGG"  # add-on articles
    ALL = "ALL"


@dataclass(frozen=True)
class DashboardReport:
    period: YearMonth
    kpis: KPIResult
    work_days: int
    capacity_hours: Decimal
    absence_hours: Decimal
    employee_count: int
    could_have_billed_diff: Decimal


@dataclass(frozen=True)
class ArticleReportRow:
    """Actuals and budget for one article of a customer."""

    article_id: UUID
    article_code: str
    article_name: str
    hours: Decimal
    revenue: Decimal
    cost: Decimal
    budget_hours: Decimal
    budget_amount: Decimal

    @property
    def tb(self) -> Decimal:
        return self.revenue - self.cost


@dataclass(frozen=True)
class CustomerReport:
    customer: Customer
    start: YearMonth
    end: YearMonth
    articles: tuple[ArticleReportRow, ...]
    hours: Decimal
    revenue: Decimal
    cost: Decimal
    tb: Decimal
    tg_percent: Decimal
    budget_hours: Decimal
    budget_amount: Decimal
    could_have_billed_diff: Decimal


@dataclass(frozen=True)
class PortfolioRow:
    customer: Customer
    revenue: Decimal
    cost: Decimal
    tb: Decimal
    tg_percent: Decimal
    hours: Decimal
    budget_hours: Decimal
    budget_deviation: Decimal
    status: PortfolioStatus


@dataclass(frozen=True)
class EmployeeReport:
    employee: Employee
    period: YearMonth
    total_hours: Decimal
    debitable_hours: Decimal
    non_debitable_hours: Decimal
    absence_hours: Decimal
    capacity_hours: Decimal
    available_hours: Decimal
    utilization: Decimal
    target_utilization: Decimal

    @property
    def utilization_gap(self) -> Decimal:
        """Utilization minus target; negative when below target."""
        return self.utilization - self.target_utilization


@dataclass(frozen=True)
class FixedPriceFigures:
    """Fixed-price figures for one row, one customer, or the grand total."""

    actual_hours: Decimal
    budget_hours: Decimal
    variance_hours: Decimal
    budget_amount: Decimal
    hourly_equivalent: Decimal
    actual_cost: Decimal
    tb: Decimal
    tg_percent: Decimal


@dataclass(frozen=True)
class FixedPriceRow:
    customer_id: UUID
    customer_name: str
    article_id: UUID
    article_code: str
    article_name: str
    figures: FixedPriceFigures


@dataclass(frozen=True)
class FixedPriceAnalysis:
    start: YearMonth
    end: YearMonth
    article_filter: FixedPriceArticleFilter
    rows: tuple[FixedPriceRow, ...]
    customer_totals: dict[UUID, FixedPriceFigures]
    totals: FixedPriceFigures
