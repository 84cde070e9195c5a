"""
Reporting Module Service (``billing_modules.reporting.service``).

Responsibility
--------------
KPI reports: monthly dashboard, customer report, client-manager portfolio,
employee report and fixed-price analysis.  Read-only.

Architecture position
---------------------
**Modules layer**.  Data is fetched through kernel selectors; every figure
is computed by the pure functions in ``billing_engines.kpi``.  Budget
figures for a month come from the effectiveness evaluator and, for
multi-month ranges, from the range aggregator via ``BudgetService``.

Invariants enforced
-------------------
* Multi-month budgets are re-summed month by month, never read once at
  the range endpoints.
* Capacity uses the calendar's working days; a month without calendar
  rows falls back to ``BillingConfig.default_work_days``.
* Reports never write to the session.

Failure modes
-------------
* ``CustomerNotFoundError`` / ``EmployeeNotFoundError`` for unknown ids.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from billing_config import BillingConfig, get_active_config
from billing_engines.budget_aggregation import BudgetTotal
from billing_engines.kpi import (
    BudgetData,
    CapacityData,
    TimeEntryData,
    calculate_available_hours,
    calculate_budget_deviation_percent,
    calculate_capacity_hours,
    calculate_could_have_billed_diff,
    calculate_debitable_hours,
    calculate_fixed_price_tb,
    calculate_fixed_price_tg_percent,
    calculate_kpis,
    calculate_tg_percent,
    calculate_total_cost,
    calculate_total_hours,
    calculate_total_revenue,
    calculate_utilization,
    portfolio_status,
)
from billing_kernel.domain.dtos import (
    ArticleGroupType,
    BudgetFilter,
    CustomerType,
    pair_key,
)
from billing_kernel.domain.periods import YearMonth
from billing_kernel.logging_config import get_logger
from billing_kernel.selectors.capacity_selector import CapacitySelector
from billing_kernel.selectors.reference_selector import ReferenceSelector
from billing_kernel.selectors.time_entry_selector import (
    ClassifiedTimeEntry,
    TimeEntrySelector,
)
from billing_modules.budget.service import BudgetService
from billing_modules.reporting.models import (
    ArticleReportRow,
    CustomerReport,
    DashboardReport,
    EmployeeReport,
    FixedPriceAnalysis,
    FixedPriceArticleFilter,
    FixedPriceFigures,
    FixedPriceRow,
    PortfolioRow,
)

logger = get_logger("modules.reporting.service")

ZERO = Decimal("0")
FIXED_PRICE_CUSTOMER_TYPES = (CustomerType.FASTPRIS, CustomerType.BLANDAD)


def to_kpi_data(rows: Iterable[ClassifiedTimeEntry]) -> list[TimeEntryData]:
    return [
        TimeEntryData(
            hours=row.entry.hours,
            calculated_price=row.entry.calculated_price,
            cost_amount=row.entry.cost_amount,
            article_group_type=row.article_group_type,
            running_price=row.entry.running_price,
        )
        for row in rows
    ]


class ReportingService:
    """KPI reporting over time entries, budgets and capacity."""

    def __init__(self, session: Session, config: BillingConfig | None = None):
        self._session = session
        self._config = config or get_active_config()
        self._entries = TimeEntrySelector(session)
        self._references = ReferenceSelector(session)
        self._capacity = CapacitySelector(session)
        self._budgets = BudgetService(session, config=self._config)

    @property
    def _places(self) -> int:
        return self._config.ratio_places

    def _work_days(self, period: YearMonth) -> int:
        work_days = self._capacity.count_work_days(period)
        if work_days is None:
            logger.debug(
                "calendar_missing_default_work_days",
                extra={"period": period.label, "work_days": self._config.default_work_days},
            )
            return self._config.default_work_days
        return work_days

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard(
        self,
        period: YearMonth,
        employee_id: UUID | None = None,
        client_manager_id: UUID | None = None,
    ) -> DashboardReport:
        """Firm-wide (or per employee / per client manager) KPIs for one month."""
        employee_ids = [employee_id] if employee_id is not None else None
        customer_ids: tuple[UUID, ...] | None = None
        if client_manager_id is not None:
            customer_ids = tuple(
                c.id
                for c in self._references.find_customers(
                    client_manager_id=client_manager_id, active_only=False,
                )
            )

        data = to_kpi_data(
            self._entries.find_classified_entries(
                period.first_day, period.last_day,
                employee_ids=employee_ids, customer_ids=customer_ids,
            )
        )
        budget_entries = self._budgets.effective_budgets(
            period, BudgetFilter(customer_ids=customer_ids),
        )
        budget = BudgetData(
            hours=sum((e.hours for e in budget_entries), ZERO),
            amount=sum((e.amount for e in budget_entries), ZERO),
        )

        employees = self._references.find_active_employees(employee_ids)
        work_days = self._work_days(period)
        capacity_hours = sum(
            (
                calculate_capacity_hours(
                    work_days, e.weekly_hours, self._config.work_days_per_week,
                )
                for e in employees
            ),
            ZERO,
        )
        absence_hours = self._capacity.absence_hours(period, employee_ids)

        kpis = calculate_kpis(
            data,
            CapacityData(total_working_hours=capacity_hours, absence_hours=absence_hours),
            budget,
            places=self._places,
        )
        logger.info(
            "dashboard_computed",
            extra={
                "period": period.label,
                "entry_count": len(data),
                "employee_count": len(employees),
                "utilization": str(kpis.utilization),
            },
        )
        return DashboardReport(
            period=period,
            kpis=kpis,
            work_days=work_days,
            capacity_hours=capacity_hours,
            absence_hours=absence_hours,
            employee_count=len(employees),
            could_have_billed_diff=calculate_could_have_billed_diff(data),
        )

    # =========================================================================
    # Customer report
    # =========================================================================

    def customer_report(
        self,
        customer_id: UUID,
        start: YearMonth,
        end: YearMonth | None = None,
    ) -> CustomerReport:
        """Per-article actuals against the range budget for one customer."""
        end = end or start
        customer = self._references.find_customer(customer_id)
        rows = self._entries.find_classified_entries(
            start.first_day, end.last_day, customer_ids=[customer_id],
        )
        budgets = self._budgets.budget_range(
            start, end, BudgetFilter(customer_id=customer_id),
        )

        by_article: dict[UUID, list[ClassifiedTimeEntry]] = defaultdict(list)
        for row in rows:
            by_article[row.entry.article_id].append(row)
        budget_by_article: dict[UUID, BudgetTotal] = {
            total.article_id: total for total in budgets.values()
        }
        articles = self._references.find_articles(set(by_article) | set(budget_by_article))

        article_rows = []
        for article_id in sorted(articles, key=lambda a: articles[a].code):
            article = articles[article_id]
            data = to_kpi_data(by_article.get(article_id, []))
            budget = budget_by_article.get(article_id)
            article_rows.append(
                ArticleReportRow(
                    article_id=article_id,
                    article_code=article.code,
                    article_name=article.name,
                    hours=calculate_total_hours(data),
                    revenue=calculate_total_revenue(data),
                    cost=calculate_total_cost(data),
                    budget_hours=budget.total_hours if budget else ZERO,
                    budget_amount=budget.total_amount if budget else ZERO,
                )
            )

        data = to_kpi_data(rows)
        revenue = calculate_total_revenue(data)
        cost = calculate_total_cost(data)
        return CustomerReport(
            customer=customer,
            start=start,
            end=end,
            articles=tuple(article_rows),
            hours=calculate_total_hours(data),
            revenue=revenue,
            cost=cost,
            tb=revenue - cost,
            tg_percent=calculate_tg_percent(data, self._places),
            budget_hours=sum((t.total_hours for t in budgets.values()), ZERO),
            budget_amount=sum((t.total_amount for t in budgets.values()), ZERO),
            could_have_billed_diff=calculate_could_have_billed_diff(data),
        )

    # =========================================================================
    # Portfolio
    # =========================================================================

    def portfolio(
        self,
        client_manager_id: UUID,
        start: YearMonth,
        end: YearMonth | None = None,
    ) -> list[PortfolioRow]:
        """One traffic-light row per active customer of a client manager."""
        end = end or start
        customers = self._references.find_customers(client_manager_id=client_manager_id)
        if not customers:
            return []
        customer_ids = tuple(c.id for c in customers)

        entries_by_customer: dict[UUID, list[ClassifiedTimeEntry]] = defaultdict(list)
        for row in self._entries.find_classified_entries(
            start.first_day, end.last_day, customer_ids=customer_ids,
        ):
            entries_by_customer[row.entry.customer_id].append(row)

        budget_hours: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for total in self._budgets.budget_range(
            start, end, BudgetFilter(customer_ids=customer_ids),
        ).values():
            budget_hours[total.customer_id] += total.total_hours

        thresholds = self._config.portfolio_thresholds
        result = []
        for customer in customers:
            data = to_kpi_data(entries_by_customer.get(customer.id, []))
            revenue = calculate_total_revenue(data)
            cost = calculate_total_cost(data)
            hours = calculate_total_hours(data)
            tg_percent = calculate_tg_percent(data, self._places)
            deviation = calculate_budget_deviation_percent(
                hours, budget_hours[customer.id], self._places,
            )
            result.append(
                PortfolioRow(
                    customer=customer,
                    revenue=revenue,
                    cost=cost,
                    tb=revenue - cost,
                    tg_percent=tg_percent,
                    hours=hours,
                    budget_hours=budget_hours[customer.id],
                    budget_deviation=deviation,
                    status=portfolio_status(tg_percent, deviation, thresholds),
                )
            )
        return result

    # =========================================================================
    # Employee report
    # =========================================================================

    def employee_report(self, employee_id: UUID, period: YearMonth) -> EmployeeReport:
        employee = self._references.find_employee(employee_id)
        data = to_kpi_data(
            self._entries.find_classified_entries(
                period.first_day, period.last_day, employee_ids=[employee_id],
            )
        )
        capacity_hours = calculate_capacity_hours(
            self._work_days(period), employee.weekly_hours, self._config.work_days_per_week,
        )
        absence_hours = self._capacity.absence_hours(period, [employee_id])
        capacity = CapacityData(total_working_hours=capacity_hours, absence_hours=absence_hours)

        total_hours = calculate_total_hours(data)
        debitable_hours = calculate_debitable_hours(data)
        return EmployeeReport(
            employee=employee,
            period=period,
            total_hours=total_hours,
            debitable_hours=debitable_hours,
            non_debitable_hours=total_hours - debitable_hours,
            absence_hours=absence_hours,
            capacity_hours=capacity_hours,
            available_hours=calculate_available_hours(capacity),
            utilization=calculate_utilization(data, capacity, self._places),
            target_utilization=employee.target_utilization,
        )

    # =========================================================================
    # Fixed-price analysis
    # =========================================================================

    def fixed_price_analysis(
        self,
        customer_ids: Sequence[UUID] | None,
        start: YearMonth,
        end: YearMonth,
        article_filter: FixedPriceArticleFilter = FixedPriceArticleFilter.ALL,
    ) -> FixedPriceAnalysis:
        """
        Fixed-price follow-up for FASTPRIS and BLANDAD customers.

        TB is the budgeted (agreed) amount less actual cost; TG% is TB over
        the budgeted amount.  ``hourly_equivalent`` is what the hours would
        have billed at the calculated price.
        """
        customers = {
            c.id: c
            for c in self._references.find_customers(
                customer_ids=customer_ids,
                customer_types=FIXED_PRICE_CUSTOMER_TYPES,
                active_only=customer_ids is None,
            )
        }
        ids = tuple(customers)

        entries_by_pair: dict[str, list[ClassifiedTimeEntry]] = defaultdict(list)
        pairs: dict[str, tuple[UUID, UUID]] = {}
        for row in self._entries.find_classified_entries(
            start.first_day, end.last_day, customer_ids=ids,
        ):
            key = pair_key(row.entry.customer_id, row.entry.article_id)
            entries_by_pair[key].append(row)
            pairs[key] = (row.entry.customer_id, row.entry.article_id)

        budgets = self._budgets.budget_range(start, end, BudgetFilter(customer_ids=ids)) if ids else {}
        for key, total in budgets.items():
            pairs[key] = (total.customer_id, total.article_id)

        articles = self._references.find_articles({a for _, a in pairs.values()})

        def included(article_id: UUID) -> bool:
            article = articles[article_id]
            if article_filter == FixedPriceArticleFilter.FIXED_PRICE:
                return article.included_in_fixed_price
            if article_filter == FixedPriceArticleFilter.TILLAGG:
                return article.article_group_type == ArticleGroupType.TILLAGG
            return True

        rows: list[FixedPriceRow] = []
        for key, (customer_id, article_id) in pairs.items():
            if not included(article_id):
                continue
            data = to_kpi_data(entries_by_pair.get(key, []))
            budget = budgets.get(key)
            rows.append(
                FixedPriceRow(
                    customer_id=customer_id,
                    customer_name=customers[customer_id].name,
                    article_id=article_id,
                    article_code=articles[article_id].code,
                    article_name=articles[article_id].name,
                    figures=self._figures(
                        actual_hours=calculate_total_hours(data),
                        budget_hours=budget.total_hours if budget else ZERO,
                        budget_amount=budget.total_amount if budget else ZERO,
                        hourly_equivalent=calculate_total_revenue(data),
                        actual_cost=calculate_total_cost(data),
                    ),
                )
            )
        rows.sort(key=lambda r: (r.customer_name, r.article_code))

        by_customer: dict[UUID, list[FixedPriceFigures]] = defaultdict(list)
        for row in rows:
            by_customer[row.customer_id].append(row.figures)

        analysis = FixedPriceAnalysis(
            start=start,
            end=end,
            article_filter=article_filter,
            rows=tuple(rows),
            customer_totals={cid: self._sum_figures(f) for cid, f in by_customer.items()},
            totals=self._sum_figures([row.figures for row in rows]),
        )
        logger.info(
            "fixed_price_analysis_computed",
            extra={
                "start": start.label,
                "end": end.label,
                "article_filter": article_filter.value,
                "customer_count": len(customers),
                "row_count": len(rows),
            },
        )
        return analysis

    def _figures(
        self,
        actual_hours: Decimal,
        budget_hours: Decimal,
        budget_amount: Decimal,
        hourly_equivalent: Decimal,
        actual_cost: Decimal,
    ) -> FixedPriceFigures:
        return FixedPriceFigures(
            actual_hours=actual_hours,
            budget_hours=budget_hours,
            variance_hours=actual_hours - budget_hours,
            budget_amount=budget_amount,
            hourly_equivalent=hourly_equivalent,
            actual_cost=actual_cost,
            tb=calculate_fixed_price_tb(budget_amount, actual_cost),
            tg_percent=calculate_fixed_price_tg_percent(budget_amount, actual_cost, self._places),
        )

    def _sum_figures(self, figures: Sequence[FixedPriceFigures]) -> FixedPriceFigures:
        return self._figures(
            actual_hours=sum((f.actual_hours for f in figures), ZERO),
            budget_hours=sum((f.budget_hours for f in figures), ZERO),
            budget_amount=sum((f.budget_amount for f in figures), ZERO),
            hourly_equivalent=sum((f.hourly_equivalent for f in figures), ZERO),
            actual_cost=sum((f.actual_cost for f in figures), ZERO),
        )
