"""
Reporting Module (``billing_modules.reporting``).

Dashboard, customer, portfolio, employee and fixed-price reports computed
with the KPI engine.
"""

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
from billing_modules.reporting.service import ReportingService

__all__ = [
    "ArticleReportRow",
    "CustomerReport",
    "DashboardReport",
    "EmployeeReport",
    "FixedPriceAnalysis",
    "FixedPriceArticleFilter",
    "FixedPriceFigures",
    "FixedPriceRow",
    "PortfolioRow",
    "ReportingService",
]
