"""
SQLAlchemy ORM models for the billing kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from billing_kernel.models.article import ArticleGroupModel, ArticleModel
from billing_kernel.models.budget_entry import BudgetEntryModel
from billing_kernel.models.capacity import AbsenceModel, CalendarDayModel
from billing_kernel.models.customer import CustomerModel
from billing_kernel.models.employee import EmployeeCostHistoryModel, EmployeeModel
from billing_kernel.models.period_lock import PeriodLockModel
from billing_kernel.models.pricing_rule import PricingRuleModel
from billing_kernel.models.time_entry import TimeEntryModel

__all__ = [
    "AbsenceModel",
    "ArticleGroupModel",
    "ArticleModel",
    "BudgetEntryModel",
    "CalendarDayModel",
    "CustomerModel",
    "EmployeeCostHistoryModel",
    "EmployeeModel",
    "PeriodLockModel",
    "PricingRuleModel",
    "TimeEntryModel",
]
