"""
Budget Module (``billing_modules.budget``).

Budget drafts, publishing with versioning and auto-close, copying from the
previous month, and the effective-budget / budget-range read side.
"""

from billing_modules.budget.models import BudgetHistoryGroup, PublishResult
from billing_modules.budget.service import BudgetService

__all__ = ["BudgetHistoryGroup", "BudgetService", "PublishResult"]
