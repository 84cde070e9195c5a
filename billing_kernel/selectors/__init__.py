"""Read-only query selectors for the billing kernel."""

from billing_kernel.selectors.base import BaseSelector
from billing_kernel.selectors.budget_selector import BudgetSelector
from billing_kernel.selectors.capacity_selector import CapacitySelector
from billing_kernel.selectors.pricing_selector import PricingRuleSelector
from billing_kernel.selectors.reference_selector import ReferenceSelector
from billing_kernel.selectors.time_entry_selector import (
    ClassifiedTimeEntry,
    TimeEntrySelector,
)

__all__ = [
    "BaseSelector",
    "BudgetSelector",
    "CapacitySelector",
    "ClassifiedTimeEntry",
    "PricingRuleSelector",
    "ReferenceSelector",
    "TimeEntrySelector",
]
