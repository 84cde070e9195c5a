"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the budget, pricing and time-entry services must react to
failures precisely: a locked period is shown as "pick another month", a
missing employee is a data problem, an empty draft batch is a no-op.
Parsing messages for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.upsert(...)
    except PeriodLockedError as e:
        api_response(code=e.code, period=e.period)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- CustomerNotFoundError
    |   +-- ArticleNotFoundError
    |   +-- BudgetEntryNotFoundError
    |   +-- PricingRuleNotFoundError
    |   +-- TimeEntryNotFoundError
    |
    +-- PeriodError
    |   +-- PeriodLockedError
    |   +-- PeriodNotLockedError
    |   +-- InvalidPeriodError
    |
    +-- BudgetError
    |   +-- NoDraftsToPublishError
    |   +-- NoPublishedBudgetError
    |   +-- BudgetEntryNotEditableError
    |   +-- BudgetEntryKeyMismatchError
    |
    +-- PricingError
    |   +-- InvalidPricingScopeError
    |   +-- InvalidPricingRuleError
    |
    +-- TimeEntryError
        +-- InvalidHoursError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|------------------------------------------
Not found  | EMPLOYEE_NOT_FOUND         | Employee ID doesn't exist
           | CUSTOMER_NOT_FOUND         | Customer ID doesn't exist
           | ARTICLE_NOT_FOUND          | Article ID doesn't exist
           | BUDGET_ENTRY_NOT_FOUND     | Budget entry ID doesn't exist
           | PRICING_RULE_NOT_FOUND     | Pricing rule ID doesn't exist
           | TIME_ENTRY_NOT_FOUND       | Time entry ID doesn't exist
-----------|----------------------------|------------------------------------------
Period     | PERIOD_LOCKED              | Writing into a locked month
           | PERIOD_NOT_LOCKED          | Unlocking a month that is not locked
           | INVALID_PERIOD             | Month outside 1..12
-----------|----------------------------|------------------------------------------
Budget     | NO_DRAFTS_TO_PUBLISH       | Publish with no DRAFT rows for the month
           | NO_PUBLISHED_BUDGET        | Copy from a month with no effective budget
           | BUDGET_ENTRY_NOT_EDITABLE  | Editing a PUBLISHED row as a draft
-----------|----------------------------|------------------------------------------
Pricing    | INVALID_PRICING_SCOPE      | Foreign keys don't match the rule's scope
           | INVALID_PRICING_RULE       | Fractions/amounts out of range
-----------|----------------------------|------------------------------------------
Time entry | INVALID_HOURS              | Hours outside 0..24

"No applicable pricing rule" and "empty budget range" are NOT errors;
they are modelled as ``None`` and empty results respectively.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Not-found / missing-reference exceptions


class NotFoundError(BillingKernelError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"
    entity: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity} not found: {entity_id}")


class EmployeeNotFoundError(NotFoundError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"
    entity = "Employee"


class CustomerNotFoundError(NotFoundError):
    """Customer with given ID was not found."""

    code: str = "CUSTOMER_NOT_FOUND"
    entity = "Customer"


class ArticleNotFoundError(NotFoundError):
    """Article with given ID was not found."""

    code: str = "ARTICLE_NOT_FOUND"
    entity = "Article"


class BudgetEntryNotFoundError(NotFoundError):
    """Budget entry with given ID was not found."""

    code: str = "BUDGET_ENTRY_NOT_FOUND"
    entity = "Budget entry"


class PricingRuleNotFoundError(NotFoundError):
    """Pricing rule with given ID was not found."""

    code: str = "PRICING_RULE_NOT_FOUND"
    entity = "Pricing rule"


class TimeEntryNotFoundError(NotFoundError):
    """Time entry with given ID was not found."""

    code: str = "TIME_ENTRY_NOT_FOUND"
    entity = "Time entry"


# Period exceptions


class PeriodError(BillingKernelError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class PeriodLockedError(PeriodError):
    """Attempted to change data inside a locked month."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"Period {period} is locked")


class PeriodNotLockedError(PeriodError):
    """Attempted to unlock a month that has no active lock."""

    code: str = "PERIOD_NOT_LOCKED"

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"Period {period} is not locked")


class InvalidPeriodError(PeriodError, ValueError):
    """Year/month pair is not a valid calendar month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Invalid period: {year}-{month} (month must be 1..12)")


# Budget exceptions


class BudgetError(BillingKernelError):
    """Base exception for budget lifecycle errors."""

    code: str = "BUDGET_ERROR"


class NoDraftsToPublishError(BudgetError):
    """Publish was requested for a month without DRAFT rows."""

    code: str = "NO_DRAFTS_TO_PUBLISH"

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"No draft budget entries to publish for {period}")


class NoPublishedBudgetError(BudgetError):
    """No published budget is effective in the source month of a copy."""

    code: str = "NO_PUBLISHED_BUDGET"

    def __init__(self, period: str):
        self.period = period
        super().__init__(f"No published budget effective in {period}")


class BudgetEntryNotEditableError(BudgetError):
    """Only DRAFT budget entries may be edited."""

    code: str = "BUDGET_ENTRY_NOT_EDITABLE"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = str(entry_id)
        self.status = status
        super().__init__(
            f"Budget entry {entry_id} is {status}; only drafts can be edited"
        )


class BudgetEntryKeyMismatchError(BudgetError):
    """An edit addressed an entry by id but named a different pair or month."""

    code: str = "BUDGET_ENTRY_KEY_MISMATCH"

    def __init__(self, entry_id: str, field: str, expected: str, actual: str):
        self.entry_id = str(entry_id)
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Budget entry {entry_id} has {field}={expected}, not {actual}"
        )


# Pricing exceptions


class PricingError(BillingKernelError):
    """Base exception for pricing rule errors."""

    code: str = "PRICING_ERROR"


class InvalidPricingScopeError(PricingError):
    """A rule's populated foreign keys do not match its scope."""

    code: str = "INVALID_PRICING_SCOPE"

    def __init__(self, scope: str, reason: str, rule_id: str | None = None):
        self.scope = scope
        self.reason = reason
        self.rule_id = str(rule_id) if rule_id is not None else None
        super().__init__(f"Invalid {scope} pricing scope: {reason}")


class InvalidPricingRuleError(PricingError):
    """A pricing rule field is out of its allowed range."""

    code: str = "INVALID_PRICING_RULE"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid pricing rule field '{field}': {reason}")


# Time entry exceptions


class TimeEntryError(BillingKernelError):
    """Base exception for time entry errors."""

    code: str = "TIME_ENTRY_ERROR"


class InvalidHoursError(TimeEntryError):
    """Worked hours outside the 0..24 range."""

    code: str = "INVALID_HOURS"

    def __init__(self, hours: str):
        self.hours = str(hours)
        super().__init__(f"Hours must be between 0 and 24, got {hours}")
