"""
Domain DTOs (``billing_kernel.domain.dtos``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of the billing core:
customers, articles, employees and their cost history, budget entries and
time entries.  Selectors return these; engines compute over them.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary and hour fields use ``Decimal`` -- NEVER ``float``.
* A budget entry's end period is either fully set or fully null.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from billing_kernel.domain.periods import YearMonth


class BudgetStatus(str, Enum):
    """Budget entry lifecycle states."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class ArticleGroupType(str, Enum):
    """Article group classification used by the KPI formulas."""

    ORDINARIE = "ORDINARIE"  # package services
    TILLAGG = "TILLAGG"  # add-on services
    INTERNTID = "INTERNTID"  # internal time, never debitable
    OVRIGT = "OVRIGT"


class CustomerType(str, Enum):
    """Billing arrangement for a customer."""

    LOPANDE = "LOPANDE"  # hourly
    FASTPRIS = "FASTPRIS"  # fixed price
    BLANDAD = "BLANDAD"  # mixed


def pair_key(customer_id: UUID | str, article_id: UUID | str) -> str:
    """Aggregation key for a customer+article pair: ``"customerId:articleId"``."""
    return f"{customer_id}:{article_id}"


@dataclass(frozen=True)
class Customer:
    id: UUID
    name: str
    customer_type: CustomerType = CustomerType.LOPANDE
    client_manager_id: UUID | None = None
    active: bool = True


@dataclass(frozen=True)
class ArticleGroup:
    id: UUID
    name: str
    group_type: ArticleGroupType


@dataclass(frozen=True)
class Article:
    """An article (billable service) and the group it belongs to."""

    id: UUID
    code: str
    name: str
    article_group_id: UUID
    article_group_type: ArticleGroupType
    included_in_fixed_price: bool = False
    active: bool = True


@dataclass(frozen=True)
class Employee:
    """Employee defaults used by the price calculator and capacity math."""

    id: UUID
    name: str
    cost_per_hour: Decimal
    default_price_per_hour: Decimal
    weekly_hours: Decimal = Decimal("40")
    target_utilization: Decimal = Decimal("0")
    active: bool = True


@dataclass(frozen=True)
class EmployeeCostRecord:
    """A historical cost-per-hour valid over [effective_from, effective_to]."""

    id: UUID
    employee_id: UUID
    cost_per_hour: Decimal
    effective_from: date
    effective_to: date | None = None

    def covers(self, on_date: date) -> bool:
        if self.effective_from > on_date:
            return False
        return self.effective_to is None or self.effective_to >= on_date


@dataclass(frozen=True)
class BudgetEntry:
    """
    A monthly hours/amount allocation for one customer+article pair.

    The entry applies to every month from its start period up to and
    including its end period; a null end means "ongoing".
    """

    id: UUID
    customer_id: UUID
    article_id: UUID
    start_year: int
    start_month: int
    hours: Decimal
    amount: Decimal
    status: BudgetStatus = BudgetStatus.DRAFT
    version: int = 0
    end_year: int | None = None
    end_month: int | None = None

    def __post_init__(self) -> None:
        if self.hours < 0:
            raise ValueError("hours must be non-negative")
        if self.amount < 0:
            raise ValueError("amount must be non-negative")
        if (self.end_year is None) != (self.end_month is None):
            raise ValueError("end_year and end_month must both be set or both be null")

    @property
    def start(self) -> YearMonth:
        return YearMonth(self.start_year, self.start_month)

    @property
    def end(self) -> YearMonth | None:
        if self.end_year is None or self.end_month is None:
            return None
        return YearMonth(self.end_year, self.end_month)

    @property
    def is_open(self) -> bool:
        return self.end_year is None

    @property
    def key(self) -> str:
        return pair_key(self.customer_id, self.article_id)


@dataclass(frozen=True)
class BudgetFilter:
    """
    Extra filter applied on top of the effectiveness predicate.

    ``customer_id`` and ``customer_ids`` may be combined; an entry must
    satisfy every populated field.
    """

    customer_id: UUID | None = None
    customer_ids: tuple[UUID, ...] | None = None
    article_id: UUID | None = None
    status: BudgetStatus | None = BudgetStatus.PUBLISHED

    def matches(self, entry: BudgetEntry) -> bool:
        if self.status is not None and entry.status != self.status:
            return False
        if self.customer_id is not None and entry.customer_id != self.customer_id:
            return False
        if self.customer_ids is not None and entry.customer_id not in self.customer_ids:
            return False
        if self.article_id is not None and entry.article_id != self.article_id:
            return False
        return True


@dataclass(frozen=True)
class TimeEntry:
    """One worked-hours record with its write-time pricing."""

    id: UUID
    employee_id: UUID
    customer_id: UUID
    article_id: UUID
    entry_date: date
    hours: Decimal
    cost_amount: Decimal
    calculated_price: Decimal
    pricing_rule_id: UUID | None = None
    running_price: Decimal | None = None
    comment: str | None = None
    invoice_text: str | None = None
