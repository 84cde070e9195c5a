"""
Pricing rule domain types.

A pricing rule is declared at exactly one scope.  Rather than a flat
record with nullable customer/article/group keys, the scope is a tagged
union: each variant carries only the identifiers that are meaningful for
it, so a GLOBAL rule with a customer id cannot be constructed.

Scopes, from least to most specific:

    GlobalScope
    ArticleGroupScope(article_group_id)
    ArticleScope(article_id)
    CustomerScope(customer_id)
    CustomerArticleScope(customer_id, article_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Union
from uuid import UUID

from billing_kernel.exceptions import InvalidPricingRuleError, InvalidPricingScopeError


class PricingScopeType(str, Enum):
    """Tag of the pricing scope union."""

    GLOBAL = "GLOBAL"
    ARTICLE_GROUP = "ARTICLE_GROUP"
    ARTICLE = "ARTICLE"
    CUSTOMER = "CUSTOMER"
    CUSTOMER_ARTICLE = "CUSTOMER_ARTICLE"


@dataclass(frozen=True)
class GlobalScope:
    scope_type = PricingScopeType.GLOBAL

    def matches(self, customer_id: UUID, article_id: UUID, article_group_id: UUID | None) -> bool:
        return True


@dataclass(frozen=True)
class ArticleGroupScope:
    article_group_id: UUID
    scope_type = PricingScopeType.ARTICLE_GROUP

    def matches(self, customer_id: UUID, article_id: UUID, article_group_id: UUID | None) -> bool:
        return article_group_id is not None and self.article_group_id == article_group_id


@dataclass(frozen=True)
class ArticleScope:
    article_id: UUID
    scope_type = PricingScopeType.ARTICLE

    def matches(self, customer_id: UUID, article_id: UUID, article_group_id: UUID | None) -> bool:
        return self.article_id == article_id


@dataclass(frozen=True)
class CustomerScope:
    customer_id: UUID
    scope_type = PricingScopeType.CUSTOMER

    def matches(self, customer_id: UUID, article_id: UUID, article_group_id: UUID | None) -> bool:
        return self.customer_id == customer_id


@dataclass(frozen=True)
class CustomerArticleScope:
    customer_id: UUID
    article_id: UUID
    scope_type = PricingScopeType.CUSTOMER_ARTICLE

    def matches(self, customer_id: UUID, article_id: UUID, article_group_id: UUID | None) -> bool:
        return self.customer_id == customer_id and self.article_id == article_id


PricingScope = Union[
    GlobalScope,
    ArticleGroupScope,
    ArticleScope,
    CustomerScope,
    CustomerArticleScope,
]


def build_scope(
    scope_type: PricingScopeType | str,
    *,
    customer_id: UUID | None = None,
    article_id: UUID | None = None,
    article_group_id: UUID | None = None,
    rule_id: UUID | None = None,
) -> PricingScope:
    """
    Build the scope variant from a flat (scope, foreign keys) record.

    Exactly the keys relevant to the scope must be populated.

    Raises:
        InvalidPricingScopeError: If a required key is missing or an
            irrelevant key is populated.
    """
    scope_type = PricingScopeType(scope_type)
    required: dict[PricingScopeType, tuple[str, ...]] = {
        PricingScopeType.GLOBAL: (),
        PricingScopeType.ARTICLE_GROUP: ("article_group_id",),
        PricingScopeType.ARTICLE: ("article_id",),
        PricingScopeType.CUSTOMER: ("customer_id",),
        PricingScopeType.CUSTOMER_ARTICLE: ("customer_id", "article_id"),
    }
    keys = {
        "customer_id": customer_id,
        "article_id": article_id,
        "article_group_id": article_group_id,
    }
    wanted = required[scope_type]
    for name, value in keys.items():
        if name in wanted and value is None:
            raise InvalidPricingScopeError(scope_type.value, f"{name} is required", rule_id)
        if name not in wanted and value is not None:
            raise InvalidPricingScopeError(scope_type.value, f"{name} must be empty", rule_id)

    if scope_type == PricingScopeType.GLOBAL:
        return GlobalScope()
    if scope_type == PricingScopeType.ARTICLE_GROUP:
        return ArticleGroupScope(article_group_id=article_group_id)
    if scope_type == PricingScopeType.ARTICLE:
        return ArticleScope(article_id=article_id)
    if scope_type == PricingScopeType.CUSTOMER:
        return CustomerScope(customer_id=customer_id)
    return CustomerArticleScope(customer_id=customer_id, article_id=article_id)


def scope_keys(scope: PricingScope) -> dict[str, UUID | None]:
    """Flatten a scope back into its nullable foreign keys (for persistence)."""
    return {
        "customer_id": getattr(scope, "customer_id", None),
        "article_id": getattr(scope, "article_id", None),
        "article_group_id": getattr(scope, "article_group_id", None),
    }


@dataclass(frozen=True)
class PricingRule:
    """
    A candidate price-modification rule.

    Fractions (``discount``, ``markup``) are expressed as decimals, e.g.
    ``Decimal("0.10")`` for 10%.  Every adjustment field is optional.
    """

    id: UUID
    name: str
    scope: PricingScope
    priority: int = 0
    price_per_hour: Decimal | None = None
    discount: Decimal | None = None
    markup: Decimal | None = None
    fixed_price_component: Decimal | None = None
    minimum_charge: Decimal | None = None
    valid_from: date | None = None
    valid_to: date | None = None
    active: bool = True

    def __post_init__(self) -> None:
        if self.discount is not None and not Decimal("0") <= self.discount <= Decimal("1"):
            raise InvalidPricingRuleError("discount", "must be between 0 and 1")
        if self.markup is not None and self.markup < 0:
            raise InvalidPricingRuleError("markup", "must be non-negative")
        for field_name in ("price_per_hour", "fixed_price_component", "minimum_charge"):
            value = getattr(self, field_name)
            if value is not None and value < 0:
                raise InvalidPricingRuleError(field_name, "must be non-negative")
        if (
            self.valid_from is not None
            and self.valid_to is not None
            and self.valid_from > self.valid_to
        ):
            raise InvalidPricingRuleError("valid_to", "must not be before valid_from")

    @property
    def scope_type(self) -> PricingScopeType:
        return self.scope.scope_type

    def is_in_force(self, on_date: date) -> bool:
        """Active and ``on_date`` within [valid_from, valid_to] (open when null)."""
        if not self.active:
            return False
        if self.valid_from is not None and self.valid_from > on_date:
            return False
        if self.valid_to is not None and self.valid_to < on_date:
            return False
        return True
