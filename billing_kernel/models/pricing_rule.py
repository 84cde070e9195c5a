"""
Module: billing_kernel.models.pricing_rule
Responsibility: ORM persistence for pricing rules.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - The row is stored flat (scope tag plus three nullable foreign keys);
      ``to_dto()`` rebuilds the tagged scope and refuses rows whose
      populated keys disagree with the tag.
    - Rules are disabled with ``active = False``; they are never required
      to be physically deleted.

Failure modes:
    - InvalidPricingScopeError from to_dto() for an inconsistent row.
    - InvalidPricingRuleError from to_dto() for out-of-range fractions.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.pricing import (
    PricingRule,
    build_scope,
    scope_keys,
)


class PricingRuleModel(TrackedBase):
    """A scoped, prioritized price-modification rule."""

    __tablename__ = "pricing_rules"

    __table_args__ = (
        Index("idx_pricing_rule_scope_active", "scope", "active"),
        Index("idx_pricing_rule_validity", "valid_from", "valid_to"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    scope: Mapped[str] = mapped_column(String(30), nullable=False)
    priority: Mapped[int] = mapped_column(nullable=False, default=0)

    customer_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True,
    )
    article_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("articles.id"), nullable=True,
    )
    article_group_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("article_groups.id"), nullable=True,
    )

    price_per_hour: Mapped[Decimal | None] = mapped_column(nullable=True)
    discount: Mapped[Decimal | None] = mapped_column(nullable=True)
    markup: Mapped[Decimal | None] = mapped_column(nullable=True)
    fixed_price_component: Mapped[Decimal | None] = mapped_column(nullable=True)
    minimum_charge: Mapped[Decimal | None] = mapped_column(nullable=True)

    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> PricingRule:
        scope = build_scope(
            self.scope,
            customer_id=self.customer_id,
            article_id=self.article_id,
            article_group_id=self.article_group_id,
            rule_id=self.id,
        )
        return PricingRule(
            id=self.id,
            name=self.name,
            scope=scope,
            priority=self.priority,
            price_per_hour=self.price_per_hour,
            discount=self.discount,
            markup=self.markup,
            fixed_price_component=self.fixed_price_component,
            minimum_charge=self.minimum_charge,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, rule: PricingRule, created_by_id: UUID) -> "PricingRuleModel":
        return cls(
            id=rule.id,
            name=rule.name,
            scope=rule.scope_type.value,
            priority=rule.priority,
            price_per_hour=rule.price_per_hour,
            discount=rule.discount,
            markup=rule.markup,
            fixed_price_component=rule.fixed_price_component,
            minimum_charge=rule.minimum_charge,
            valid_from=rule.valid_from,
            valid_to=rule.valid_to,
            active=rule.active,
            created_by_id=created_by_id,
            **scope_keys(rule.scope),
        )

    def __repr__(self) -> str:
        return f"<PricingRuleModel {self.name} [{self.scope}] p={self.priority}>"
