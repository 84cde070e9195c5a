"""
Module: billing_kernel.selectors.pricing_selector
Responsibility: Read-only pricing rule queries.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - find_pricing_rules() returns only rules in force on the given date
      (active, valid_from <= date <= valid_to with open bounds), ordered by
      priority descending then id.  The resolver relies on this order for
      within-tier ties.

Failure modes:
    - InvalidPricingScopeError if a stored row's keys disagree with its
      scope tag.
    - PricingRuleNotFoundError from get_rule() for an unknown id.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import or_, select

from billing_kernel.domain.pricing import PricingRule
from billing_kernel.exceptions import PricingRuleNotFoundError
from billing_kernel.models.pricing_rule import PricingRuleModel
from billing_kernel.selectors.base import BaseSelector


class PricingRuleSelector(BaseSelector[PricingRuleModel]):
    """Selector for pricing rules."""

    def find_pricing_rules(self, on_date: date) -> list[PricingRule]:
        """Candidate rules in force on ``on_date``, highest priority first."""
        stmt = (
            select(PricingRuleModel)
            .where(
                PricingRuleModel.active.is_(True),
                or_(
                    PricingRuleModel.valid_from.is_(None),
                    PricingRuleModel.valid_from <= on_date,
                ),
                or_(
                    PricingRuleModel.valid_to.is_(None),
                    PricingRuleModel.valid_to >= on_date,
                ),
            )
            .order_by(PricingRuleModel.priority.desc(), PricingRuleModel.id)
        )
        return [row.to_dto() for row in self.session.scalars(stmt).all()]

    def find_all(self, include_inactive: bool = False) -> list[PricingRule]:
        stmt = select(PricingRuleModel)
        if not include_inactive:
            stmt = stmt.where(PricingRuleModel.active.is_(True))
        stmt = stmt.order_by(PricingRuleModel.scope, PricingRuleModel.priority.desc())
        return [row.to_dto() for row in self.session.scalars(stmt).all()]

    def get_rule(self, rule_id: UUID) -> PricingRule:
        row = self.session.get(PricingRuleModel, rule_id)
        if row is None:
            raise PricingRuleNotFoundError(str(rule_id))
        return row.to_dto()
