"""
Pricing Module Service (``billing_modules.pricing.service``).

Responsibility
--------------
Administration of pricing rules (create, update, deactivate) and rule
resolution for a customer+article on a date.  ``resolve_for_article`` is
the single resolution path: the preview and the time-entry pipeline both
go through it, so every call site uses the same five tiers.

Invariants enforced
-------------------
* A rule's scope and its foreign keys never disagree; scope is fixed at
  creation.
* Fractions and amounts are validated by the ``PricingRule`` value object
  before anything is written.
* Mutating methods commit on success and roll back on exception.

Failure modes
-------------
* ``InvalidPricingScopeError`` / ``InvalidPricingRuleError``.
* ``ArticleNotFoundError`` / ``CustomerNotFoundError`` for unknown references.
* ``PricingRuleNotFoundError`` for an unknown rule id.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from billing_engines.pricing import candidate_rules, resolve_pricing_rule
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import Article
from billing_kernel.domain.pricing import PricingRule, PricingScopeType, build_scope
from billing_kernel.exceptions import InvalidPricingRuleError, PricingRuleNotFoundError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.models.pricing_rule import PricingRuleModel
from billing_kernel.selectors.pricing_selector import PricingRuleSelector
from billing_kernel.selectors.reference_selector import ReferenceSelector
from billing_modules.pricing.models import PricingPreview

logger = get_logger("modules.pricing.service")

_UPDATABLE_FIELDS = frozenset({
    "name",
    "priority",
    "price_per_hour",
    "discount",
    "markup",
    "fixed_price_component",
    "minimum_charge",
    "valid_from",
    "valid_to",
    "active",
})


class PricingService:
    """Pricing rule administration and resolution."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._rules = PricingRuleSelector(session)
        self._references = ReferenceSelector(session)

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(
        self, customer_id: UUID, article_id: UUID, on_date: date,
    ) -> PricingRule | None:
        """The rule that applies on ``on_date``; the article supplies its group."""
        article = self._references.find_article(article_id)
        return self.resolve_for_article(customer_id, article, on_date)

    def resolve_for_article(
        self, customer_id: UUID, article: Article, on_date: date,
    ) -> PricingRule | None:
        rules = self._rules.find_pricing_rules(on_date)
        return resolve_pricing_rule(
            rules, customer_id, article.id, article.article_group_id, on_date,
        )

    def preview(
        self,
        customer_id: UUID,
        article_id: UUID,
        on_date: date | None = None,
    ) -> PricingPreview:
        """Resolution result and all matching candidates (defaults to today)."""
        on_date = on_date or self._clock.today()
        article = self._references.find_article(article_id)
        rules = self._rules.find_pricing_rules(on_date)
        rule = resolve_pricing_rule(
            rules, customer_id, article.id, article.article_group_id, on_date,
        )
        candidates = candidate_rules(
            rules, customer_id, article.id, article.article_group_id, on_date,
        )
        return PricingPreview(rule=rule, candidates=tuple(candidates))

    def list_rules(self, include_inactive: bool = False) -> list[PricingRule]:
        return self._rules.find_all(include_inactive)

    # =========================================================================
    # Administration
    # =========================================================================

    def create_rule(
        self,
        name: str,
        scope: PricingScopeType | str,
        actor_id: UUID,
        *,
        priority: int = 0,
        customer_id: UUID | None = None,
        article_id: UUID | None = None,
        article_group_id: UUID | None = None,
        price_per_hour: Decimal | None = None,
        discount: Decimal | None = None,
        markup: Decimal | None = None,
        fixed_price_component: Decimal | None = None,
        minimum_charge: Decimal | None = None,
        valid_from: date | None = None,
        valid_to: date | None = None,
    ) -> PricingRule:
        if not name:
            raise InvalidPricingRuleError("name", "must not be empty")
        rule_id = uuid4()
        rule = PricingRule(
            id=rule_id,
            name=name,
            scope=build_scope(
                scope,
                customer_id=customer_id,
                article_id=article_id,
                article_group_id=article_group_id,
                rule_id=rule_id,
            ),
            priority=priority,
            price_per_hour=price_per_hour,
            discount=discount,
            markup=markup,
            fixed_price_component=fixed_price_component,
            minimum_charge=minimum_charge,
            valid_from=valid_from,
            valid_to=valid_to,
        )
        with LogContext.bind(actor_id=actor_id, customer_id=customer_id, rule_id=rule_id):
            try:
                if customer_id is not None:
                    self._references.find_customer(customer_id)
                if article_id is not None:
                    self._references.find_article(article_id)
                self._session.add(PricingRuleModel.from_dto(rule, created_by_id=actor_id))
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "pricing_rule_created",
                extra={
                    "scope": rule.scope_type.value,
                    "priority": rule.priority,
                },
            )
        return rule

    def update_rule(self, rule_id: UUID, actor_id: UUID, **changes: Any) -> PricingRule:
        """
        Change any of the updatable fields; scope and its keys are fixed.

        Raises:
            InvalidPricingRuleError: Unknown or non-updatable field, or an
                out-of-range value.
        """
        for field_name in changes:
            if field_name not in _UPDATABLE_FIELDS:
                raise InvalidPricingRuleError(field_name, "cannot be updated")
        with LogContext.bind(actor_id=actor_id, rule_id=rule_id):
            try:
                row = self._session.get(PricingRuleModel, rule_id)
                if row is None:
                    raise PricingRuleNotFoundError(str(rule_id))
                updated = dataclasses.replace(row.to_dto(), **changes)
                for field_name in changes:
                    setattr(row, field_name, getattr(updated, field_name))
                row.updated_by_id = actor_id
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "pricing_rule_updated",
                extra={"fields": sorted(changes)},
            )
        return updated

    def deactivate_rule(self, rule_id: UUID, actor_id: UUID | None = None) -> PricingRule:
        """Soft-disable a rule; it stops being a candidate immediately."""
        with LogContext.bind(actor_id=actor_id, rule_id=rule_id):
            try:
                row = self._session.get(PricingRuleModel, rule_id)
                if row is None:
                    raise PricingRuleNotFoundError(str(rule_id))
                row.active = False
                if actor_id is not None:
                    row.updated_by_id = actor_id
                rule = row.to_dto()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("pricing_rule_deactivated")
        return rule
