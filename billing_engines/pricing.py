"""
billing_engines.pricing -- Pricing rule resolution.

Responsibility:
    Select the single pricing rule that applies to a customer, article
    (and its group) on a date, from a prioritized, scope-based candidate
    set.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only rules in force on the date are candidates (active, within
      [valid_from, valid_to], open bounds when null).
    - Tier beats priority.  Tiers are tried from most to least specific:
      CUSTOMER_ARTICLE, CUSTOMER, ARTICLE, ARTICLE_GROUP, GLOBAL.  The same
      five tiers apply everywhere prices are resolved.
    - Within a tier, candidates are taken in priority order (highest
      first); equal priorities keep the input order.

Failure modes:
    - None.  "No applicable rule" is returned as None; the caller falls
      back to the employee's default rate.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from billing_engines.tracer import traced_engine
from billing_kernel.domain.pricing import PricingRule, PricingScopeType
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")

TIER_ORDER: tuple[PricingScopeType, ...] = (
    PricingScopeType.CUSTOMER_ARTICLE,
    PricingScopeType.CUSTOMER,
    PricingScopeType.ARTICLE,
    PricingScopeType.ARTICLE_GROUP,
    PricingScopeType.GLOBAL,
)


def candidate_rules(
    rules: Iterable[PricingRule],
    customer_id: UUID,
    article_id: UUID,
    article_group_id: UUID | None,
    on_date: date,
) -> list[PricingRule]:
    """
    Every rule that matches the inputs, most specific tier first.

    The first element, if any, is the rule :func:`resolve_pricing_rule`
    returns.
    """
    ordered = sorted(
        (
            rule
            for rule in rules
            if rule.is_in_force(on_date)
            and rule.scope.matches(customer_id, article_id, article_group_id)
        ),
        key=lambda rule: -rule.priority,
    )
    return sorted(ordered, key=lambda rule: TIER_ORDER.index(rule.scope_type))


@traced_engine(
    "pricing_resolver", "1.0",
    fingerprint_fields=("customer_id", "article_id", "article_group_id", "on_date"),
)
def resolve_pricing_rule(
    rules: Iterable[PricingRule],
    customer_id: UUID,
    article_id: UUID,
    article_group_id: UUID | None,
    on_date: date,
) -> PricingRule | None:
    """
    Resolve the applicable pricing rule, or None.

    Args:
        rules: Candidate rules, typically pre-filtered and ordered by
            priority descending by the selector.
        customer_id: Customer being billed.
        article_id: Article being billed.
        article_group_id: The article's group (None disables that tier).
        on_date: Date the work was done.
    """
    matches = candidate_rules(rules, customer_id, article_id, article_group_id, on_date)
    if not matches:
        logger.debug(
            "pricing_rule_not_found",
            extra={
                "customer_id": str(customer_id),
                "article_id": str(article_id),
                "on_date": on_date,
            },
        )
        return None

    rule = matches[0]
    logger.debug(
        "pricing_rule_resolved",
        extra={
            "rule_id": str(rule.id),
            "scope": rule.scope_type.value,
            "priority": rule.priority,
            "candidate_count": len(matches),
        },
    )
    return rule
