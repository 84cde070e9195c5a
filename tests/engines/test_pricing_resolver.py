"""
Tests for pricing rule resolution.

Covers:
- Tier precedence (tier beats priority)
- Priority ordering within a tier
- Validity windows and the active flag
- The ARTICLE_GROUP tier
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from billing_engines.pricing import TIER_ORDER, candidate_rules, resolve_pricing_rule
from billing_kernel.domain.pricing import (
    ArticleGroupScope,
    ArticleScope,
    CustomerArticleScope,
    CustomerScope,
    GlobalScope,
    PricingRule,
    PricingScopeType,
    build_scope,
)
from billing_kernel.exceptions import InvalidPricingRuleError, InvalidPricingScopeError

CUSTOMER = UUID("10000000-0000-4000-a000-000000000001")
OTHER_CUSTOMER = UUID("10000000-0000-4000-a000-000000000002")
ARTICLE = UUID("20000000-0000-4000-a000-000000000001")
OTHER_ARTICLE = UUID("20000000-0000-4000-a000-000000000002")
GROUP = UUID("30000000-0000-4000-a000-000000000001")
ON = date(2024, 3, 15)


def rule(scope, priority: int = 0, **fields) -> PricingRule:
    return PricingRule(
        id=uuid4(),
        name=f"{scope.scope_type.value} p{priority}",
        scope=scope,
        priority=priority,
        price_per_hour=fields.pop("price_per_hour", Decimal("1000")),
        **fields,
    )


def resolve(rules, article_group_id=GROUP, on_date=ON):
    return resolve_pricing_rule(rules, CUSTOMER, ARTICLE, article_group_id, on_date)


class TestTierPrecedence:
    """The most specific matching tier always wins."""

    def test_customer_article_beats_customer_regardless_of_priority(self):
        customer_rule = rule(CustomerScope(CUSTOMER), priority=100)
        pair_rule = rule(CustomerArticleScope(CUSTOMER, ARTICLE), priority=0)

        assert resolve([customer_rule, pair_rule]) == pair_rule
        assert resolve([pair_rule, customer_rule]) == pair_rule

    def test_full_tier_order(self):
        rules = [
            rule(GlobalScope(), priority=50),
            rule(ArticleGroupScope(GROUP), priority=40),
            rule(ArticleScope(ARTICLE), priority=30),
            rule(CustomerScope(CUSTOMER), priority=20),
            rule(CustomerArticleScope(CUSTOMER, ARTICLE), priority=10),
        ]

        remaining = list(rules)
        for expected_tier in TIER_ORDER:
            chosen = resolve(remaining)
            assert chosen.scope_type == expected_tier
            remaining.remove(chosen)
        assert resolve(remaining) is None

    def test_article_group_tier_sits_between_article_and_global(self):
        group_rule = rule(ArticleGroupScope(GROUP))
        global_rule = rule(GlobalScope(), priority=99)

        assert resolve([global_rule, group_rule]) == group_rule

    def test_article_group_tier_skipped_without_group(self):
        group_rule = rule(ArticleGroupScope(GROUP))
        global_rule = rule(GlobalScope())

        assert resolve([group_rule, global_rule], article_group_id=None) == global_rule

    def test_non_matching_scopes_ignored(self):
        rules = [
            rule(CustomerScope(OTHER_CUSTOMER)),
            rule(ArticleScope(OTHER_ARTICLE)),
            rule(CustomerArticleScope(CUSTOMER, OTHER_ARTICLE)),
        ]

        assert resolve(rules) is None


class TestWithinTier:
    """Priority only orders candidates inside a tier."""

    def test_highest_priority_wins(self):
        low = rule(CustomerScope(CUSTOMER), priority=1)
        high = rule(CustomerScope(CUSTOMER), priority=5)

        assert resolve([low, high]) == high

    def test_equal_priority_keeps_input_order(self):
        first = rule(CustomerScope(CUSTOMER), priority=3)
        second = rule(CustomerScope(CUSTOMER), priority=3)

        assert resolve([first, second]) == first
        assert resolve([second, first]) == second

    def test_candidates_listed_most_specific_first(self):
        global_rule = rule(GlobalScope(), priority=9)
        customer_rule = rule(CustomerScope(CUSTOMER))

        assert candidate_rules([global_rule, customer_rule], CUSTOMER, ARTICLE, GROUP, ON) == [
            customer_rule,
            global_rule,
        ]


class TestValidity:
    """Only rules in force on the date are candidates."""

    def test_inactive_rule_ignored(self):
        inactive = rule(CustomerArticleScope(CUSTOMER, ARTICLE), active=False)
        fallback = rule(GlobalScope())

        assert resolve([inactive, fallback]) == fallback

    @pytest.mark.parametrize(
        "valid_from, valid_to, expected",
        [
            (None, None, True),
            (date(2024, 3, 15), None, True),
            (None, date(2024, 3, 15), True),
            (date(2024, 3, 16), None, False),
            (None, date(2024, 3, 14), False),
            (date(2024, 1, 1), date(2024, 12, 31), True),
        ],
    )
    def test_validity_window_inclusive(self, valid_from, valid_to, expected):
        r = rule(GlobalScope(), valid_from=valid_from, valid_to=valid_to)

        assert (resolve([r]) == r) is expected

    def test_no_rules(self):
        assert resolve([]) is None


class TestPricingRuleValueObject:
    """Validation of rule fields and scope construction."""

    def test_global_scope_rejects_customer_key(self):
        with pytest.raises(InvalidPricingScopeError) as exc_info:
            build_scope(PricingScopeType.GLOBAL, customer_id=CUSTOMER)

        assert exc_info.value.code == "INVALID_PRICING_SCOPE"

    def test_customer_article_scope_requires_both_keys(self):
        with pytest.raises(InvalidPricingScopeError):
            build_scope("CUSTOMER_ARTICLE", customer_id=CUSTOMER)

    def test_build_scope_variants(self):
        assert build_scope("GLOBAL") == GlobalScope()
        assert build_scope("ARTICLE_GROUP", article_group_id=GROUP) == ArticleGroupScope(GROUP)
        assert build_scope("CUSTOMER_ARTICLE", customer_id=CUSTOMER, article_id=ARTICLE) == (
            CustomerArticleScope(CUSTOMER, ARTICLE)
        )

    @pytest.mark.parametrize(
        "field, value",
        [
            ("discount", Decimal("1.5")),
            ("discount", Decimal("-0.1")),
            ("markup", Decimal("-0.1")),
            ("minimum_charge", Decimal("-1")),
        ],
    )
    def test_out_of_range_fields_rejected(self, field, value):
        with pytest.raises(InvalidPricingRuleError) as exc_info:
            rule(GlobalScope(), **{field: value})

        assert exc_info.value.field == field

    def test_inverted_validity_rejected(self):
        with pytest.raises(InvalidPricingRuleError):
            rule(GlobalScope(), valid_from=date(2024, 2, 1), valid_to=date(2024, 1, 1))
