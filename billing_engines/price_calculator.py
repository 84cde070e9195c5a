"""
billing_engines.price_calculator -- Cost and billed price for worked hours.

Responsibility:
    Turn (hours, resolved rule or None, employee defaults, effective cost
    per hour) into the cost amount and calculated price stored on a time
    entry, and look up the effective cost per hour from cost history.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Called only by the
    time-entry pipeline, which is the sole writer of the derived fields.

Invariants enforced:
    - Without a rule: price = default_price_per_hour * hours.
    - With a rule, each step applies only when its field is set (a stored
      zero is applied), in this exact order:
        1. price_per_hour replaces the default-based price
        2. + fixed_price_component
        3. * (1 + markup)
        4. * (1 - discount)
        5. floored at minimum_charge
    - Rounding (ROUND_HALF_UP to ``money_places``) happens once, after
      the whole sequence.

Failure modes:
    - ValueError on negative hours or a negative cost per hour.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from billing_engines.tracer import traced_engine
from billing_kernel.domain.dtos import Employee, EmployeeCostRecord
from billing_kernel.domain.pricing import PricingRule
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.price_calculator")

ONE = Decimal("1")


@dataclass(frozen=True)
class PriceCalculation:
    """Derived pricing fields for one time entry."""

    cost_amount: Decimal
    calculated_price: Decimal
    pricing_rule_id: UUID | None
    cost_per_hour: Decimal


def effective_cost_per_hour(
    employee: Employee,
    history: Iterable[EmployeeCostRecord],
    on_date: date,
) -> Decimal:
    """
    Cost per hour for ``employee`` on ``on_date``.

    A history record covering the date takes precedence over the
    employee's current rate; among several covering records the one with
    the latest ``effective_from`` wins.
    """
    covering = [
        record
        for record in history
        if record.employee_id == employee.id and record.covers(on_date)
    ]
    if not covering:
        return employee.cost_per_hour
    return max(covering, key=lambda record: record.effective_from).cost_per_hour


def apply_rule(hours: Decimal, rule: PricingRule, default_price: Decimal) -> Decimal:
    """Unrounded price after the rule's adjustment sequence."""
    price = default_price
    if rule.price_per_hour is not None:
        price = rule.price_per_hour * hours
    if rule.fixed_price_component is not None:
        price += rule.fixed_price_component
    if rule.markup is not None:
        price *= ONE + rule.markup
    if rule.discount is not None:
        price *= ONE - rule.discount
    if rule.minimum_charge is not None and price < rule.minimum_charge:
        price = rule.minimum_charge
    return price


@traced_engine(
    "price_calculator", "1.0",
    fingerprint_fields=("hours", "rule", "cost_per_hour"),
)
def calculate_price(
    hours: Decimal,
    rule: PricingRule | None,
    employee: Employee,
    cost_per_hour: Decimal,
    money_places: int = 2,
) -> PriceCalculation:
    """
    Compute cost amount and calculated price.

    Args:
        hours: Worked hours (non-negative).
        rule: The resolved pricing rule, or None for the employee default.
        employee: Supplies ``default_price_per_hour``.
        cost_per_hour: Result of :func:`effective_cost_per_hour`.
        money_places: Decimal places of the rounded results.

    Raises:
        ValueError: If hours or cost_per_hour is negative.
    """
    if hours < 0:
        raise ValueError(f"hours must be non-negative, got {hours}")
    if cost_per_hour < 0:
        raise ValueError(f"cost_per_hour must be non-negative, got {cost_per_hour}")

    quantum = Decimal(1).scaleb(-money_places)
    default_price = employee.default_price_per_hour * hours
    raw_price = default_price if rule is None else apply_rule(hours, rule, default_price)

    result = PriceCalculation(
        cost_amount=(cost_per_hour * hours).quantize(quantum, rounding=ROUND_HALF_UP),
        calculated_price=raw_price.quantize(quantum, rounding=ROUND_HALF_UP),
        pricing_rule_id=rule.id if rule is not None else None,
        cost_per_hour=cost_per_hour,
    )
    logger.debug(
        "price_calculated",
        extra={
            "hours": str(hours),
            "pricing_rule_id": str(result.pricing_rule_id) if rule is not None else None,
            "cost_amount": str(result.cost_amount),
            "calculated_price": str(result.calculated_price),
        },
    )
    return result
