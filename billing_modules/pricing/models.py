"""
Pricing module result types.
"""

from __future__ import annotations

from dataclasses import dataclass

from billing_kernel.domain.pricing import PricingRule


@dataclass(frozen=True)
class PricingPreview:
    """
    The rule that would apply, plus every matching candidate.

    ``candidates`` is in resolution order (tier, then priority); its first
    element is ``rule``.
    """

    rule: PricingRule | None
    candidates: tuple[PricingRule, ...]
