"""
Billing configuration schema.

Responsibility:
    Frozen dataclass describing the runtime settings of the billing core.
    Validation happens in ``__post_init__`` so that an invalid document
    fails at load time, not at first use.

Failure modes:
    - ValueError for negative decimal places, non-positive day counts,
      thresholds out of order, or a non-positive worker count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from billing_engines.kpi import PortfolioThresholds


@dataclass(frozen=True)
class BillingConfig:
    """Runtime configuration of the billing core."""

    currency: str = "SEK"
    money_places: int = 2
    ratio_places: int = 4
    default_work_days: int = 22
    work_days_per_week: int = 5
    portfolio_thresholds: PortfolioThresholds = field(default_factory=PortfolioThresholds)
    range_max_workers: int | None = None
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.currency:
            raise ValueError("currency must not be empty")
        if self.money_places < 0:
            raise ValueError("money_places cannot be negative")
        if self.ratio_places < 0:
            raise ValueError("ratio_places cannot be negative")
        if self.default_work_days <= 0:
            raise ValueError("default_work_days must be positive")
        if not 1 <= self.work_days_per_week <= 7:
            raise ValueError("work_days_per_week must be between 1 and 7")
        t = self.portfolio_thresholds
        if not Decimal("0") <= t.tg_red <= t.tg_yellow:
            raise ValueError("portfolio thresholds require 0 <= tg_red <= tg_yellow")
        if not Decimal("0") <= t.deviation_yellow <= t.deviation_red:
            raise ValueError(
                "portfolio thresholds require 0 <= deviation_yellow <= deviation_red"
            )
        if self.range_max_workers is not None and self.range_max_workers < 1:
            raise ValueError("range_max_workers must be at least 1")

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
