"""
YAML loader for billing configuration sets.

Responsibility:
    Read a configuration YAML file (``yaml.safe_load``), translate it into
    a ``BillingConfig`` and compute a deterministic checksum of the source
    document.

Failure modes:
    - FileNotFoundError if the file does not exist.
    - yaml.YAMLError for malformed YAML.
    - ValueError for unknown keys or invalid values.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingConfig
from billing_engines.kpi import PortfolioThresholds

_TOP_LEVEL_KEYS = frozenset({
    "currency",
    "money_places",
    "ratio_places",
    "default_work_days",
    "work_days_per_week",
    "portfolio_thresholds",
    "range_max_workers",
})

_THRESHOLD_KEYS = frozenset({"tg_red", "tg_yellow", "deviation_red", "deviation_yellow"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_thresholds(data: dict[str, Any] | None) -> PortfolioThresholds:
    data = data or {}
    unknown = set(data) - _THRESHOLD_KEYS
    if unknown:
        raise ValueError(f"Unknown portfolio_thresholds keys: {sorted(unknown)}")
    defaults = PortfolioThresholds()
    return PortfolioThresholds(
        **{
            key: Decimal(str(data[key])) if key in data else getattr(defaults, key)
            for key in sorted(_THRESHOLD_KEYS)
        }
    )


def parse_config(data: dict[str, Any]) -> BillingConfig:
    """Build a BillingConfig from a parsed YAML document."""
    body = data.get("billing", data)
    unknown = set(body) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
    defaults = BillingConfig.with_defaults()
    workers = body.get("range_max_workers", defaults.range_max_workers)
    return BillingConfig(
        currency=str(body.get("currency", defaults.currency)),
        money_places=int(body.get("money_places", defaults.money_places)),
        ratio_places=int(body.get("ratio_places", defaults.ratio_places)),
        default_work_days=int(body.get("default_work_days", defaults.default_work_days)),
        work_days_per_week=int(body.get("work_days_per_week", defaults.work_days_per_week)),
        portfolio_thresholds=parse_thresholds(body.get("portfolio_thresholds")),
        range_max_workers=int(workers) if workers is not None else None,
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> BillingConfig:
    return parse_config(load_yaml_file(path))
