"""
billing_config -- single public entrypoint for billing configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    It loads a YAML configuration set (the packaged ``sets/default.yaml``
    unless a path is given) and returns a frozen ``BillingConfig``.

Architecture position:
    Configuration -- sits above ``billing_kernel`` and ``billing_engines``
    and below ``billing_modules``.  The kernel never imports from here.

Failure modes:
    - FileNotFoundError -- the requested file does not exist.
    - ValueError -- unknown keys or invalid values.

Audit relevance:
    Every successful call emits a BILLING_CONFIG_TRACE record carrying the
    source path and checksum of the loaded document.
"""

from __future__ import annotations

from pathlib import Path

from billing_config.loader import load_config
from billing_config.schema import BillingConfig
from billing_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> BillingConfig:
    """
    Load and validate the active billing configuration.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``billing_config/sets/default.yaml``.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(path)
    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "currency": config.currency,
            "range_max_workers": config.range_max_workers,
        },
    )
    return config


__all__ = ["BillingConfig", "get_active_config"]
