"""
Pricing Module (``billing_modules.pricing``).

Pricing rule administration, preview, and the single resolution path used
by the time-entry pipeline.
"""

from billing_modules.pricing.models import PricingPreview
from billing_modules.pricing.service import PricingService

__all__ = ["PricingPreview", "PricingService"]
