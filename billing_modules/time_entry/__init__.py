"""
Time Entry Module (``billing_modules.time_entry``).

Time entry writes through the resolver + calculator pipeline.
"""

from billing_modules.time_entry.service import TimeEntryService

__all__ = ["TimeEntryService"]
