"""
Billing Kernel - shared core for the time-billing back office.

Provides:
- Structured JSON logging and a typed exception hierarchy
- Year/month periods and frozen domain DTOs
- SQLAlchemy persistence for customers, articles, employees, pricing
  rules, budget entries, time entries and period locks
- Read-only selectors over that schema
"""

__version__ = "0.1.0"
