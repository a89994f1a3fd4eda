"""
Treasury - Core Package

Bookkeeping core for a single organization's treasury: revenues and
expenses in two currencies, recurring obligations, aid-disbursement rolls
and financial reports.

DESIGN PRINCIPLES:
1. Every amount is reported in one currency
2. Fail loudly on bad exchange rates
3. Catch-up processing is idempotent
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Treasury Team"
