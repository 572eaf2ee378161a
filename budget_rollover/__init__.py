"""
Budget Rollover - Source Package

Month-to-month budget carry-over for a personal finance tracker: unspent
funds of opted-in categories roll into the next period's budgets, under a
cap relative to each category's original limit.

DESIGN PRINCIPLES:
1. Preview and execute share one derivation path
2. Execute recomputes from current data, never from a stale preview
3. One failed category never blocks the others
4. Every step must be auditable
5. Storage and identity are injected, never global
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Tracker Team"
