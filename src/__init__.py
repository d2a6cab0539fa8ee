"""
Couple Harmony - Source Package

The computation core of a couple-budgeting application: who owes whom
over shared expenses, and which subscriptions fall due when.

DESIGN PRINCIPLES:
1. Recompute on demand, never cache a balance
2. Fail early, fail visibly
3. No silent corrections (no clamped ratios, no clamped balances)
4. One bad record never hides the rest of the ledger
5. The viewing user is always an explicit argument
"""

__version__ = "1.0.0"
__author__ = "Couple Harmony Team"
