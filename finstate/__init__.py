"""
Finance State Engine - Source Package

Turns raw ledger-like records (loans, budgets, goals, recurring bills,
accounts) into the values a personal-finance client shows and acts upon,
and applies the mutations that change them.

DESIGN PRINCIPLES:
1. Derived values are computed, never stored
2. Validate first, mutate second, verify third
3. No silent corrections
4. Every mutation must be auditable
5. The external store is the source of truth
"""

__version__ = "1.0.0"
__author__ = "Finance State Team"
