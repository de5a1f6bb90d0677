"""
Loyalty points ledger for Django.

Balances per (user, scope), an append-only transaction journal, tier and
milestone policies, and an operation boundary returning uniform results.
"""

__version__ = "0.1.0"
