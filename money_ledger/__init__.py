"""
Money Ledger - Source Package

The client-side state core of a personal finance ledger: transactions,
categories and display preferences for one user, synchronized with a
backend-as-a-service remote store.

DESIGN PRINCIPLES:
1. Remote first: memory only reflects what the store accepted
2. Degrade, don't crash: fall back to bundled defaults and tell the user
3. Validate before the network: duplicate names and referenced categories
   are rejected without a remote call
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Ledger Team"
