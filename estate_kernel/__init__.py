"""
Estate Kernel

Double-entry ledger core for an estate residents' association:
- Chart of accounts with derived normal balances
- Balanced, sequentially numbered journal entries
- Void and reversal without mutating posted lines
- Balances computed from posted lines at query time
"""

__version__ = "0.1.0"
