"""
Ledger operations for reinvest passes.
"""

from .balance_oracle import BalanceOracle
from .balance_watcher import BalanceChangeWatcher

__all__ = [
    "BalanceOracle",
    "BalanceChangeWatcher",
]
