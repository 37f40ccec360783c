"""
Core reinvest types.
"""

from .types import (
    ClaimStatus,
    WalletState,
    PassStatus,
    WalletRecord,
    TokenRecord,
    ClaimOutcome,
    ConfirmedClaim,
    TradeOutcome,
    WalletRunResult,
    PassStats,
    PassReport,
)

__all__ = [
    "ClaimStatus",
    "WalletState",
    "PassStatus",
    "WalletRecord",
    "TokenRecord",
    "ClaimOutcome",
    "ConfirmedClaim",
    "TradeOutcome",
    "WalletRunResult",
    "PassStats",
    "PassReport",
]
