"""
Registry, token directory and activity store access.
"""

from .wallet_repository import WalletRepository
from .token_repository import TokenRepository
from .activity_logger import ActivityLogger, ActivityFeedRepository

__all__ = [
    "WalletRepository",
    "TokenRepository",
    "ActivityLogger",
    "ActivityFeedRepository",
]
