"""
Database models for the fee flywheel backend.

Contains the SQLAlchemy models for the wallet registry, the token
directory and the activity audit trail.
"""

from .base import Base, BaseModel, TimestampMixin
from .wallet import SecureWallet
from .token import Token
from .activity import WalletActivity, ActivityType

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "SecureWallet",
    "Token",
    "WalletActivity",
    "ActivityType",
]
