"""
Append-only audit trail of every financial action taken for a wallet.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Integer, Text, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utcnow


class ActivityType(str, Enum):
    """Closed set of audit record kinds."""
    FEE_CLAIMED = "fee_claimed"
    FEE_CLAIM_FAILED = "fee_claim_failed"
    FEE_CLAIM_UNCONFIRMED = "fee_claim_unconfirmed"
    BUY_TARGET_TOKEN = "buy_target_token"
    BUY_TARGET_TOKEN_FAILED = "buy_target_token_failed"
    BUY_SELF_TOKEN = "buy_self_token"
    BUY_SELF_TOKEN_FAILED = "buy_self_token_failed"
    TRANSFER_TO_COLLECTOR = "transfer_to_collector"
    TRANSFER_TO_COLLECTOR_FAILED = "transfer_to_collector_failed"
    BUY_CONSOLIDATED = "buy_consolidated"
    BUY_CONSOLIDATED_FAILED = "buy_consolidated_failed"

    @property
    def is_failure(self) -> bool:
        return self in _FAILURE_TYPES

    @property
    def is_buy(self) -> bool:
        return self.value.startswith("buy_")

    @property
    def is_claim(self) -> bool:
        return self.value.startswith("fee_claim")


_FAILURE_TYPES = frozenset({
    ActivityType.FEE_CLAIM_FAILED,
    ActivityType.FEE_CLAIM_UNCONFIRMED,
    ActivityType.BUY_TARGET_TOKEN_FAILED,
    ActivityType.BUY_SELF_TOKEN_FAILED,
    ActivityType.TRANSFER_TO_COLLECTOR_FAILED,
    ActivityType.BUY_CONSOLIDATED_FAILED,
})


class WalletActivity(BaseModel):
    """Immutable activity record; rows are inserted, never updated."""

    __tablename__ = "wallet_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    wallet_id: Mapped[str] = mapped_column(
        String(36),
        index=True,
        comment="Wallet the action was taken for"
    )

    activity_type: Mapped[str] = mapped_column(
        String(40),
        comment="ActivityType value"
    )

    activity_description: Mapped[str] = mapped_column(Text, comment="Human readable summary")

    token_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    transaction_signature: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        comment="Ledger signature reported by the venue, if any"
    )

    amount_sol: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(20, 9),
        nullable=True,
        comment="Amount in SOL"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow
    )

    __table_args__ = (
        Index("idx_wallet_activities_created", "created_at"),
        Index("idx_wallet_activities_type_created", "activity_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<WalletActivity(wallet={self.wallet_id}, type={self.activity_type}, amount={self.amount_sol})>"
