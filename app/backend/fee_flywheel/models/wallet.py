"""
Custodial wallet registry model.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class SecureWallet(BaseModel, TimestampMixin):
    """A custodial wallet that owns (at most) one issued token."""

    __tablename__ = "secure_wallets"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Wallet identifier"
    )

    public_key: Mapped[str] = mapped_column(
        String(44),
        unique=True,
        index=True,
        comment="Solana address of the wallet"
    )

    api_key: Mapped[str] = mapped_column(
        String(256),
        comment="Trading venue API credential bound to this wallet"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        comment="Whether the wallet takes part in fee collection passes"
    )

    last_fee_collection: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Completion time of the last fee collection pass"
    )

    __table_args__ = (
        Index("idx_secure_wallets_active_created", "is_active", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SecureWallet(id={self.id}, public_key={self.public_key}, active={self.is_active})>"
