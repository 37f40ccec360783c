"""
Issued token directory model.
"""

from typing import Optional

from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class Token(BaseModel, TimestampMixin):
    """Token issued by one of the custodial wallets."""

    __tablename__ = "tokens"

    mint_address: Mapped[str] = mapped_column(
        String(44),
        primary_key=True,
        comment="Token mint address"
    )

    name: Mapped[str] = mapped_column(String(100), comment="Display name")

    symbol: Mapped[str] = mapped_column(String(20), comment="Ticker symbol")

    wallet_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("secure_wallets.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
        comment="Owning wallet (at most one token per wallet)"
    )

    def __repr__(self) -> str:
        return f"<Token(mint={self.mint_address}, symbol={self.symbol}, wallet={self.wallet_id})>"
