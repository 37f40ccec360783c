"""
Repository for the custodial wallet registry.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import select, update

from fee_flywheel.core.database import get_async_session
from fee_flywheel.core.exceptions import DatabaseError
from fee_flywheel.models.wallet import SecureWallet
from fee_flywheel.services.reinvest.core.types import WalletRecord


logger = structlog.get_logger(__name__)


class WalletRepository:
    """
    Reads active wallets and records per-wallet pass completion.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_async_session
        self.logger = logger.bind(service="wallet_repository")

    async def get_active_wallets(self) -> List[WalletRecord]:
        """Active wallets, oldest first."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(SecureWallet)
                    .where(SecureWallet.is_active.is_(True))
                    .order_by(SecureWallet.created_at.asc())
                )
                wallets = [
                    WalletRecord(
                        id=w.id,
                        public_key=w.public_key,
                        api_key=w.api_key,
                        last_fee_collection=w.last_fee_collection,
                    )
                    for w in result.scalars().all()
                ]

                self.logger.info("Retrieved active wallets", count=len(wallets))
                return wallets

        except Exception as e:
            self.logger.error("Failed to get active wallets", error=str(e))
            raise DatabaseError(f"Failed to load active wallets: {e}") from e

    async def mark_processed(self, wallet_id: str, when: Optional[datetime] = None) -> None:
        """Set last_fee_collection for one wallet."""
        when = when or datetime.now(timezone.utc)
        async with self.session_factory() as db:
            await db.execute(
                update(SecureWallet)
                .where(SecureWallet.id == wallet_id)
                .values(last_fee_collection=when)
            )
        self.logger.debug("Wallet last run updated", wallet_id=wallet_id, last_fee_collection=when.isoformat())
