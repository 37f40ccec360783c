"""
Repository for the issued-token directory.
"""

from typing import Dict

import structlog
from sqlalchemy import select

from fee_flywheel.core.database import get_async_session
from fee_flywheel.core.exceptions import DatabaseError
from fee_flywheel.models.token import Token
from fee_flywheel.services.reinvest.core.types import TokenRecord


logger = structlog.get_logger(__name__)


class TokenRepository:
    """Read-only access to tokens that have an owning wallet."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_async_session
        self.logger = logger.bind(service="token_repository")

    async def get_wallet_token_map(self) -> Dict[str, TokenRecord]:
        """Map wallet id -> owned token."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(Token.wallet_id, Token.mint_address, Token.name, Token.symbol)
                    .where(Token.wallet_id.is_not(None))
                )
                token_map = {
                    row.wallet_id: TokenRecord(
                        mint_address=row.mint_address,
                        name=row.name,
                        symbol=row.symbol,
                        wallet_id=row.wallet_id,
                    )
                    for row in result.all()
                }

                self.logger.info("Retrieved wallet token map", count=len(token_map))
                return token_map

        except Exception as e:
            self.logger.error("Failed to get wallet token map", error=str(e))
            raise DatabaseError(f"Failed to load token directory: {e}") from e
