"""
Audit trail writer and activity feed reader.
"""

from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy import select

from fee_flywheel.core.database import get_async_session
from fee_flywheel.models.activity import ActivityType, WalletActivity


logger = structlog.get_logger(__name__)

FEED_MAX_LIMIT = 50


class ActivityLogger:
    """
    Fire-and-forget appends to the activity store.

    Write failures are logged and swallowed so an audit outage never blocks
    a financial action.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_async_session
        self.logger = logger.bind(service="activity_logger")

    async def record(
        self,
        wallet_id: str,
        activity_type: ActivityType,
        description: str,
        token_name: Optional[str] = None,
        signature: Optional[str] = None,
        amount_sol: Optional[Decimal] = None,
    ) -> bool:
        try:
            async with self.session_factory() as db:
                db.add(WalletActivity(
                    wallet_id=wallet_id,
                    activity_type=activity_type.value,
                    activity_description=description,
                    token_name=token_name,
                    transaction_signature=signature,
                    amount_sol=amount_sol,
                ))
            return True
        except Exception as e:
            self.logger.warning(
                "Failed to write activity record",
                wallet_id=wallet_id,
                activity_type=activity_type.value,
                error=str(e)
            )
            return False


class ActivityFeedRepository:
    """Newest-first listing of successful activities."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_async_session

    async def list_recent(self, kind: str = "all", limit: int = 20) -> List[WalletActivity]:
        limit = max(1, min(limit, FEED_MAX_LIMIT))
        failed_values = [t.value for t in ActivityType if t.is_failure]

        query = (
            select(WalletActivity)
            .where(WalletActivity.activity_type.not_in(failed_values))
            .order_by(WalletActivity.created_at.desc(), WalletActivity.id.desc())
            .limit(limit)
        )
        if kind == "buy":
            query = query.where(WalletActivity.activity_type.in_([t.value for t in ActivityType if t.is_buy]))
        elif kind == "claim":
            query = query.where(WalletActivity.activity_type.in_([t.value for t in ActivityType if t.is_claim]))

        async with self.session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())
