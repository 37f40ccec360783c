"""
Public activity feed routes.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

import structlog

from fee_flywheel.api.dependencies import get_activity_feed
from fee_flywheel.api.schemas.reinvest import ActivityFeedResponse, ActivityItem
from fee_flywheel.services.reinvest.database import ActivityFeedRepository
from fee_flywheel.services.reinvest.database.activity_logger import FEED_MAX_LIMIT


logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/activity",
    response_model=ActivityFeedResponse,
    summary="Recent Activity",
    description="Newest successful claims and buys across all wallets"
)
async def get_recent_activity(
    type: str = Query("all", pattern="^(all|buy|claim)$", description="Activity filter"),
    limit: int = Query(20, ge=1, description=f"Number of items (capped at {FEED_MAX_LIMIT})"),
    feed: ActivityFeedRepository = Depends(get_activity_feed)
) -> ActivityFeedResponse:
    try:
        rows = await feed.list_recent(kind=type, limit=min(limit, FEED_MAX_LIMIT))
    except Exception as e:
        logger.error("Failed to load activity feed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "DATABASE_ERROR",
                "message": "Failed to load activity feed"
            }
        )

    activities = [ActivityItem.model_validate(row) for row in rows]
    return ActivityFeedResponse(activities=activities, count=len(activities))
