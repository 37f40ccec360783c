"""
Schemas for pass summaries and the activity feed.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .common import APIResponse


class PassSummaryResponse(APIResponse):
    """Result of one triggered pass."""
    processed: int = 0
    duration_ms: Optional[int] = None
    total_wallets: Optional[int] = None
    mode: Optional[str] = None
    target_token: Optional[str] = None
    stats: Optional[Dict[str, Any]] = None
    results: List[Dict[str, Any]] = Field(default_factory=list)


class ActivityItem(BaseModel):
    """One entry of the public activity feed."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    wallet_id: str
    activity_type: str
    activity_description: str
    token_name: Optional[str] = None
    transaction_signature: Optional[str] = None
    amount_sol: Optional[float] = None
    created_at: datetime


class ActivityFeedResponse(APIResponse):
    """Newest-first list of successful activities."""
    activities: List[ActivityItem] = Field(default_factory=list)
    count: int = 0
