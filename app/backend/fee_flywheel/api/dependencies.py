"""
API dependencies for FastAPI endpoints.
Provides the shared-secret check and service construction.
"""

import hmac
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

import structlog

from fee_flywheel.core.config import settings, Settings
from fee_flywheel.core.exceptions import ConfigurationError
from fee_flywheel.services.reinvest import ReinvestOrchestrator, build_orchestrator
from fee_flywheel.services.reinvest.database import ActivityFeedRepository


logger = structlog.get_logger(__name__)


# Security scheme for the cron trigger
cron_auth_scheme = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    """Settings dependency (overridable in tests)."""
    return settings


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(cron_auth_scheme),
    config: Settings = Depends(get_settings)
) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>`."""
    if not config.cron_secret:
        raise ConfigurationError("CRON_SECRET is not configured")

    supplied = credentials.credentials if credentials else ""
    if not hmac.compare_digest(supplied.encode(), config.cron_secret.encode()):
        logger.warning("Unauthorized cron trigger attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "UNAUTHORIZED",
                "message": "Invalid or missing cron secret"
            },
            headers={"WWW-Authenticate": "Bearer"}
        )


async def get_orchestrator(
    config: Settings = Depends(get_settings)
) -> AsyncGenerator[ReinvestOrchestrator, None]:
    """Build an orchestrator for one request and close its clients afterwards."""
    orchestrator = build_orchestrator(config)
    try:
        yield orchestrator
    finally:
        await orchestrator.close()


def get_activity_feed() -> ActivityFeedRepository:
    return ActivityFeedRepository()
