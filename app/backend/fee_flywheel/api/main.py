"""
Main FastAPI application for the fee flywheel backend.
Configures the API server with routes, middleware, and error handling.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.core.database import DatabaseManager, close_database, init_database, is_initialized
from fee_flywheel.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    FlywheelException,
    ValidationError,
)
from fee_flywheel.core.logging import setup_logging
from fee_flywheel.api.middleware import add_middleware
from fee_flywheel.api.schemas.common import APIResponse, HealthCheckResponse, create_error_response
from fee_flywheel.api.routes import activity, cron


logger = structlog.get_logger(__name__)


ERROR_STATUS = {
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting fee flywheel API server")

    scheduler = None
    try:
        if not is_initialized():
            await init_database()

        if settings.scheduler_enabled:
            from fee_flywheel.scheduler.reinvest_scheduler import get_reinvest_scheduler
            scheduler = await get_reinvest_scheduler()
            await scheduler.start()
            logger.info("Background scheduler started")
    except Exception as e:
        logger.error("Failed to start background services", error=str(e))

    yield

    logger.info("Shutting down fee flywheel API server")
    try:
        if scheduler:
            await scheduler.stop()
        await close_database()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))


async def flywheel_exception_handler(request: Request, exc: FlywheelException) -> JSONResponse:
    """Map domain exceptions onto the error envelope."""
    status_code = next(
        (code for exc_type, code in ERROR_STATUS.items() if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.error(
        "Request failed with domain error",
        path=request.url.path,
        error_code=exc.code,
        error=exc.message
    )
    body = create_error_response(exc.message, error_code=exc.code, details=exc.details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Creator fee collection and reinvestment for a fleet of custodial wallets.",
        version=settings.app_version,
        lifespan=lifespan,
    )

    add_middleware(app)
    app.add_exception_handler(FlywheelException, flywheel_exception_handler)

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        tags=["System"],
        summary="Health Check",
        description="Check API server health and database connectivity"
    )
    async def health_check():
        if await DatabaseManager.health_check():
            return HealthCheckResponse(version=settings.app_version)

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "services": {
                    "database": "unhealthy",
                    "api": "healthy"
                }
            }
        )

    @app.get(
        "/",
        response_model=APIResponse,
        tags=["System"],
        summary="API Information"
    )
    async def root():
        return APIResponse(
            message=f"{settings.app_name} v{settings.app_version} ({settings.environment}, {settings.reinvest_mode} mode)"
        )

    app.include_router(cron.router, prefix=settings.api_prefix, tags=["Reinvest"])
    app.include_router(activity.router, prefix=settings.api_prefix, tags=["Activity"])

    logger.info("FastAPI application created successfully")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fee_flywheel.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
