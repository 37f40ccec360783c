"""
Pass trigger route.
Invoked by an external cron with the shared secret.
"""

from fastapi import APIRouter, Depends, HTTPException, status

import structlog

from fee_flywheel.api.dependencies import get_orchestrator, verify_cron_secret
from fee_flywheel.api.schemas.reinvest import PassSummaryResponse
from fee_flywheel.core.exceptions import FlywheelException
from fee_flywheel.services.reinvest import ReinvestOrchestrator


logger = structlog.get_logger(__name__)

router = APIRouter()


@router.api_route(
    "/cron",
    methods=["GET", "POST"],
    response_model=PassSummaryResponse,
    dependencies=[Depends(verify_cron_secret)],
    summary="Run Reinvest Pass",
    description="Claim creator fees for every active wallet and reinvest the proceeds"
)
async def run_reinvest_pass(
    orchestrator: ReinvestOrchestrator = Depends(get_orchestrator)
) -> PassSummaryResponse:
    """Run one full pass and return its summary."""
    try:
        report = await orchestrator.run_pass()
    except FlywheelException:
        raise
    except Exception as e:
        logger.error("Reinvest pass crashed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "PASS_FAILED",
                "message": str(e)
            }
        )

    stats = report.stats
    if stats.total_wallets == 0:
        return PassSummaryResponse(message="No active wallets to process", processed=0)

    return PassSummaryResponse(
        message=f"Processed {stats.processed} of {stats.total_wallets} wallets",
        processed=stats.processed,
        duration_ms=stats.duration_ms,
        total_wallets=stats.total_wallets,
        mode=stats.mode,
        target_token=stats.target_token,
        stats=stats.to_dict(),
        results=[r.to_dict() for r in report.results],
    )
