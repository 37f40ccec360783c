"""
Fee claim, buy and transfer executors.

Each executor makes at most one venue call per invocation and never
raises for venue-side failures; the outcome object carries the error.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Optional

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.core.exceptions import VenueError
from fee_flywheel.services.reinvest.core.types import (
    BuyOutcome,
    ClaimOutcome,
    ClaimStatus,
    TradeOutcome,
    TransferOutcome,
)
from .pumpportal_client import PumpPortalClient
from .responses import classify_claim_response, parse_trade_response


logger = structlog.get_logger(__name__)


def round_down_to_lot(amount: Decimal, precision: Optional[int] = None) -> Decimal:
    """Round `amount` down to the venue's lot precision."""
    places = settings.lot_precision if precision is None else precision
    quantum = Decimal(1).scaleb(-places)
    return Decimal(amount).quantize(quantum, rounding=ROUND_DOWN)


class FeeClaimClient:
    """Requests creator fee collection for one wallet/token."""

    def __init__(self, venue: PumpPortalClient, pool: Optional[str] = None):
        self.venue = venue
        self.pool = pool or settings.venue_pool
        self.logger = logger.bind(service="fee_claim_client")

    async def claim(self, api_key: str, mint: Optional[str]) -> ClaimOutcome:
        try:
            response = await self.venue.collect_fee(api_key, mint=mint, pool=self.pool)
        except VenueError as e:
            return ClaimOutcome(status=ClaimStatus.FAILED, error=e.message)

        outcome = classify_claim_response(response.status_code, response.body)
        self.logger.info(
            "Fee claim classified",
            mint=mint,
            http_status=response.status_code,
            status=outcome.status.value,
            signature=outcome.signature
        )
        return outcome


class _TradeExecutor:
    """Shared rounding and minimum-size rules for buys and transfers."""

    def __init__(
        self,
        venue: PumpPortalClient,
        min_trade_sol: Optional[Decimal] = None,
        lot_precision: Optional[int] = None,
    ):
        self.venue = venue
        self.min_trade_sol = min_trade_sol if min_trade_sol is not None else settings.min_trade_sol
        self.lot_precision = lot_precision if lot_precision is not None else settings.lot_precision

    def _prepare(self, amount_sol: Decimal) -> tuple:
        """Return (rounded amount, rejection outcome or None)."""
        rounded = round_down_to_lot(amount_sol, self.lot_precision)
        if rounded < self.min_trade_sol:
            return rounded, TradeOutcome(
                success=False,
                amount=rounded,
                error=f"Amount {rounded} SOL below minimum trade size {self.min_trade_sol} SOL"
            )
        return rounded, None


class BuyExecutor(_TradeExecutor):
    """Market buys of a token, denominated in SOL."""

    def __init__(self, venue: PumpPortalClient, slippage: Optional[int] = None, **kwargs):
        super().__init__(venue, **kwargs)
        self.slippage = slippage if slippage is not None else settings.buy_slippage
        self.logger = logger.bind(service="buy_executor")

    async def buy(self, api_key: str, mint: str, amount_sol: Decimal) -> BuyOutcome:
        rounded, rejected = self._prepare(amount_sol)
        if rejected:
            self.logger.info("Buy rejected locally", mint=mint, amount_sol=str(rounded))
            return rejected

        self.logger.info("Executing buy", mint=mint, amount_sol=str(rounded))
        try:
            response = await self.venue.buy(api_key, mint, rounded, slippage=self.slippage, pool="auto")
        except VenueError as e:
            return TradeOutcome(success=False, amount=rounded, error=e.message)

        outcome = parse_trade_response(response.status_code, response.body, rounded)
        if outcome.success:
            self.logger.info("Buy executed", mint=mint, amount_sol=str(rounded), signature=outcome.signature)
        else:
            self.logger.error("Buy failed", mint=mint, amount_sol=str(rounded), error=outcome.error)
        return outcome


class TransferExecutor(_TradeExecutor):
    """SOL transfers between wallets."""

    def __init__(self, venue: PumpPortalClient, **kwargs):
        super().__init__(venue, **kwargs)
        self.logger = logger.bind(service="transfer_executor")

    async def transfer(self, api_key: str, destination: str, amount_sol: Decimal) -> TransferOutcome:
        rounded, rejected = self._prepare(amount_sol)
        if rejected:
            self.logger.info("Transfer rejected locally", destination=destination, amount_sol=str(rounded))
            return rejected

        self.logger.info("Executing transfer", destination=destination, amount_sol=str(rounded))
        try:
            response = await self.venue.transfer(api_key, destination, rounded)
        except VenueError as e:
            return TradeOutcome(success=False, amount=rounded, error=e.message)

        outcome = parse_trade_response(response.status_code, response.body, rounded)
        if outcome.success:
            self.logger.info("Transfer executed", destination=destination, amount_sol=str(rounded), signature=outcome.signature)
        else:
            self.logger.error("Transfer failed", destination=destination, amount_sol=str(rounded), error=outcome.error)
        return outcome
