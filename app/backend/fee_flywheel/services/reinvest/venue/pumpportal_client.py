"""
HTTP client for the PumpPortal lightning trade API.

Every action is a POST of a JSON payload to the trade endpoint with the
wallet's API key as a query parameter. The client returns raw responses;
classification happens in `responses`.
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, Optional

import aiohttp
import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.core.exceptions import VenueError
from .responses import VenueResponse


logger = structlog.get_logger(__name__)


class PumpPortalClient:
    """Thin async wrapper around the venue's trade endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url or settings.venue_base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.venue_timeout)
        self._session = session
        self._owns_session = session is None
        self.logger = logger.bind(service="pumpportal_client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def _post(self, api_key: str, payload: Dict[str, Any]) -> VenueResponse:
        session = await self._get_session()
        try:
            async with session.post(
                self.base_url,
                params={"api-key": api_key},
                json=payload,
                headers={"Content-Type": "application/json"}
            ) as response:
                body = await response.text()
                return VenueResponse(status_code=response.status, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error("Venue request failed", action=payload.get("action"), error=str(e) or type(e).__name__)
            raise VenueError(
                f"Venue request failed: {str(e) or type(e).__name__}",
                {"action": payload.get("action")}
            )

    async def collect_fee(
        self,
        api_key: str,
        mint: Optional[str] = None,
        priority_fee: Optional[Decimal] = None,
        pool: Optional[str] = None,
    ) -> VenueResponse:
        """Request collection of accrued creator fees."""
        payload: Dict[str, Any] = {
            "action": "collectCreatorFee",
            "priorityFee": float(priority_fee if priority_fee is not None else settings.priority_fee),
            "pool": pool or settings.venue_pool,
        }
        if mint:
            payload["mint"] = mint
        return await self._post(api_key, payload)

    async def buy(
        self,
        api_key: str,
        mint: str,
        amount_sol: Decimal,
        slippage: Optional[int] = None,
        priority_fee: Optional[Decimal] = None,
        pool: str = "auto",
    ) -> VenueResponse:
        """Request a market buy denominated in SOL."""
        payload = {
            "action": "buy",
            "mint": mint,
            "amount": float(amount_sol),
            "denominatedInSol": "true",
            "slippage": slippage if slippage is not None else settings.buy_slippage,
            "priorityFee": float(priority_fee if priority_fee is not None else settings.priority_fee),
            "pool": pool,
        }
        return await self._post(api_key, payload)

    async def transfer(
        self,
        api_key: str,
        destination: str,
        amount_sol: Decimal,
        priority_fee: Optional[Decimal] = None,
    ) -> VenueResponse:
        """Move SOL from the key's wallet to `destination`."""
        payload = {
            "action": "transfer",
            "to": destination,
            "amount": float(amount_sol),
            "denominatedInSol": "true",
            "priorityFee": float(priority_fee if priority_fee is not None else settings.priority_fee),
        }
        return await self._post(api_key, payload)
