"""
Balance-delta polling used to confirm that a claim or a transfer landed.
"""

import asyncio
from typing import Optional

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.core.exceptions import SolanaRPCError
from fee_flywheel.services.reinvest.core.types import ConfirmedClaim
from .balance_oracle import BalanceOracle


logger = structlog.get_logger(__name__)


class BalanceChangeWatcher:
    """
    Detects and quantifies a balance increase after an action that credits
    a wallet.

    Settlement latency is unpredictable, so the watcher waits an initial
    settle delay and then polls a bounded number of times. The first delta
    above the dust threshold is returned as-is. When no delta shows up the
    result is a zero-amount ConfirmedClaim, never an exception.
    """

    def __init__(
        self,
        oracle: BalanceOracle,
        initial_delay: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        dust_threshold_lamports: Optional[int] = None,
    ):
        self.oracle = oracle
        self.initial_delay = initial_delay if initial_delay is not None else settings.claim_settle_delay
        self.poll_interval = poll_interval if poll_interval is not None else settings.balance_poll_interval
        self.max_polls = max_polls if max_polls is not None else settings.balance_max_polls
        self.dust_threshold = (
            dust_threshold_lamports if dust_threshold_lamports is not None
            else settings.dust_threshold_lamports
        )
        self.logger = logger.bind(service="balance_watcher")

    async def _read_delta(self, address: str, snapshot: int) -> Optional[int]:
        try:
            current = await self.oracle.get_balance(address)
        except SolanaRPCError as e:
            self.logger.warning("Balance poll failed", address=address, error=e.message)
            return None
        return current - snapshot

    async def wait_for_increase(
        self,
        address: str,
        snapshot: int,
        initial_delay: Optional[float] = None
    ) -> ConfirmedClaim:
        """Poll `address` until its balance exceeds `snapshot` by more than dust."""
        delay = self.initial_delay if initial_delay is None else initial_delay
        await asyncio.sleep(delay)

        polls = 0
        for _ in range(self.max_polls):
            polls += 1
            delta = await self._read_delta(address, snapshot)
            if delta is not None and delta > self.dust_threshold:
                self.logger.info("Balance increase confirmed", address=address, delta_lamports=delta, polls=polls)
                return ConfirmedClaim(claimed_lamports=delta, polls=polls)
            await asyncio.sleep(self.poll_interval)

        # Last look after the final interval
        polls += 1
        delta = await self._read_delta(address, snapshot)
        if delta is not None and delta > self.dust_threshold:
            self.logger.info("Balance increase confirmed on final read", address=address, delta_lamports=delta)
            return ConfirmedClaim(claimed_lamports=delta, polls=polls)

        self.logger.warning(
            "Balance unchanged after polling",
            address=address,
            snapshot=snapshot,
            last_delta=delta,
            polls=polls
        )
        return ConfirmedClaim(claimed_lamports=0, polls=polls)
