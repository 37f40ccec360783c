"""
SOL balance reads from the Solana ledger with bounded retries.
"""

import asyncio
from typing import Optional, Union

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey
import structlog

from fee_flywheel.core.config import settings, SolanaConfig
from fee_flywheel.core.exceptions import SolanaRPCError


logger = structlog.get_logger(__name__)


class BalanceOracle:
    """
    Reads a wallet's lamport balance.

    Transient RPC failures are retried with exponential backoff; after
    `max_retries` attempts a SolanaRPCError is raised.
    """

    def __init__(
        self,
        client: Optional[AsyncClient] = None,
        commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        rpc_config = SolanaConfig.get_rpc_config()
        self.commitment = Commitment(commitment or rpc_config["commitment"])
        self.client = client or AsyncClient(
            endpoint=rpc_config["endpoint"],
            commitment=self.commitment,
            timeout=rpc_config["timeout"]
        )
        self.max_retries = max_retries if max_retries is not None else settings.balance_read_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.balance_retry_delay
        self.logger = logger.bind(service="balance_oracle")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the RPC client connection."""
        await self.client.close()

    async def get_balance(self, address: Union[str, Pubkey]) -> int:
        """Get the balance of `address` in lamports."""
        pubkey = Pubkey.from_string(address) if isinstance(address, str) else address
        attempts = max(1, self.max_retries)
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                response = await self.client.get_balance(pubkey, commitment=self.commitment)
                return int(response.value)
            except Exception as e:
                last_error = e
                self.logger.warning(
                    "Balance read failed",
                    address=str(pubkey),
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    error=str(e)
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise SolanaRPCError(
            f"Failed to get balance for {pubkey}: {last_error}",
            {"address": str(pubkey), "attempts": attempts}
        )
