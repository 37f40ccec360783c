"""
Per-wallet claim -> confirm -> reinvest state machine.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import structlog

from fee_flywheel.core.config import settings
from fee_flywheel.models.activity import ActivityType
from .types import (
    ClaimStatus,
    TokenRecord,
    TradeOutcome,
    WalletRecord,
    WalletRunResult,
    WalletState,
    lamports_to_sol,
)
from ..blockchain import BalanceOracle, BalanceChangeWatcher
from ..database import ActivityLogger, WalletRepository
from ..venue import BuyExecutor, FeeClaimClient, TransferExecutor, round_down_to_lot


logger = structlog.get_logger(__name__)


class WalletPipeline:
    """
    Runs one wallet through a full pass.

    Flow:
    1. Snapshot the wallet's SOL balance
    2. Ask the venue to collect creator fees
    3. Confirm the claim by watching the balance delta
    4. Reinvest what was actually received, minus the fee reserve

    The pipeline never raises; every outcome ends in a WalletState and the
    wallet's last-run timestamp is touched exactly once for every state
    except NO_TOKEN.
    """

    def __init__(
        self,
        oracle: BalanceOracle,
        watcher: BalanceChangeWatcher,
        claim_client: FeeClaimClient,
        buy_executor: BuyExecutor,
        activity_logger: ActivityLogger,
        registry: WalletRepository,
        target_mint: str,
        transfer_executor: Optional[TransferExecutor] = None,
        collector_address: Optional[str] = None,
        min_claim_sol: Optional[Decimal] = None,
        fee_reserve_sol: Optional[Decimal] = None,
        min_trade_sol: Optional[Decimal] = None,
        lot_precision: Optional[int] = None,
    ):
        self.oracle = oracle
        self.watcher = watcher
        self.claim_client = claim_client
        self.buy_executor = buy_executor
        self.transfer_executor = transfer_executor
        self.activity_logger = activity_logger
        self.registry = registry
        self.target_mint = target_mint
        self.collector_address = collector_address

        self.min_claim_sol = min_claim_sol if min_claim_sol is not None else settings.min_claim_sol
        self.fee_reserve_sol = fee_reserve_sol if fee_reserve_sol is not None else settings.fee_reserve_sol
        self.min_trade_sol = min_trade_sol if min_trade_sol is not None else settings.min_trade_sol
        self.lot_precision = lot_precision if lot_precision is not None else settings.lot_precision

        if self.collector_address and self.transfer_executor is None:
            raise ValueError("Collector routing requires a transfer executor")

        self.logger = logger.bind(service="wallet_pipeline")

    async def run(self, wallet: WalletRecord, token: Optional[TokenRecord]) -> WalletRunResult:
        """Process a single wallet and return its terminal result."""
        result = WalletRunResult(wallet_id=wallet.id, wallet_public_key=wallet.public_key)
        log = self.logger.bind(wallet=wallet.public_key)

        if token is None:
            result.state = WalletState.NO_TOKEN
            log.info("Wallet owns no token, skipping")
            return result

        result.token_mint = token.mint_address
        result.token_name = token.name

        try:
            result.state = await self._process(wallet, token, result, log)
        except Exception as e:
            result.state = WalletState.ERROR
            result.errors.append(str(e))
            log.error("Wallet pipeline failed", error=str(e), error_type=type(e).__name__)

        if result.state.updates_last_run:
            await self._mark_processed(wallet, log)

        log.info(
            "Wallet pipeline finished",
            state=result.state.value,
            claimed_sol=str(result.claimed_amount),
            usable_sol=str(result.usable_amount)
        )
        return result

    async def _process(self, wallet: WalletRecord, token: TokenRecord, result: WalletRunResult, log) -> WalletState:
        snapshot = await self.oracle.get_balance(wallet.public_key)
        result.balance_before = lamports_to_sol(snapshot)

        claim = await self.claim_client.claim(wallet.api_key, token.mint_address)
        result.fee_claim = claim

        if claim.status is ClaimStatus.FAILED:
            result.errors.append(claim.error or "Fee claim failed")
            await self.activity_logger.record(
                wallet.id,
                ActivityType.FEE_CLAIM_FAILED,
                f"Failed to claim creator fees for {token.name}: {claim.error}",
                token_name=token.name,
                signature=claim.signature,
            )
            return WalletState.CLAIM_FAILED

        if claim.status is ClaimStatus.NOTHING_TO_CLAIM:
            log.info("No fees to claim", mint=token.mint_address)
            return WalletState.NO_FEES

        confirmed = await self.watcher.wait_for_increase(wallet.public_key, snapshot)
        if not confirmed.confirmed:
            message = "Claim accepted but balance did not increase"
            result.errors.append(message)
            log.warning(message, signature=claim.signature, polls=confirmed.polls)
            await self.activity_logger.record(
                wallet.id,
                ActivityType.FEE_CLAIM_UNCONFIRMED,
                f"{message} for {token.name}",
                token_name=token.name,
                signature=claim.signature,
            )
            return WalletState.CLAIM_ANOMALY

        claimed = confirmed.claimed_amount
        result.claimed_amount = claimed
        await self.activity_logger.record(
            wallet.id,
            ActivityType.FEE_CLAIMED,
            f"Claimed {claimed} SOL in creator fees for {token.name}",
            token_name=token.name,
            signature=claim.signature,
            amount_sol=claimed,
        )

        if claimed < self.min_claim_sol:
            log.info("Claimed amount below minimum", claimed_sol=str(claimed), min_claim_sol=str(self.min_claim_sol))
            return WalletState.BELOW_MINIMUM

        usable = claimed - self.fee_reserve_sol
        result.usable_amount = max(usable, Decimal("0"))
        if usable <= self.min_trade_sol:
            log.info("Usable amount too small to trade", usable_sol=str(usable))
            return WalletState.TOO_SMALL

        if token.mint_address == self.target_mint:
            result.target_buy = await self._buy(
                wallet, self.target_mint, usable,
                ActivityType.BUY_TARGET_TOKEN, ActivityType.BUY_TARGET_TOKEN_FAILED, token.name
            )
            self._collect_error(result, result.target_buy)
            return WalletState.DONE_SINGLE

        half = round_down_to_lot(usable / 2, self.lot_precision)

        if self.collector_address:
            result.collector_transfer, result.self_buy = await asyncio.gather(
                self._transfer_to_collector(wallet, half, token.name),
                self._buy(
                    wallet, token.mint_address, half,
                    ActivityType.BUY_SELF_TOKEN, ActivityType.BUY_SELF_TOKEN_FAILED, token.name
                ),
            )
            self._collect_error(result, result.collector_transfer)
        else:
            result.target_buy, result.self_buy = await asyncio.gather(
                self._buy(
                    wallet, self.target_mint, half,
                    ActivityType.BUY_TARGET_TOKEN, ActivityType.BUY_TARGET_TOKEN_FAILED, None
                ),
                self._buy(
                    wallet, token.mint_address, half,
                    ActivityType.BUY_SELF_TOKEN, ActivityType.BUY_SELF_TOKEN_FAILED, token.name
                ),
            )
            self._collect_error(result, result.target_buy)
        self._collect_error(result, result.self_buy)
        return WalletState.DONE_SPLIT

    async def _buy(
        self,
        wallet: WalletRecord,
        mint: str,
        amount: Decimal,
        ok_type: ActivityType,
        failed_type: ActivityType,
        token_name: Optional[str],
    ) -> TradeOutcome:
        try:
            outcome = await self.buy_executor.buy(wallet.api_key, mint, amount)
        except Exception as e:
            outcome = TradeOutcome(success=False, amount=amount, error=str(e))

        label = token_name or mint
        if outcome.success:
            await self.activity_logger.record(
                wallet.id, ok_type,
                f"Bought {outcome.amount} SOL of {label}",
                token_name=token_name, signature=outcome.signature, amount_sol=outcome.amount,
            )
        else:
            await self.activity_logger.record(
                wallet.id, failed_type,
                f"Failed to buy {amount} SOL of {label}: {outcome.error}",
                token_name=token_name, amount_sol=amount,
            )
        return outcome

    async def _transfer_to_collector(self, wallet: WalletRecord, amount: Decimal, token_name: str) -> TradeOutcome:
        try:
            outcome = await self.transfer_executor.transfer(wallet.api_key, self.collector_address, amount)
        except Exception as e:
            outcome = TradeOutcome(success=False, amount=amount, error=str(e))

        if outcome.success:
            await self.activity_logger.record(
                wallet.id, ActivityType.TRANSFER_TO_COLLECTOR,
                f"Transferred {outcome.amount} SOL to collector {self.collector_address}",
                token_name=token_name, signature=outcome.signature, amount_sol=outcome.amount,
            )
        else:
            await self.activity_logger.record(
                wallet.id, ActivityType.TRANSFER_TO_COLLECTOR_FAILED,
                f"Failed to transfer {amount} SOL to collector: {outcome.error}",
                token_name=token_name, amount_sol=amount,
            )
        return outcome

    @staticmethod
    def _collect_error(result: WalletRunResult, outcome: Optional[TradeOutcome]) -> None:
        if outcome is not None and not outcome.success and outcome.error:
            result.errors.append(outcome.error)

    async def _mark_processed(self, wallet: WalletRecord, log) -> None:
        try:
            await self.registry.mark_processed(wallet.id)
        except Exception as e:
            log.warning("Failed to update wallet last run", error=str(e))
