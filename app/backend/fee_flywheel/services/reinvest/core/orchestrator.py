"""
Orchestrator for a full fee collection and reinvestment pass.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import structlog

from fee_flywheel.core.config import settings, Settings
from fee_flywheel.core.exceptions import ConfigurationError, SolanaRPCError
from fee_flywheel.models.activity import ActivityType
from .pipeline import WalletPipeline
from .types import (
    PassReport,
    PassStats,
    PassStatus,
    TokenRecord,
    TradeOutcome,
    WalletRecord,
    WalletRunResult,
)
from ..blockchain import BalanceOracle, BalanceChangeWatcher
from ..database import ActivityLogger, TokenRepository, WalletRepository
from ..venue import BuyExecutor, FeeClaimClient, PumpPortalClient, TransferExecutor


logger = structlog.get_logger(__name__)


def chunk(items: List, size: int) -> List[List]:
    """Split `items` into consecutive groups of at most `size`."""
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


class ReinvestOrchestrator:
    """
    Runs one pass over every active wallet.

    Architecture:
    1. Validate configuration before touching any wallet
    2. Load active wallets and the wallet -> token map once
    3. Run wallets in groups; groups sequentially, wallets in a group concurrently
    4. In collector mode, buy the target once with everything transferred in
    5. Reduce per-wallet results into PassStats
    """

    def __init__(
        self,
        registry: WalletRepository,
        tokens: TokenRepository,
        oracle: BalanceOracle,
        watcher: BalanceChangeWatcher,
        claim_client: FeeClaimClient,
        buy_executor: BuyExecutor,
        activity_logger: ActivityLogger,
        transfer_executor: Optional[TransferExecutor] = None,
        config: Optional[Settings] = None,
    ):
        self.registry = registry
        self.tokens = tokens
        self.oracle = oracle
        self.watcher = watcher
        self.claim_client = claim_client
        self.buy_executor = buy_executor
        self.transfer_executor = transfer_executor
        self.activity_logger = activity_logger
        self.config = config or settings

        self.status = PassStatus.IDLE
        self.last_stats: Optional[PassStats] = None
        self.logger = logger.bind(service="reinvest_orchestrator")

    def _validate_config(self) -> str:
        target = self.config.target_token_ca
        if not target:
            raise ConfigurationError("TARGET_TOKEN_CA is not configured")
        if self.config.uses_collector and self.transfer_executor is None:
            raise ConfigurationError("Collector mode requires a transfer executor")
        return target

    @staticmethod
    def _resolve_collector(
        target: str,
        wallets: List[WalletRecord],
        token_map: Dict[str, TokenRecord],
    ) -> WalletRecord:
        for wallet in wallets:
            token = token_map.get(wallet.id)
            if token and token.mint_address == target:
                return wallet
        raise ConfigurationError(
            "Collector mode requires an active wallet owning the target token",
            {"target_token": target}
        )

    def _build_pipeline(self, target: str, collector: Optional[WalletRecord]) -> WalletPipeline:
        return WalletPipeline(
            oracle=self.oracle,
            watcher=self.watcher,
            claim_client=self.claim_client,
            buy_executor=self.buy_executor,
            transfer_executor=self.transfer_executor,
            activity_logger=self.activity_logger,
            registry=self.registry,
            target_mint=target,
            collector_address=collector.public_key if collector else None,
            min_claim_sol=self.config.min_claim_sol,
            fee_reserve_sol=self.config.fee_reserve_sol,
            min_trade_sol=self.config.min_trade_sol,
            lot_precision=self.config.lot_precision,
        )

    async def _run_groups(
        self,
        pipeline: WalletPipeline,
        wallets: List[WalletRecord],
        token_map: Dict[str, TokenRecord],
        stats: PassStats,
    ) -> List[WalletRunResult]:
        results: List[WalletRunResult] = []
        groups = chunk(wallets, self.config.wallet_group_size)

        for index, group in enumerate(groups):
            self.logger.info(
                "Processing wallet group",
                group=index + 1,
                total_groups=len(groups),
                size=len(group)
            )
            group_results = await asyncio.gather(
                *(pipeline.run(wallet, token_map.get(wallet.id)) for wallet in group)
            )
            results.extend(group_results)
            stats.groups += 1

            if index < len(groups) - 1 and self.config.group_pause > 0:
                await asyncio.sleep(self.config.group_pause)

        return results

    async def _collector_snapshot(self, collector: WalletRecord, stats: PassStats) -> Optional[int]:
        """Collector balance before transfers arrive, or None if the ledger is unreachable."""
        try:
            return await self.oracle.get_balance(collector.public_key)
        except SolanaRPCError as e:
            stats.collector_snapshot_error = e.message
            self.logger.error(
                "Collector balance snapshot failed, settlement will not be confirmed",
                collector=collector.public_key,
                error=e.message
            )
            return None

    async def _consolidated_buy(
        self,
        collector: WalletRecord,
        collector_token: TokenRecord,
        snapshot: Optional[int],
        results: List[WalletRunResult],
        stats: PassStats,
    ) -> None:
        """Buy the target once on the collector with every successful transfer."""
        total = sum((r.transferred_amount for r in results), Decimal("0"))
        if total < self.config.min_trade_sol:
            self.logger.info("Nothing to consolidate", transferred_sol=str(total))
            return

        if snapshot is None:
            self.logger.warning(
                "No collector snapshot, buying without settlement confirmation",
                collector=collector.public_key,
                expected_sol=str(total)
            )
        else:
            confirmed = await self.watcher.wait_for_increase(
                collector.public_key,
                snapshot,
                initial_delay=self.config.collector_settle_delay
            )
            stats.collector_confirmed_sol = confirmed.claimed_amount
            if not confirmed.confirmed:
                self.logger.warning(
                    "Collector balance increase not observed",
                    collector=collector.public_key,
                    expected_sol=str(total)
                )

        try:
            outcome = await self.buy_executor.buy(collector.api_key, collector_token.mint_address, total)
        except Exception as e:
            outcome = TradeOutcome(success=False, amount=total, error=str(e))

        stats.consolidated_buy = outcome
        if outcome.success:
            stats.total_reinvested_sol += outcome.amount
            await self.activity_logger.record(
                collector.id, ActivityType.BUY_CONSOLIDATED,
                f"Consolidated buy of {outcome.amount} SOL of {collector_token.name}",
                token_name=collector_token.name, signature=outcome.signature, amount_sol=outcome.amount,
            )
        else:
            await self.activity_logger.record(
                collector.id, ActivityType.BUY_CONSOLIDATED_FAILED,
                f"Consolidated buy of {total} SOL failed: {outcome.error}",
                token_name=collector_token.name, amount_sol=total,
            )

        self.logger.info(
            "Consolidated buy finished",
            success=outcome.success,
            amount_sol=str(outcome.amount),
            signature=outcome.signature,
            error=outcome.error
        )

    async def run_pass(self) -> PassReport:
        """
        Run one complete pass.

        Raises:
            ConfigurationError: target token missing or collector unresolvable
        """
        target = self._validate_config()
        mode = "collector" if self.config.uses_collector else "direct"

        self.status = PassStatus.RUNNING
        stats = PassStats(mode=mode, target_token=target, started_at=datetime.now(timezone.utc))

        try:
            wallets = await self.registry.get_active_wallets()
            stats.total_wallets = len(wallets)
            if not wallets:
                self.logger.info("No active wallets to process")
                stats.finished_at = datetime.now(timezone.utc)
                self.status = PassStatus.COMPLETED
                self.last_stats = stats
                return PassReport(stats=stats)

            token_map = await self.tokens.get_wallet_token_map()

            self.logger.info(
                "Starting reinvest pass",
                mode=mode,
                target_token=target,
                wallets=len(wallets),
                group_size=self.config.wallet_group_size
            )

            results: List[WalletRunResult] = []
            if mode == "collector":
                collector = self._resolve_collector(target, wallets, token_map)
                pipeline = self._build_pipeline(target, collector)

                # Collector settles its own fees before the snapshot
                results.append(await pipeline.run(collector, token_map[collector.id]))
                snapshot = await self._collector_snapshot(collector, stats)

                others = [w for w in wallets if w.id != collector.id]
                if others and self.config.group_pause > 0:
                    await asyncio.sleep(self.config.group_pause)
                other_results = await self._run_groups(pipeline, others, token_map, stats)
                results.extend(other_results)

                await self._consolidated_buy(collector, token_map[collector.id], snapshot, other_results, stats)
            else:
                pipeline = self._build_pipeline(target, None)
                results.extend(await self._run_groups(pipeline, wallets, token_map, stats))

            for result in results:
                stats.record(result)

            stats.finished_at = datetime.now(timezone.utc)
            self.status = PassStatus.COMPLETED
            self.last_stats = stats

            self.logger.info(
                "Reinvest pass completed",
                duration_ms=stats.duration_ms,
                processed=stats.processed,
                claimed=stats.claimed,
                bought=stats.bought,
                no_fees=stats.no_fees,
                below_minimum=stats.below_minimum,
                no_token=stats.no_token,
                errors=stats.errors,
                total_claimed_sol=str(stats.total_claimed_sol),
                total_reinvested_sol=str(stats.total_reinvested_sol)
            )
            return PassReport(stats=stats, results=results)

        except Exception as e:
            stats.finished_at = datetime.now(timezone.utc)
            self.status = PassStatus.FAILED
            self.last_stats = stats
            self.logger.error("Reinvest pass failed", error=str(e), duration_ms=stats.duration_ms)
            raise

    def get_status(self) -> Dict:
        return {
            "status": self.status.value,
            "mode": "collector" if self.config.uses_collector else "direct",
            "target_token": self.config.target_token_ca,
            "last_pass": self.last_stats.to_dict() if self.last_stats else None,
        }

    async def close(self) -> None:
        """Release network clients."""
        await self.oracle.close()
        await self.claim_client.venue.close()


def build_orchestrator(config: Optional[Settings] = None) -> ReinvestOrchestrator:
    """Wire the orchestrator with production clients."""
    config = config or settings
    venue = PumpPortalClient(base_url=config.venue_base_url, timeout=config.venue_timeout)
    oracle = BalanceOracle(
        commitment=config.solana_commitment,
        max_retries=config.balance_read_retries,
        retry_delay=config.balance_retry_delay,
    )
    watcher = BalanceChangeWatcher(
        oracle,
        initial_delay=config.claim_settle_delay,
        poll_interval=config.balance_poll_interval,
        max_polls=config.balance_max_polls,
        dust_threshold_lamports=config.dust_threshold_lamports,
    )
    trade_kwargs = {"min_trade_sol": config.min_trade_sol, "lot_precision": config.lot_precision}

    return ReinvestOrchestrator(
        registry=WalletRepository(),
        tokens=TokenRepository(),
        oracle=oracle,
        watcher=watcher,
        claim_client=FeeClaimClient(venue, pool=config.venue_pool),
        buy_executor=BuyExecutor(venue, slippage=config.buy_slippage, **trade_kwargs),
        transfer_executor=TransferExecutor(venue, **trade_kwargs) if config.uses_collector else None,
        activity_logger=ActivityLogger(),
        config=config,
    )
