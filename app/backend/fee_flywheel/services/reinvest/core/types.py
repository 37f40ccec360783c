"""
Types for fee collection and reinvestment passes.
"""

from datetime import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from fee_flywheel.core.config import LAMPORTS_PER_SOL


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)


class ClaimStatus(Enum):
    """Classification of a fee claim response."""
    FAILED = "failed"
    NOTHING_TO_CLAIM = "nothing_to_claim"
    ACCEPTED = "accepted"


class WalletState(Enum):
    """Terminal states of the per-wallet pipeline."""
    NO_TOKEN = "no_token"
    CLAIM_FAILED = "claim_failed"
    NO_FEES = "no_fees"
    CLAIM_ANOMALY = "claim_anomaly"
    BELOW_MINIMUM = "below_minimum"
    TOO_SMALL = "too_small"
    DONE_SINGLE = "done_single"
    DONE_SPLIT = "done_split"
    ERROR = "error"

    @property
    def updates_last_run(self) -> bool:
        return self is not WalletState.NO_TOKEN


class PassStatus(Enum):
    """Status of the orchestrator."""
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class WalletRecord:
    """Active wallet as loaded from the registry."""
    id: str
    public_key: str
    api_key: str
    last_fee_collection: Optional[datetime] = None


@dataclass(frozen=True)
class TokenRecord:
    """Token owned by a wallet."""
    mint_address: str
    name: str
    symbol: str
    wallet_id: Optional[str] = None


@dataclass
class ClaimOutcome:
    """Result of a single fee claim call. Any amount the venue reports is ignored."""
    status: ClaimStatus
    signature: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is not ClaimStatus.FAILED

    @property
    def claimed(self) -> bool:
        return self.status is ClaimStatus.ACCEPTED


@dataclass
class ConfirmedClaim:
    """Claim amount derived from the observed balance delta."""
    claimed_lamports: int
    polls: int = 0

    @property
    def claimed_amount(self) -> Decimal:
        return lamports_to_sol(self.claimed_lamports)

    @property
    def confirmed(self) -> bool:
        return self.claimed_lamports > 0


@dataclass
class TradeOutcome:
    """Result of a buy or transfer request."""
    success: bool
    amount: Decimal = Decimal("0")
    signature: Optional[str] = None
    error: Optional[str] = None
    raw: Optional[Any] = None


BuyOutcome = TradeOutcome
TransferOutcome = TradeOutcome


@dataclass
class WalletRunResult:
    """Ephemeral outcome of one wallet's pipeline during a pass."""
    wallet_id: str
    wallet_public_key: str
    token_mint: Optional[str] = None
    token_name: Optional[str] = None
    state: Optional[WalletState] = None
    balance_before: Optional[Decimal] = None
    claimed_amount: Decimal = Decimal("0")
    usable_amount: Decimal = Decimal("0")
    fee_claim: Optional[ClaimOutcome] = None
    target_buy: Optional[TradeOutcome] = None
    self_buy: Optional[TradeOutcome] = None
    collector_transfer: Optional[TradeOutcome] = None
    errors: List[str] = field(default_factory=list)

    @property
    def reinvest_outcomes(self) -> List[TradeOutcome]:
        return [o for o in (self.target_buy, self.self_buy, self.collector_transfer) if o is not None]

    @property
    def any_reinvest_succeeded(self) -> bool:
        return any(o.success for o in self.reinvest_outcomes)

    @property
    def bought_amount(self) -> Decimal:
        return sum(
            (o.amount for o in (self.target_buy, self.self_buy) if o is not None and o.success),
            Decimal("0")
        )

    @property
    def transferred_amount(self) -> Decimal:
        if self.collector_transfer and self.collector_transfer.success:
            return self.collector_transfer.amount
        return Decimal("0")

    def to_dict(self) -> Dict[str, Any]:
        def outcome(o: Optional[TradeOutcome]) -> Optional[Dict[str, Any]]:
            if o is None:
                return None
            return {"success": o.success, "amount_sol": float(o.amount), "signature": o.signature, "error": o.error}

        return {
            "wallet_id": self.wallet_id,
            "wallet_public_key": self.wallet_public_key,
            "token_mint": self.token_mint,
            "token_name": self.token_name,
            "state": self.state.value if self.state else None,
            "balance_before": float(self.balance_before) if self.balance_before is not None else None,
            "claimed_amount": float(self.claimed_amount),
            "usable_amount": float(self.usable_amount),
            "fee_claim": {
                "success": self.fee_claim.success,
                "claimed": self.fee_claim.claimed,
                "signature": self.fee_claim.signature,
                "error": self.fee_claim.error,
            } if self.fee_claim else None,
            "target_buy": outcome(self.target_buy),
            "self_buy": outcome(self.self_buy),
            "collector_transfer": outcome(self.collector_transfer),
            "errors": list(self.errors),
        }


@dataclass
class PassStats:
    """Aggregate statistics for one orchestrator pass."""
    mode: str = "direct"
    target_token: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    total_wallets: int = 0
    processed: int = 0
    claimed: int = 0
    bought: int = 0
    no_fees: int = 0
    below_minimum: int = 0
    no_token: int = 0
    errors: int = 0
    total_claimed_sol: Decimal = Decimal("0")
    total_reinvested_sol: Decimal = Decimal("0")
    total_transferred_sol: Decimal = Decimal("0")
    collector_confirmed_sol: Optional[Decimal] = None
    collector_snapshot_error: Optional[str] = None
    consolidated_buy: Optional[TradeOutcome] = None
    groups: int = 0

    @property
    def duration_ms(self) -> int:
        if not self.started_at or not self.finished_at:
            return 0
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def record(self, result: WalletRunResult) -> None:
        """Fold one wallet result into the counters."""
        state = result.state
        if state is not WalletState.NO_TOKEN:
            self.processed += 1
        if result.claimed_amount > 0:
            self.claimed += 1
            self.total_claimed_sol += result.claimed_amount
        self.total_reinvested_sol += result.bought_amount
        self.total_transferred_sol += result.transferred_amount

        if state in (WalletState.DONE_SINGLE, WalletState.DONE_SPLIT) and result.any_reinvest_succeeded:
            self.bought += 1
        elif state is WalletState.NO_FEES:
            self.no_fees += 1
        elif state in (WalletState.BELOW_MINIMUM, WalletState.TOO_SMALL):
            self.below_minimum += 1
        elif state is WalletState.NO_TOKEN:
            self.no_token += 1
        else:
            self.errors += 1

    def to_dict(self) -> Dict[str, Any]:
        consolidated = None
        if self.consolidated_buy is not None:
            consolidated = {
                "success": self.consolidated_buy.success,
                "amount_sol": float(self.consolidated_buy.amount),
                "signature": self.consolidated_buy.signature,
                "error": self.consolidated_buy.error,
            }
        return {
            "mode": self.mode,
            "target_token": self.target_token,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "total_wallets": self.total_wallets,
            "processed": self.processed,
            "claimed": self.claimed,
            "bought": self.bought,
            "no_fees": self.no_fees,
            "below_minimum": self.below_minimum,
            "no_token": self.no_token,
            "errors": self.errors,
            "groups": self.groups,
            "total_claimed_sol": float(self.total_claimed_sol),
            "total_reinvested_sol": float(self.total_reinvested_sol),
            "total_transferred_sol": float(self.total_transferred_sol),
            "collector_confirmed_sol": float(self.collector_confirmed_sol) if self.collector_confirmed_sol is not None else None,
            "collector_snapshot_error": self.collector_snapshot_error,
            "consolidated_buy": consolidated,
        }


@dataclass
class PassReport:
    """Stats plus per-wallet results returned to the caller."""
    stats: PassStats
    results: List[WalletRunResult] = field(default_factory=list)
