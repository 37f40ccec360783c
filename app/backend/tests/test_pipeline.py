"""
Test the per-wallet claim -> confirm -> reinvest pipeline.
"""

from decimal import Decimal

import pytest

from fee_flywheel.services.reinvest.core.types import WalletState
from fee_flywheel.services.reinvest.venue import VenueResponse
from tests.fakes import (
    ALPHA,
    ALPHA_MINT,
    COLLECTOR,
    FakeRegistry,
    Fleet,
    ORPHAN,
    TARGET_MINT,
    TOKENS,
    sol,
)


@pytest.mark.asyncio
async def test_scenario_a_split_between_target_and_own_token(fleet):
    """1.0 SOL -> 1.05 SOL after claim: two buys of 0.024 SOL."""
    fleet.accrue(ALPHA, "0.05")

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.DONE_SPLIT
    assert result.balance_before == Decimal("1")
    assert result.claimed_amount == Decimal("0.05")
    assert result.usable_amount == Decimal("0.048")
    assert result.target_buy.success and result.self_buy.success
    assert result.target_buy.amount == Decimal("0.024")
    assert result.self_buy.amount == Decimal("0.024")

    buys = sorted((c[2]["mint"], c[2]["amount"]) for c in fleet.venue.calls_for("buy"))
    assert buys == sorted([(TARGET_MINT, Decimal("0.024")), (ALPHA_MINT, Decimal("0.024"))])

    types = fleet.activity.types_for("w1")
    assert types[0] == "fee_claimed"
    assert sorted(types[1:]) == ["buy_self_token", "buy_target_token"]
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_scenario_b_below_minimum(fleet):
    fleet.accrue(ALPHA, "0.005")

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.BELOW_MINIMUM
    assert result.claimed_amount == Decimal("0.005")
    assert fleet.activity.types_for("w1") == ["fee_claimed"]
    assert fleet.venue.calls_for("buy") == []
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_scenario_c_nothing_to_claim_skips_polling(fleet):
    fleet.venue.claim_overrides[ALPHA.api_key] = VenueResponse(400, '{"error": "Nothing to claim"}')

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.NO_FEES
    assert fleet.activity.records == []
    # snapshot only, no confirmation polling
    assert fleet.ledger.reads == [ALPHA.public_key]
    assert fleet.venue.calls_for("buy") == []
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_scenario_d_accepted_but_balance_unchanged(fleet):
    fleet.venue.claim_overrides[ALPHA.api_key] = VenueResponse(200, '{"signature": "ghost-sig"}')

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.CLAIM_ANOMALY
    assert result.claimed_amount == 0
    assert result.errors
    assert fleet.activity.types_for("w1") == ["fee_claim_unconfirmed"]
    assert fleet.activity.records[0].signature == "ghost-sig"
    assert fleet.venue.calls_for("buy") == []
    # snapshot, four polls and a final read
    assert len(fleet.ledger.reads) == 6
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_wallet_without_token_attempts_nothing(fleet):
    result = await fleet.pipeline().run(ORPHAN, None)

    assert result.state is WalletState.NO_TOKEN
    assert fleet.venue.calls == []
    assert fleet.ledger.reads == []
    assert fleet.activity.records == []
    assert fleet.registry.marked == []


@pytest.mark.asyncio
async def test_claim_hard_failure_is_recorded(fleet):
    fleet.venue.claim_overrides[ALPHA.api_key] = VenueResponse(500, "Internal Server Error")

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.CLAIM_FAILED
    assert result.errors == ["Claim failed: 500 - Internal Server Error"]
    assert fleet.activity.types_for("w1") == ["fee_claim_failed"]
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_claimed_amount_comes_from_balance_delta(fleet):
    """Amounts reported by the venue are ignored."""
    fleet.venue.claim_overrides[ALPHA.api_key] = VenueResponse(200, '{"signature": "s", "amount": 5}')
    fleet.ledger.sequences[ALPHA.public_key] = [sol("1"), sol("1.03")]

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.claimed_amount == Decimal("0.03")
    assert fleet.activity.records[0].amount_sol == Decimal("0.03")


@pytest.mark.asyncio
async def test_single_buy_when_target_is_own_token(fleet):
    fleet.accrue(COLLECTOR, "0.05")

    result = await fleet.pipeline().run(COLLECTOR, TOKENS["wc"])

    assert result.state is WalletState.DONE_SINGLE
    assert result.self_buy is None
    assert result.target_buy.amount == Decimal("0.048")
    assert [(c[2]["mint"], c[2]["amount"]) for c in fleet.venue.calls_for("buy")] == [(TARGET_MINT, Decimal("0.048"))]
    assert fleet.activity.types_for("wc") == ["fee_claimed", "buy_target_token"]


@pytest.mark.asyncio
@pytest.mark.parametrize("claimed", ["0.0213", "0.0777777", "1.234567891"])
async def test_split_amounts_never_exceed_usable(fleet, claimed):
    fleet.accrue(ALPHA, claimed)

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    committed = result.target_buy.amount + result.self_buy.amount
    assert committed <= result.usable_amount
    assert result.usable_amount - committed < Decimal("0.000002")


@pytest.mark.asyncio
async def test_collector_routing_transfers_target_half(fleet):
    fleet.accrue(ALPHA, "0.05")
    collector_before = fleet.ledger.balances[COLLECTOR.public_key]

    result = await fleet.pipeline(collector=COLLECTOR).run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.DONE_SPLIT
    assert result.target_buy is None
    assert result.collector_transfer.success
    assert result.transferred_amount == Decimal("0.024")
    assert fleet.venue.calls_for("transfer")[0][2] == {"to": COLLECTOR.public_key, "amount": Decimal("0.024")}
    assert fleet.ledger.balances[COLLECTOR.public_key] - collector_before == sol("0.024")
    assert sorted(fleet.activity.types_for("w1")[1:]) == ["buy_self_token", "transfer_to_collector"]


@pytest.mark.asyncio
async def test_failed_buy_is_recorded_and_other_half_proceeds(fleet):
    fleet.accrue(ALPHA, "0.05")
    fleet.venue.failing_mints.add(TARGET_MINT)

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.DONE_SPLIT
    assert not result.target_buy.success
    assert result.self_buy.success
    assert result.errors == ["Validation error: Slippage tolerance exceeded"]
    assert sorted(fleet.activity.types_for("w1")[1:]) == ["buy_self_token", "buy_target_token_failed"]


@pytest.mark.asyncio
async def test_too_small_after_fee_reserve(fleet):
    fleet.accrue(ALPHA, "0.0025")

    result = await fleet.pipeline(min_claim_sol=Decimal("0.001")).run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.TOO_SMALL
    assert result.usable_amount == Decimal("0.0005")
    assert fleet.activity.types_for("w1") == ["fee_claimed"]
    assert fleet.venue.calls_for("buy") == []


@pytest.mark.asyncio
async def test_halves_below_minimum_are_rejected_locally(fleet):
    fleet.accrue(ALPHA, "0.0035")

    result = await fleet.pipeline(min_claim_sol=Decimal("0.001")).run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.DONE_SPLIT
    assert not result.any_reinvest_succeeded
    assert fleet.venue.calls_for("buy") == []
    assert sorted(fleet.activity.types_for("w1")[1:]) == ["buy_self_token_failed", "buy_target_token_failed"]


@pytest.mark.asyncio
async def test_unreadable_snapshot_ends_in_error(fleet):
    fleet.ledger.failures[ALPHA.public_key] = 1

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.ERROR
    assert "RPC unavailable" in result.errors[0]
    assert fleet.venue.calls == []
    assert fleet.registry.marked == ["w1"]


@pytest.mark.asyncio
async def test_last_run_write_failure_does_not_fail_wallet():
    fleet = Fleet(wallets=[ALPHA], token_map=TOKENS, registry=FakeRegistry([ALPHA], fail_marks=True))
    fleet.accrue(ALPHA, "0.05")

    result = await fleet.pipeline().run(ALPHA, TOKENS["w1"])

    assert result.state is WalletState.DONE_SPLIT


@pytest.mark.asyncio
async def test_rerun_without_new_accrual_is_no_fees(fleet):
    fleet.accrue(ALPHA, "0.05")
    pipeline = fleet.pipeline()

    first = await pipeline.run(ALPHA, TOKENS["w1"])
    second = await pipeline.run(ALPHA, TOKENS["w1"])

    assert first.state is WalletState.DONE_SPLIT
    assert second.state is WalletState.NO_FEES
    assert len(fleet.venue.calls_for("buy")) == 2
    assert fleet.registry.marked == ["w1", "w1"]
