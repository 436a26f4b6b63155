# =============================================================================
# POLYMARKET LENDING - LIQUIDATION FLOW INTEGRATION TEST
# =============================================================================
#
# End-to-end through the wired core:
#   deposit -> borrow at full tier LTV -> price drop trips the oracle breaker
#   -> borrow blocked, liquidation allowed -> partial liquidation
#   -> pause -> snapshot round trip -> admin breaker reset
#
# =============================================================================

import json

import pytest

from app.lending_core import build_lending_core
from app.state_snapshot import load_snapshot, save_snapshot
from core.clock import ManualClock
from core.exceptions import (
    ActionBlockedError,
    CircuitBreakerTrippedError,
    ExceedsMaxLTVError,
    HealthFactorTooLowError,
    InvalidParameterError,
    MarketFrozenError,
    StalePriceError,
)
from shared.enums import BlockReason, LTVTier
from shared.fixed_point import MAX_UINT256
from tests.conftest import (
    ADMIN,
    BORROWER,
    DAY,
    GUARDIAN,
    LIQUIDATOR,
    ORCHESTRATOR,
    START,
    S,
    UPDATER,
    USDC,
)

MARKET = "0xmarket"
ASSET = "0xmarket-YES"


@pytest.fixture
def funded_core(core):
    """Market 30 days out, pool liquidity, collateral deposited, price 0.5."""
    core.registry.register_market(ADMIN, MARKET, START + 30 * DAY)
    core.pool.add_liquidity(ADMIN, 10_000 * USDC)
    core.pool.fund_wallet(ADMIN, LIQUIDATOR, 1_000 * USDC)

    core.custody.deposit(ORCHESTRATOR, BORROWER, ASSET, 2000 * S)
    core.liquidation.update_position_collateral(ORCHESTRATOR, BORROWER, ASSET, 2000 * S, market_id=MARKET)

    core.oracle.record_observation(UPDATER, ASSET, S // 2)
    core.clock.advance(60)
    core.oracle.record_observation(UPDATER, ASSET, S // 2)
    return core


def borrow(core, amount):
    remaining = core.gate.check_borrow(BORROWER, ASSET, MARKET, amount)
    core.pool.disburse(ORCHESTRATOR, BORROWER, amount)
    debt = core.liquidation.get_position(BORROWER, ASSET).debt_amount
    core.liquidation.update_position_debt(ORCHESTRATOR, BORROWER, ASSET, debt + amount)
    return remaining


def crash_price_to(core, price):
    """Feed a sharp drop: first print trips the breaker, later prints are stored."""
    core.clock.advance(60)
    assert core.oracle.record_observation(UPDATER, ASSET, price) is False
    for step in (60, 1800, 1800):
        core.clock.advance(step)
        assert core.oracle.record_observation(UPDATER, ASSET, price) is True


class TestBorrowGate:

    def test_borrow_up_to_tier_limit(self, funded_core):
        core = funded_core
        assert core.risk_tiers.get_ltv_tier(MARKET) == LTVTier.NORMAL

        assert borrow(core, 400 * USDC) == 100 * USDC
        with pytest.raises(ExceedsMaxLTVError):
            core.gate.check_borrow(BORROWER, ASSET, MARKET, 100 * USDC + 1)
        assert borrow(core, 100 * USDC) == 0

        assert core.pool.wallet_of(BORROWER) == 500 * USDC

    def test_stale_price_blocks_borrow(self, funded_core):
        funded_core.clock.advance(301)

        with pytest.raises(StalePriceError):
            funded_core.gate.check_borrow(BORROWER, ASSET, MARKET, USDC)

    def test_manual_freeze_blocks_borrow_only(self, funded_core):
        core = funded_core
        borrow(core, 100 * USDC)
        core.registry.freeze_market(GUARDIAN, MARKET)

        with pytest.raises(MarketFrozenError):
            core.gate.check_borrow(BORROWER, ASSET, MARKET, USDC)
        assert core.gate.check_withdraw(BORROWER, ASSET, MARKET, 100 * S) > S
        core.gate.check_liquidate(MARKET)

    def test_pre_resolution_freeze(self, funded_core):
        core = funded_core
        core.clock.set(START + 30 * DAY - DAY + 1)

        with pytest.raises(ActionBlockedError) as exc:
            core.gate.check_borrow(BORROWER, ASSET, MARKET, USDC)
        assert exc.value.reason == BlockReason.PRE_RESOLUTION_FREEZE

    def test_withdraw_health_check(self, funded_core):
        core = funded_core
        assert core.gate.check_withdraw(BORROWER, ASSET, MARKET, 2000 * S) == MAX_UINT256

        borrow(core, 500 * USDC)
        # 1400 tokens left: value 700, HF = 700 * 0.75 / 500 = 1.05
        assert core.gate.check_withdraw(BORROWER, ASSET, MARKET, 600 * S) == 105 * 10**16
        with pytest.raises(HealthFactorTooLowError):
            core.gate.check_withdraw(BORROWER, ASSET, MARKET, 1000 * S)


class TestLiquidationFlow:

    def test_price_crash_to_liquidation(self, funded_core, tmp_path, lending_config):
        core = funded_core
        assert borrow(core, 500 * USDC) == 0

        crash_price_to(core, 3 * 10**17)

        assert core.oracle.is_circuit_breaker_triggered(ASSET)
        assert core.oracle.get_twap(ASSET)[0] == 3 * 10**17
        assert core.liquidation.get_health_factor(BORROWER, ASSET) == 9 * 10**17

        # Risk-increasing action blocked, risk-reducing action allowed
        with pytest.raises(CircuitBreakerTrippedError):
            core.gate.check_borrow(BORROWER, ASSET, MARKET, USDC)
        core.gate.check_liquidate(MARKET)

        max_repay = core.liquidation.get_max_liquidation(BORROWER, ASSET)
        assert max_repay == 250 * USDC
        expected_seize = core.liquidation.calculate_seize_amount(ASSET, max_repay)
        assert expected_seize == 275 * 10**36 // (3 * 10**17)

        seized = core.liquidation.execute_liquidation(
            ORCHESTRATOR, LIQUIDATOR, BORROWER, ASSET, max_repay
        )

        assert seized == expected_seize
        position = core.liquidation.get_position(BORROWER, ASSET)
        assert position.debt_amount == 250 * USDC
        assert position.collateral_amount == 2000 * S - seized
        assert core.custody.balance_of(LIQUIDATOR, ASSET) == seized
        assert core.custody.balance_of(BORROWER, ASSET) == 2000 * S - seized
        assert core.pool.wallet_of(LIQUIDATOR) == 750 * USDC

        # Pause stops liquidations but never repayment
        core.freeze.pause(GUARDIAN)
        with pytest.raises(ActionBlockedError):
            core.gate.check_liquidate(MARKET)
        assert core.gate.check_repay() is True

        # Snapshot into a freshly wired core
        path = save_snapshot(core, tmp_path / "state" / "lending_state.json")
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1

        restored = build_lending_core(lending_config, clock=ManualClock(core.clock.now()))
        load_snapshot(restored, path)

        status = restored.status()
        assert status["paused"] is True
        assert status["positions"] == 1
        assert status["open_debt_positions"] == 1
        assert status["assets"][ASSET]["observations"] == 5
        assert status["assets"][ASSET]["circuit_breaker"] is True
        assert restored.registry.get_market(MARKET).resolution_time == START + 30 * DAY
        assert restored.liquidation.get_position(BORROWER, ASSET) == position

        # After reset the gate falls through to the LTV check
        restored.oracle.reset_circuit_breaker(ADMIN, ASSET)
        restored.freeze.unpause(GUARDIAN)
        assert restored.oracle.is_circuit_breaker_triggered(ASSET) is False
        with pytest.raises(ExceedsMaxLTVError):
            restored.gate.check_borrow(BORROWER, ASSET, MARKET, USDC)

    def test_liquidation_ignores_breaker_and_staleness(self, funded_core):
        core = funded_core
        borrow(core, 500 * USDC)
        crash_price_to(core, 2 * 10**17)
        # (360 + 0.2 * 301) / 1800 ~= 0.2334, HF ~= 0.70
        core.clock.advance(301)

        assert core.oracle.is_price_stale(ASSET)
        assert core.liquidation.is_liquidatable(BORROWER, ASSET)
        core.liquidation.execute_liquidation(ORCHESTRATOR, LIQUIDATOR, BORROWER, ASSET, 100 * USDC)


class TestWiring:

    def test_status_after_wiring(self, core):
        status = core.status()

        assert status["orchestrator"] == ORCHESTRATOR
        assert status["liquidation_engine"] == core.liquidation.address
        assert status["updaters"] == [UPDATER]
        assert status["paused"] is False
        assert status["risk_tiers"]["normal_ltv_bps"] == 5000
        assert core.liquidation.is_configured

    def test_missing_snapshot_version_rejected(self, core, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"version": 99}), encoding="utf-8")

        with pytest.raises(ValueError):
            load_snapshot(core, path)

    def test_invalid_section_leaves_core_untouched(self, funded_core, tmp_path):
        core = funded_core
        path = save_snapshot(core, tmp_path / "state.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        data["oracle"] = {}
        data["freeze"]["paused"] = True
        data["liquidation"]["parameters"]["liquidation_bonus_bps"] = 9000
        path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(InvalidParameterError):
            load_snapshot(core, path)

        assert core.oracle.get_observation_count(ASSET) == 2
        assert core.freeze.paused is False
        assert core.liquidation.params.liquidation_bonus_bps == 1000
        assert core.liquidation.get_position(BORROWER, ASSET).collateral_amount == 2000 * S
