# =============================================================================
# POLYMARKET LENDING - FREEZE CONTROLLER UNIT TESTS
# =============================================================================
#
# Test categories:
# 1. Borrow check priority
# 2. Market breaker cooldown
# 3. Asymmetric policy (liquidate / withdraw / repay)
# 4. Guardian and admin operations
#
# =============================================================================

from unittest.mock import MagicMock

import pytest

from core.exceptions import InvalidParameterError, UnauthorizedCallerError
from core.freeze_controller import FreezeController
from shared.enums import BlockReason
from tests.conftest import ADMIN, DAY, GUARDIAN, HOUR, START

FAR = "FAR"
NEAR = "NEAR"


@pytest.fixture
def audit():
    return MagicMock()


@pytest.fixture
def freeze(access, clock, registry, audit):
    registry.register_market(ADMIN, FAR, START + 30 * DAY)
    registry.register_market(ADMIN, NEAR, START + 20 * HOUR)
    return FreezeController(access, clock, registry, audit=audit)


class TestBorrowPriority:
    """First blocking reason wins."""

    def test_healthy_market_allows_borrow(self, freeze):
        assert freeze.can_borrow(FAR) == (True, BlockReason.NONE)

    def test_full_priority_chain(self, freeze, registry, clock):
        freeze.pause(GUARDIAN)
        freeze.trip_global_circuit_breaker(GUARDIAN)
        freeze.trip_market_circuit_breaker(GUARDIAN, NEAR)
        registry.freeze_market(GUARDIAN, NEAR)

        assert freeze.can_borrow(NEAR) == (False, BlockReason.GLOBALLY_PAUSED)

        freeze.unpause(GUARDIAN)
        assert freeze.can_borrow(NEAR) == (False, BlockReason.GLOBAL_CIRCUIT_BREAKER)

        freeze.reset_global_circuit_breaker(GUARDIAN)
        assert freeze.can_borrow(NEAR) == (False, BlockReason.MARKET_CIRCUIT_BREAKER)

        clock.advance(HOUR)
        assert freeze.can_borrow(NEAR) == (False, BlockReason.PRE_RESOLUTION_FREEZE)

    def test_manual_freeze_last(self, freeze, registry):
        registry.freeze_market(GUARDIAN, FAR)
        assert freeze.can_borrow(FAR) == (False, BlockReason.MARKET_FROZEN)

    def test_unregistered_market_is_pre_resolution(self, freeze):
        assert freeze.can_borrow("UNKNOWN") == (False, BlockReason.PRE_RESOLUTION_FREEZE)


class TestPreResolutionFreeze:

    def test_window_boundary(self, freeze, access, clock, registry):
        registry.register_market(ADMIN, "EDGE", START + DAY)
        assert freeze.is_in_pre_resolution_freeze("EDGE") is False

        clock.advance(1)
        assert freeze.is_in_pre_resolution_freeze("EDGE") is True

    def test_resolved_market(self, freeze, clock):
        clock.advance(31 * DAY)
        assert freeze.is_in_pre_resolution_freeze(FAR) is True


class TestMarketBreaker:

    def test_active_until_cooldown_elapses(self, freeze, clock):
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)
        assert freeze.get_market_tripped_at(FAR) == START

        clock.advance(HOUR - 1)
        assert freeze.is_market_circuit_breaker_active(FAR) is True

        clock.advance(1)
        assert freeze.is_market_circuit_breaker_active(FAR) is False
        assert freeze.can_borrow(FAR) == (True, BlockReason.NONE)

    def test_reset_clears_immediately(self, freeze):
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)
        freeze.reset_market_circuit_breaker(GUARDIAN, FAR)

        assert freeze.get_market_tripped_at(FAR) == 0
        assert freeze.is_market_circuit_breaker_active(FAR) is False

    def test_breaker_is_per_market(self, freeze, registry):
        registry.register_market(ADMIN, "OTHER", START + 30 * DAY)
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)

        assert freeze.can_borrow("OTHER") == (True, BlockReason.NONE)

    def test_longer_cooldown_extends_active_breaker(self, freeze, clock):
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)
        clock.advance(HOUR)
        assert freeze.is_market_circuit_breaker_active(FAR) is False

        freeze.update_cooldown(ADMIN, 2 * HOUR)
        assert freeze.is_market_circuit_breaker_active(FAR) is True


class TestAsymmetricPolicy:
    """Risk-reducing actions stay available under degraded conditions."""

    def test_liquidate_and_withdraw_ignore_breakers_and_freeze(self, freeze, registry):
        freeze.trip_global_circuit_breaker(GUARDIAN)
        freeze.trip_market_circuit_breaker(GUARDIAN, NEAR)
        registry.freeze_market(GUARDIAN, NEAR)

        assert freeze.can_liquidate(NEAR) == (True, BlockReason.NONE)
        assert freeze.can_withdraw(NEAR) == (True, BlockReason.NONE)

    def test_pause_blocks_liquidate_and_withdraw(self, freeze):
        freeze.pause(GUARDIAN)

        assert freeze.can_liquidate(FAR) == (False, BlockReason.GLOBALLY_PAUSED)
        assert freeze.can_withdraw(FAR) == (False, BlockReason.GLOBALLY_PAUSED)

    def test_repay_never_blocked(self, freeze):
        freeze.pause(GUARDIAN)
        freeze.trip_global_circuit_breaker(GUARDIAN)

        assert freeze.can_repay(FAR) == (True, BlockReason.NONE)
        assert freeze.can_repay() == (True, BlockReason.NONE)


class TestOperations:

    @pytest.mark.parametrize("operation", [
        lambda f, caller: f.pause(caller),
        lambda f, caller: f.unpause(caller),
        lambda f, caller: f.trip_global_circuit_breaker(caller),
        lambda f, caller: f.reset_global_circuit_breaker(caller),
        lambda f, caller: f.trip_market_circuit_breaker(caller, FAR),
        lambda f, caller: f.reset_market_circuit_breaker(caller, FAR),
    ])
    def test_guardian_only(self, freeze, operation):
        with pytest.raises(UnauthorizedCallerError):
            operation(freeze, ADMIN)

    def test_cooldown_admin_only(self, freeze):
        with pytest.raises(UnauthorizedCallerError):
            freeze.update_cooldown(GUARDIAN, 2 * HOUR)

    @pytest.mark.parametrize("cooldown", [0, -1, 7 * DAY + 1])
    def test_cooldown_bounds(self, freeze, cooldown):
        with pytest.raises(InvalidParameterError):
            freeze.update_cooldown(ADMIN, cooldown)
        assert freeze.cooldown_seconds == HOUR

    def test_transitions_are_audited(self, freeze, audit):
        freeze.pause(GUARDIAN)
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)

        events = [c.args[0] for c in audit.log_event.call_args_list]
        assert events == ["PAUSED", "MARKET_BREAKER_TRIPPED"]
        assert audit.log_event.call_args.args[1]["market_id"] == FAR

    def test_state_round_trip(self, freeze, access, clock, registry):
        freeze.pause(GUARDIAN)
        freeze.trip_market_circuit_breaker(GUARDIAN, FAR)

        restored = FreezeController(access, clock, registry, audit=MagicMock())
        restored.restore_state(freeze.export_state())

        assert restored.paused is True
        assert restored.get_market_tripped_at(FAR) == START
