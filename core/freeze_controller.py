# =============================================================================
# POLYMARKET LENDING - FREEZE CONTROLLER
# =============================================================================
#
# Decides whether an action class is currently permitted.
#
# ASYMMETRIC POLICY:
# - BORROW is blocked by any degraded condition
# - WITHDRAW and LIQUIDATE are blocked only by the global pause
# - REPAY is never blocked
#
# Risk-reducing actions must always stay available, so the only switch that
# can stop them is an explicit guardian pause.
#
# BORROW CHECK ORDER (first match wins):
#   1. global pause
#   2. global circuit breaker
#   3. market circuit breaker (tripped_at + cooldown still in the future)
#   4. pre-resolution freeze (< 24h to resolution, or resolved)
#   5. manual market freeze
#
# =============================================================================

import logging
from typing import Any, Dict, Optional, Tuple

from shared.enums import BlockReason, Component, Role
from shared.logging_config import AuditLogger

from .access_control import AccessControl
from .clock import Clock
from .exceptions import InvalidParameterError
from .market import MarketRegistry

logger = logging.getLogger(__name__)


DEFAULT_COOLDOWN_SECONDS: int = 60 * 60
PRE_RESOLUTION_WINDOW_SECONDS: int = 24 * 60 * 60
MAX_COOLDOWN_SECONDS: int = 7 * 24 * 60 * 60


class FreezeController:
    """Pause flags, circuit breakers and pre-resolution freeze."""

    def __init__(
        self,
        access: AccessControl,
        clock: Clock,
        registry: MarketRegistry,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        pre_resolution_window_seconds: int = PRE_RESOLUTION_WINDOW_SECONDS,
        audit: Optional[AuditLogger] = None,
    ):
        self._validate_cooldown(cooldown_seconds)
        self._access = access
        self._clock = clock
        self._registry = registry
        self.cooldown_seconds = cooldown_seconds
        self.pre_resolution_window_seconds = pre_resolution_window_seconds
        self._audit = audit or AuditLogger(Component.FREEZE)

        self.paused = False
        self.global_circuit_breaker = False
        # market id -> trip time (absent / 0 = not tripped)
        self._market_tripped_at: Dict[str, int] = {}

    @staticmethod
    def _validate_cooldown(cooldown_seconds: int) -> None:
        if not 0 < cooldown_seconds <= MAX_COOLDOWN_SECONDS:
            raise InvalidParameterError(
                "cooldown_seconds", cooldown_seconds, f"must be in (0, {MAX_COOLDOWN_SECONDS}]"
            )

    # -------------------------------------------------------------------------
    # CONDITIONS
    # -------------------------------------------------------------------------

    def is_in_pre_resolution_freeze(self, market_id: str) -> bool:
        return self._pre_resolution(market_id, self._clock.now())

    def _pre_resolution(self, market_id: str, now: int) -> bool:
        resolution_time = self._registry.get_market(market_id).resolution_time
        if now >= resolution_time:
            return True
        return resolution_time - now < self.pre_resolution_window_seconds

    def is_market_circuit_breaker_active(self, market_id: str) -> bool:
        return self._market_breaker(market_id, self._clock.now())

    def _market_breaker(self, market_id: str, now: int) -> bool:
        tripped_at = self._market_tripped_at.get(market_id, 0)
        return tripped_at != 0 and now < tripped_at + self.cooldown_seconds

    def get_market_tripped_at(self, market_id: str) -> int:
        return self._market_tripped_at.get(market_id, 0)

    # -------------------------------------------------------------------------
    # ACTION CHECKS
    # -------------------------------------------------------------------------

    def can_borrow(self, market_id: str) -> Tuple[bool, BlockReason]:
        """
        Check whether new debt may be opened against a market.

        Returns:
            (allowed, reason) - reason is BlockReason.NONE when allowed
        """
        now = self._clock.now()

        if self.paused:
            return False, BlockReason.GLOBALLY_PAUSED
        if self.global_circuit_breaker:
            return False, BlockReason.GLOBAL_CIRCUIT_BREAKER
        if self._market_breaker(market_id, now):
            return False, BlockReason.MARKET_CIRCUIT_BREAKER
        if self._pre_resolution(market_id, now):
            return False, BlockReason.PRE_RESOLUTION_FREEZE
        if self._registry.get_market(market_id).is_frozen:
            return False, BlockReason.MARKET_FROZEN
        return True, BlockReason.NONE

    def can_liquidate(self, market_id: str) -> Tuple[bool, BlockReason]:
        if self.paused:
            return False, BlockReason.GLOBALLY_PAUSED
        return True, BlockReason.NONE

    def can_withdraw(self, market_id: str) -> Tuple[bool, BlockReason]:
        if self.paused:
            return False, BlockReason.GLOBALLY_PAUSED
        return True, BlockReason.NONE

    def can_repay(self, market_id: Optional[str] = None) -> Tuple[bool, BlockReason]:
        return True, BlockReason.NONE

    # -------------------------------------------------------------------------
    # GUARDIAN OPERATIONS
    # -------------------------------------------------------------------------

    def trip_market_circuit_breaker(self, caller: str, market_id: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self._market_tripped_at[market_id] = now
        logger.warning(f"Market circuit breaker TRIPPED for {market_id} by {caller}")
        self._record("MARKET_BREAKER_TRIPPED", caller, now, market_id=market_id)

    def reset_market_circuit_breaker(self, caller: str, market_id: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self._market_tripped_at[market_id] = 0
        logger.warning(f"Market circuit breaker reset for {market_id} by {caller}")
        self._record("MARKET_BREAKER_RESET", caller, now, market_id=market_id)

    def trip_global_circuit_breaker(self, caller: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self.global_circuit_breaker = True
        logger.warning(f"GLOBAL circuit breaker TRIPPED by {caller}")
        self._record("GLOBAL_BREAKER_TRIPPED", caller, now)

    def reset_global_circuit_breaker(self, caller: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self.global_circuit_breaker = False
        logger.warning(f"Global circuit breaker reset by {caller}")
        self._record("GLOBAL_BREAKER_RESET", caller, now)

    def pause(self, caller: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self.paused = True
        logger.warning(f"System PAUSED by {caller}")
        self._record("PAUSED", caller, now)

    def unpause(self, caller: str) -> None:
        self._access.require(Role.GUARDIAN, caller)
        now = self._clock.now()
        self.paused = False
        logger.warning(f"System unpaused by {caller}")
        self._record("UNPAUSED", caller, now)

    # -------------------------------------------------------------------------
    # ADMINISTRATION
    # -------------------------------------------------------------------------

    def update_cooldown(self, caller: str, cooldown_seconds: int) -> None:
        """
        Change the market breaker cooldown (ADMIN only).

        Applies to already tripped breakers as well, since activity is
        evaluated from tripped_at at read time.
        """
        self._access.require(Role.ADMIN, caller)
        self._validate_cooldown(cooldown_seconds)
        previous = self.cooldown_seconds
        self.cooldown_seconds = cooldown_seconds
        logger.info(f"Breaker cooldown updated by {caller}: {previous}s -> {cooldown_seconds}s")
        self._record(
            "COOLDOWN_UPDATED", caller, self._clock.now(),
            previous=previous, cooldown_seconds=cooldown_seconds,
        )

    def _record(self, event: str, caller: str, now: int, **details: Any) -> None:
        self._audit.log_event(event, {"caller": caller, "timestamp": now, **details})

    # -------------------------------------------------------------------------
    # STATE EXPORT
    # -------------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        return {
            "paused": self.paused,
            "global_circuit_breaker": self.global_circuit_breaker,
            "cooldown_seconds": self.cooldown_seconds,
            "market_tripped_at": dict(self._market_tripped_at),
        }

    def parse_state(self, data: Dict[str, Any]) -> Dict[str, Any]:
        cooldown = int(data.get("cooldown_seconds", self.cooldown_seconds))
        self._validate_cooldown(cooldown)
        return {
            "cooldown_seconds": cooldown,
            "paused": bool(data.get("paused", False)),
            "global_circuit_breaker": bool(data.get("global_circuit_breaker", False)),
            "market_tripped_at": {
                market_id: int(tripped_at)
                for market_id, tripped_at in data.get("market_tripped_at", {}).items()
            },
        }

    def apply_state(self, parsed: Dict[str, Any]) -> None:
        self.cooldown_seconds = parsed["cooldown_seconds"]
        self.paused = parsed["paused"]
        self.global_circuit_breaker = parsed["global_circuit_breaker"]
        self._market_tripped_at = dict(parsed["market_tripped_at"])

    def restore_state(self, data: Dict[str, Any]) -> None:
        self.apply_state(self.parse_state(data))
