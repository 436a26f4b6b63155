# =============================================================================
# POLYMARKET LENDING - RISK GATE
# =============================================================================
#
# Pre-action checks consulted by the orchestrator BEFORE it moves funds.
# The gate only reads; it never routes borrows or mutates positions.
#
# BORROW (risk-increasing) requires ALL of:
#   - freeze controller allows borrowing
#   - fresh price (<= 5 minutes old)
#   - oracle breaker not tripped
#   - resulting debt within the current LTV tier
#
# WITHDRAW requires no global pause and a resulting health factor >= 1.0.
# LIQUIDATE requires no global pause. REPAY is always allowed.
#
# =============================================================================

import logging

from core.exceptions import (
    ActionBlockedError,
    CircuitBreakerTrippedError,
    ExceedsMaxLTVError,
    HealthFactorTooLowError,
    InsufficientCollateralError,
    MarketFrozenError,
    StalePriceError,
    ZeroAmountError,
)
from core.freeze_controller import FreezeController
from core.liquidation_engine import LiquidationEngine
from core.price_oracle import PriceOracle
from core.risk_tier_scheduler import RiskTierScheduler
from shared.enums import ActionClass, BlockReason
from shared.fixed_point import MAX_UINT256, PRICE_SCALE, collateral_value

logger = logging.getLogger(__name__)


class RiskGate:
    """Borrow / withdraw / liquidate / repay admission checks."""

    def __init__(
        self,
        oracle: PriceOracle,
        risk_tiers: RiskTierScheduler,
        freeze: FreezeController,
        liquidation: LiquidationEngine,
    ):
        self._oracle = oracle
        self._risk_tiers = risk_tiers
        self._freeze = freeze
        self._liquidation = liquidation

    def check_borrow(self, borrower: str, asset: str, market_id: str, amount: int) -> int:
        """
        Validate a new borrow against the position's collateral.

        Args:
            borrower: Borrowing account
            asset: Collateral asset of the position
            market_id: Market the collateral token belongs to
            amount: Additional debt, loan currency units

        Returns:
            Remaining borrow capacity after this borrow

        Raises:
            ZeroAmountError: amount is zero
            ActionBlockedError: Freeze controller denies borrowing
            StalePriceError: Latest price older than the staleness threshold
            CircuitBreakerTrippedError: Oracle breaker tripped for the asset
            ExceedsMaxLTVError: Resulting debt above the tier limit
        """
        if amount <= 0:
            raise ZeroAmountError(borrower)

        allowed, reason = self._freeze.can_borrow(market_id)
        if not allowed:
            logger.info(f"Borrow blocked for {borrower} on {market_id}: {reason.value}")
            if reason == BlockReason.MARKET_FROZEN:
                raise MarketFrozenError(market_id)
            raise ActionBlockedError(ActionClass.BORROW.value, reason, market_id)

        if self._oracle.is_price_stale(asset):
            raise StalePriceError(self._oracle.get_price_age(asset), asset)
        if self._oracle.is_circuit_breaker_triggered(asset):
            raise CircuitBreakerTrippedError(asset)

        position = self._liquidation.get_position(borrower, asset)
        value = self._liquidation.get_collateral_value(borrower, asset)
        max_borrow = self._risk_tiers.calculate_max_borrow(value, market_id)
        new_debt = position.debt_amount + amount

        if new_debt > max_borrow:
            logger.info(f"Borrow rejected for {borrower}: debt {new_debt} > max {max_borrow}")
            raise ExceedsMaxLTVError(new_debt, max_borrow, borrower)

        return max_borrow - new_debt

    def check_withdraw(self, borrower: str, asset: str, market_id: str, amount: int) -> int:
        """
        Validate a collateral withdrawal.

        Returns:
            Health factor after the withdrawal (MAX_UINT256 without debt)
        """
        if amount <= 0:
            raise ZeroAmountError(borrower)

        allowed, reason = self._freeze.can_withdraw(market_id)
        if not allowed:
            raise ActionBlockedError(ActionClass.WITHDRAW.value, reason, market_id)

        position = self._liquidation.get_position(borrower, asset)
        if amount > position.collateral_amount:
            raise InsufficientCollateralError(position.collateral_amount, amount, borrower)

        if position.debt_amount == 0:
            return MAX_UINT256

        price, _ = self._oracle.get_twap(asset)
        remaining_value = collateral_value(position.collateral_amount - amount, price)
        health_factor = self._liquidation.calculate_health_factor(remaining_value, position.debt_amount)
        if health_factor < PRICE_SCALE:
            raise HealthFactorTooLowError(health_factor, borrower)
        return health_factor

    def check_liquidate(self, market_id: str) -> None:
        allowed, reason = self._freeze.can_liquidate(market_id)
        if not allowed:
            raise ActionBlockedError(ActionClass.LIQUIDATE.value, reason, market_id)

    def check_repay(self) -> bool:
        allowed, _ = self._freeze.can_repay()
        return allowed
