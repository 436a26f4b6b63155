# =============================================================================
# POLYMARKET LENDING - LIQUIDATION ENGINE
# =============================================================================
#
# Position ledger, health factors and liquidation execution.
#
# HEALTH FACTOR (18 decimals, 1e18 = 1.0):
#   HF = collateral_value * threshold_bps * 1e18 / (debt * 10000)
#   HF = 2**256 - 1 when debt == 0
#   Liquidatable iff debt > 0 and HF < 1.0
#
# SEIZE AMOUNT (collateral token units, 18 decimals):
#   repay_with_bonus = repay * (10000 + bonus_bps) / 10000      (6 decimals)
#   seize = rescale(repay_with_bonus, 6 -> 18) * 1e18 / twap_price
#
# EXECUTION:
# - ORCHESTRATOR only, single-entry (reentrancy guarded)
# - The ledger is mutated BEFORE collaborators are called
# - Any collaborator failure rolls back the ledger and both collaborators
# - This engine is the only component allowed to instruct seizure
#
# Liquidation prices off the TWAP without staleness or breaker checks:
# a stale or disputed price must not keep an insolvent position alive.
#
# =============================================================================

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from shared.enums import Component, Role
from shared.fixed_point import (
    BPS_DENOMINATOR,
    COLLATERAL_DECIMALS,
    LOAN_DECIMALS,
    MAX_UINT256,
    PRICE_SCALE,
    collateral_value,
    mul_div,
    rescale,
)
from shared.logging_config import AuditLogger

from .access_control import AccessControl
from .clock import Clock
from .exceptions import (
    AlreadyConfiguredError,
    ExceedsCloseFactorError,
    InvalidParameterError,
    NotConfiguredError,
    NotLiquidatableError,
    ZeroAmountError,
)
from .price_oracle import PriceOracle
from .transaction import ReentrancyGuard, Transaction, non_reentrant

if TYPE_CHECKING:
    from execution.collaborators import CollateralCustody, LendingPool

logger = logging.getLogger(__name__)


# =============================================================================
# PARAMETERS
# =============================================================================

MAX_LIQUIDATION_BONUS_BPS = 5000


@dataclass
class LiquidationParameters:
    """Risk parameters in basis points."""
    liquidation_threshold_bps: int = 7500
    liquidation_bonus_bps: int = 1000
    close_factor_bps: int = 5000

    def validate(self) -> None:
        """
        Raises:
            InvalidParameterError: If any parameter is out of bounds
        """
        if not 0 < self.liquidation_threshold_bps <= BPS_DENOMINATOR:
            raise InvalidParameterError(
                "liquidation_threshold_bps", self.liquidation_threshold_bps, "must be in (0, 10000]"
            )
        if not 0 <= self.liquidation_bonus_bps <= MAX_LIQUIDATION_BONUS_BPS:
            raise InvalidParameterError(
                "liquidation_bonus_bps", self.liquidation_bonus_bps, "must be in [0, 5000]"
            )
        if not 0 < self.close_factor_bps <= BPS_DENOMINATOR:
            raise InvalidParameterError(
                "close_factor_bps", self.close_factor_bps, "must be in (0, 10000]"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiquidationParameters":
        params = cls(
            liquidation_threshold_bps=int(data.get("liquidation_threshold_bps", 7500)),
            liquidation_bonus_bps=int(data.get("liquidation_bonus_bps", 1000)),
            close_factor_bps=int(data.get("close_factor_bps", 5000)),
        )
        params.validate()
        return params


@dataclass
class Position:
    """
    Borrower position for one collateral asset.

    Amounts:
        collateral_amount: collateral token units (18 decimals)
        debt_amount: loan currency units (6 decimals)
    """
    borrower: str
    asset: str
    collateral_amount: int = 0
    debt_amount: int = 0
    last_update_timestamp: int = 0
    market_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(
            borrower=data["borrower"],
            asset=data["asset"],
            collateral_amount=int(data.get("collateral_amount", 0)),
            debt_amount=int(data.get("debt_amount", 0)),
            last_update_timestamp=int(data.get("last_update_timestamp", 0)),
            market_id=data.get("market_id"),
        )


# =============================================================================
# LIQUIDATION ENGINE
# =============================================================================


class LiquidationEngine:
    """
    Position ledger and liquidation executor.

    Two-phase wiring: construct, then configure() once with the custody and
    pool collaborators.
    """

    def __init__(
        self,
        access: AccessControl,
        clock: Clock,
        oracle: PriceOracle,
        params: Optional[LiquidationParameters] = None,
        address: str = "liquidation_engine",
        audit: Optional[AuditLogger] = None,
    ):
        self._access = access
        self._clock = clock
        self._oracle = oracle
        self.params = params or LiquidationParameters()
        self.params.validate()
        self.address = address
        self._audit = audit or AuditLogger(Component.LIQUIDATION)

        self._custody: Optional["CollateralCustody"] = None
        self._pool: Optional["LendingPool"] = None
        self._reentrancy_guard = ReentrancyGuard("LiquidationEngine")

        # (borrower, asset) -> Position
        self._positions: Dict[Tuple[str, str], Position] = {}

    def configure(self, caller: str, custody: "CollateralCustody", pool: "LendingPool") -> None:
        """
        Inject collaborators (ADMIN only, once).

        Raises:
            AlreadyConfiguredError: If collaborators were already set
        """
        self._access.require(Role.ADMIN, caller)
        if self._custody is not None or self._pool is not None:
            raise AlreadyConfiguredError("liquidation collaborators")
        self._custody = custody
        self._pool = pool
        logger.info(f"LiquidationEngine configured: custody={type(custody).__name__} pool={type(pool).__name__}")

    @property
    def is_configured(self) -> bool:
        return self._custody is not None and self._pool is not None

    # -------------------------------------------------------------------------
    # POSITION LEDGER (ORCHESTRATOR)
    # -------------------------------------------------------------------------

    def _position_for_update(self, borrower: str, asset: str) -> Position:
        key = (borrower, asset)
        position = self._positions.get(key)
        if position is None:
            position = Position(borrower=borrower, asset=asset)
            self._positions[key] = position
        return position

    def update_position_debt(
        self,
        caller: str,
        borrower: str,
        asset: str,
        amount: int,
        market_id: Optional[str] = None,
    ) -> Position:
        """Overwrite the recorded debt. No funds move."""
        self._access.require(Role.ORCHESTRATOR, caller)
        now = self._clock.now()
        if amount < 0:
            raise InvalidParameterError("debt_amount", amount, "must be non-negative")

        position = self._position_for_update(borrower, asset)
        position.debt_amount = amount
        position.last_update_timestamp = now
        if market_id is not None:
            position.market_id = market_id
        logger.debug(f"Debt updated: {borrower}/{asset} = {amount}")
        return position

    def update_position_collateral(
        self,
        caller: str,
        borrower: str,
        asset: str,
        amount: int,
        market_id: Optional[str] = None,
    ) -> Position:
        """Overwrite the recorded collateral. No funds move."""
        self._access.require(Role.ORCHESTRATOR, caller)
        now = self._clock.now()
        if amount < 0:
            raise InvalidParameterError("collateral_amount", amount, "must be non-negative")

        position = self._position_for_update(borrower, asset)
        position.collateral_amount = amount
        position.last_update_timestamp = now
        if market_id is not None:
            position.market_id = market_id
        logger.debug(f"Collateral updated: {borrower}/{asset} = {amount}")
        return position

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    def get_position(self, borrower: str, asset: str) -> Position:
        """Copy of the position; a zeroed record if none exists."""
        position = self._positions.get((borrower, asset))
        if position is None:
            return Position(borrower=borrower, asset=asset)
        return Position(**asdict(position))

    def positions(self) -> List[Position]:
        return [Position(**asdict(p)) for p in self._positions.values()]

    def calculate_health_factor(self, collateral_value_amount: int, debt_amount: int) -> int:
        """
        Health factor for a collateral value and debt, both in loan currency units.

        Returns:
            HF in 18-decimal fixed point; MAX_UINT256 when debt is zero
        """
        if debt_amount == 0:
            return MAX_UINT256
        return mul_div(
            collateral_value_amount * self.params.liquidation_threshold_bps,
            PRICE_SCALE,
            debt_amount * BPS_DENOMINATOR,
        )

    def get_collateral_value(self, borrower: str, asset: str) -> int:
        """Collateral value in loan currency units at the current TWAP."""
        position = self._positions.get((borrower, asset))
        if position is None or position.collateral_amount == 0:
            return 0
        price, _ = self._oracle.get_twap(asset)
        return collateral_value(position.collateral_amount, price)

    def get_health_factor(self, borrower: str, asset: str) -> int:
        position = self._positions.get((borrower, asset))
        if position is None or position.debt_amount == 0:
            return MAX_UINT256
        return self.calculate_health_factor(
            self.get_collateral_value(borrower, asset),
            position.debt_amount,
        )

    def is_liquidatable(self, borrower: str, asset: str) -> bool:
        position = self._positions.get((borrower, asset))
        if position is None or position.debt_amount == 0:
            return False
        return self.get_health_factor(borrower, asset) < PRICE_SCALE

    def get_max_liquidation(self, borrower: str, asset: str) -> int:
        """Largest repay amount allowed now (0 if not liquidatable)."""
        if not self.is_liquidatable(borrower, asset):
            return 0
        position = self._positions[(borrower, asset)]
        return mul_div(position.debt_amount, self.params.close_factor_bps, BPS_DENOMINATOR)

    def calculate_seize_amount(self, asset: str, repay_amount: int) -> int:
        """
        Collateral units owed to a liquidator repaying repay_amount.

        Returns 0 when the TWAP price is zero.
        """
        price, _ = self._oracle.get_twap(asset)
        if price == 0:
            return 0
        repay_with_bonus = mul_div(
            repay_amount,
            BPS_DENOMINATOR + self.params.liquidation_bonus_bps,
            BPS_DENOMINATOR,
        )
        repay_scaled = rescale(repay_with_bonus, LOAN_DECIMALS, COLLATERAL_DECIMALS)
        return mul_div(repay_scaled, PRICE_SCALE, price)

    # -------------------------------------------------------------------------
    # EXECUTION
    # -------------------------------------------------------------------------

    @non_reentrant
    def execute_liquidation(
        self,
        caller: str,
        liquidator: str,
        borrower: str,
        asset: str,
        repay_amount: int,
    ) -> int:
        """
        Liquidate part of an unhealthy position.

        Args:
            caller: Orchestrator account
            liquidator: Account repaying debt and receiving collateral
            borrower: Position owner
            asset: Collateral asset
            repay_amount: Debt repaid, loan currency units

        Returns:
            Collateral units seized

        Raises:
            ZeroAmountError: repay_amount is zero
            NotLiquidatableError: HF >= 1.0 or no debt
            ExceedsCloseFactorError: repay_amount above debt * close factor
            NotConfiguredError: Collaborators not injected yet
        """
        self._access.require(Role.ORCHESTRATOR, caller)
        now = self._clock.now()
        if not self.is_configured:
            raise NotConfiguredError("liquidation collaborators")
        if repay_amount <= 0:
            raise ZeroAmountError(borrower)

        key = (borrower, asset)
        position = self._positions.get(key)
        if position is None or not self.is_liquidatable(borrower, asset):
            raise NotLiquidatableError(borrower)

        health_factor = self.get_health_factor(borrower, asset)
        max_repay = mul_div(position.debt_amount, self.params.close_factor_bps, BPS_DENOMINATOR)
        if repay_amount > max_repay:
            raise ExceedsCloseFactorError(repay_amount, max_repay, borrower)

        seize_amount = min(self.calculate_seize_amount(asset, repay_amount), position.collateral_amount)

        with Transaction() as tx:
            tx.track(self._positions, key)
            tx.enlist(self._pool)
            tx.enlist(self._custody)
            position.debt_amount -= repay_amount
            position.collateral_amount -= seize_amount
            position.last_update_timestamp = now

            self._pool.receive_repayment(self.address, liquidator, repay_amount)
            self._custody.seize_collateral(self.address, asset, borrower, liquidator, seize_amount)

        logger.warning(
            f"LIQUIDATION: {borrower}/{asset} repaid={repay_amount} seized={seize_amount} "
            f"by {liquidator} (hf={health_factor})"
        )
        self._audit.log_event("LIQUIDATION_EXECUTED", {
            "borrower": borrower,
            "asset": asset,
            "liquidator": liquidator,
            "repay_amount": repay_amount,
            "seize_amount": seize_amount,
            "health_factor": health_factor,
            "remaining_debt": self._positions[key].debt_amount,
            "remaining_collateral": self._positions[key].collateral_amount,
            "timestamp": now,
        })
        return seize_amount

    # -------------------------------------------------------------------------
    # ADMINISTRATION
    # -------------------------------------------------------------------------

    def update_parameters(
        self,
        caller: str,
        liquidation_threshold_bps: int,
        liquidation_bonus_bps: int,
        close_factor_bps: int,
    ) -> None:
        """Replace risk parameters (ADMIN only)."""
        self._access.require(Role.ADMIN, caller)
        candidate = LiquidationParameters(
            liquidation_threshold_bps=liquidation_threshold_bps,
            liquidation_bonus_bps=liquidation_bonus_bps,
            close_factor_bps=close_factor_bps,
        )
        candidate.validate()
        previous = self.params
        self.params = candidate
        logger.info(f"Liquidation parameters updated by {caller}: {candidate.to_dict()}")
        self._audit.log_event("PARAMETERS_UPDATED", {
            "caller": caller,
            "previous": previous.to_dict(),
            "current": candidate.to_dict(),
            "timestamp": self._clock.now(),
        })

    # -------------------------------------------------------------------------
    # STATE EXPORT
    # -------------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        return {
            "parameters": self.params.to_dict(),
            "positions": [p.to_dict() for p in self._positions.values()],
        }

    def parse_state(
        self, data: Dict[str, Any]
    ) -> Tuple[LiquidationParameters, Dict[Tuple[str, str], Position]]:
        params = LiquidationParameters.from_dict(data.get("parameters", {}))
        positions = [Position.from_dict(raw) for raw in data.get("positions", [])]
        return params, {(p.borrower, p.asset): p for p in positions}

    def apply_state(
        self, parsed: Tuple[LiquidationParameters, Dict[Tuple[str, str], Position]]
    ) -> None:
        self.params, self._positions = parsed
        logger.info(f"Liquidation state restored: {len(self._positions)} positions")

    def restore_state(self, data: Dict[str, Any]) -> None:
        self.apply_state(self.parse_state(data))
