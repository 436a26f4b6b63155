# =============================================================================
# POLYMARKET LENDING - RISK TIER SCHEDULER
# =============================================================================
#
# Maximum loan-to-value tightens as a market approaches resolution.
#
#   NORMAL       T >= 7 days         50%
#   MEDIUM_RISK  2 days <= T < 7     35%
#   HIGH_RISK    24h <= T < 48h      20%
#   FROZEN       T < 24h             0%   (also: manual market freeze)
#
# T = max(0, resolution_time - now)
#
# The FROZEN tier is fixed at 0 and cannot be configured.
#
# =============================================================================

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from shared.enums import LTVTier, Role
from shared.fixed_point import BPS_DENOMINATOR, mul_div

from .access_control import AccessControl
from .clock import Clock
from .exceptions import InvalidParameterError
from .market import MarketInfo, MarketRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# TIER BOUNDARIES
# =============================================================================

ONE_HOUR = 60 * 60
ONE_DAY = 24 * ONE_HOUR

NORMAL_MIN_SECONDS = 7 * ONE_DAY
MEDIUM_MIN_SECONDS = 2 * ONE_DAY
HIGH_MIN_SECONDS = ONE_DAY


@dataclass
class RiskTierConfig:
    """Max LTV per tier, in basis points."""
    normal_ltv_bps: int = 5000
    medium_risk_ltv_bps: int = 3500
    high_risk_ltv_bps: int = 2000

    # Not configurable
    frozen_ltv_bps: int = 0

    def validate(self) -> None:
        """
        Raises:
            InvalidParameterError: If ordering or bounds are violated
        """
        if self.frozen_ltv_bps != 0:
            raise InvalidParameterError("frozen_ltv_bps", self.frozen_ltv_bps, "fixed at 0")
        if not BPS_DENOMINATOR >= self.normal_ltv_bps >= self.medium_risk_ltv_bps >= self.high_risk_ltv_bps >= 0:
            raise InvalidParameterError(
                "ltv_tiers",
                (self.normal_ltv_bps, self.medium_risk_ltv_bps, self.high_risk_ltv_bps),
                "require 10000 >= normal >= medium >= high >= 0",
            )

    def ltv_for(self, tier: LTVTier) -> int:
        return {
            LTVTier.NORMAL: self.normal_ltv_bps,
            LTVTier.MEDIUM_RISK: self.medium_risk_ltv_bps,
            LTVTier.HIGH_RISK: self.high_risk_ltv_bps,
            LTVTier.FROZEN: self.frozen_ltv_bps,
        }[tier]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskTierConfig":
        config = cls(
            normal_ltv_bps=int(data.get("normal_ltv_bps", 5000)),
            medium_risk_ltv_bps=int(data.get("medium_risk_ltv_bps", 3500)),
            high_risk_ltv_bps=int(data.get("high_risk_ltv_bps", 2000)),
        )
        config.validate()
        return config


def tier_for_time_to_resolution(seconds: int) -> LTVTier:
    """Map time-to-resolution to a tier (manual freeze not considered)."""
    if seconds >= NORMAL_MIN_SECONDS:
        return LTVTier.NORMAL
    if seconds >= MEDIUM_MIN_SECONDS:
        return LTVTier.MEDIUM_RISK
    if seconds >= HIGH_MIN_SECONDS:
        return LTVTier.HIGH_RISK
    return LTVTier.FROZEN


class RiskTierScheduler:
    """Time-to-resolution based LTV schedule."""

    def __init__(
        self,
        access: AccessControl,
        clock: Clock,
        registry: MarketRegistry,
        config: Optional[RiskTierConfig] = None,
    ):
        self._access = access
        self._clock = clock
        self._registry = registry
        self.config = config or RiskTierConfig()
        self.config.validate()

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    def get_time_to_resolution(self, market_id: str) -> int:
        market = self._registry.require_market(market_id)
        return max(0, market.resolution_time - self._clock.now())

    def get_ltv_tier(self, market_id: str) -> LTVTier:
        """
        Current tier for a market.

        Raises:
            MarketNotRegisteredError: If the market is unknown
        """
        market = self._registry.require_market(market_id)
        return self._tier(market, self._clock.now())

    def _tier(self, market: MarketInfo, now: int) -> LTVTier:
        if market.is_frozen:
            return LTVTier.FROZEN
        return tier_for_time_to_resolution(max(0, market.resolution_time - now))

    def get_max_ltv(self, market_id: str) -> int:
        """Max LTV in basis points for the market's current tier."""
        return self.config.ltv_for(self.get_ltv_tier(market_id))

    def calculate_max_borrow(self, collateral_value: int, market_id: str) -> int:
        """
        Largest debt (loan currency units) allowed for a collateral value.

        Args:
            collateral_value: Collateral value in loan currency units
            market_id: Market the collateral belongs to
        """
        return mul_div(collateral_value, self.get_max_ltv(market_id), BPS_DENOMINATOR)

    def is_borrowing_allowed(self, market_id: str) -> bool:
        return self.get_max_ltv(market_id) > 0

    # -------------------------------------------------------------------------
    # ADMINISTRATION
    # -------------------------------------------------------------------------

    def update_ltv_tiers(self, caller: str, normal: int, medium: int, high: int) -> None:
        """
        Replace the tier LTVs (ADMIN only).

        Raises:
            InvalidParameterError: If normal >= medium >= high >= 0 does not hold
        """
        self._access.require(Role.ADMIN, caller)
        candidate = RiskTierConfig(
            normal_ltv_bps=normal,
            medium_risk_ltv_bps=medium,
            high_risk_ltv_bps=high,
        )
        candidate.validate()
        self.config = candidate
        logger.info(f"LTV tiers updated by {caller}: normal={normal} medium={medium} high={high}")
