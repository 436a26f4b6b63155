# =============================================================================
# POLYMARKET LENDING - MARKET METADATA INTERFACE
# =============================================================================
#
# Market metadata is owned by an EXTERNAL registry. The risk core only reads:
#   {condition_id, resolution_time, is_frozen, is_registered, outcome_count}
#
# Unknown markets read as an unregistered record with resolution_time = 0,
# which every consumer treats as "already resolved".
#
# InMemoryMarketRegistry is the reference registry used for wiring, tests
# and simulations. The HTTP-backed registry lives in collector/.
#
# =============================================================================

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Optional

from shared.enums import Role

from .access_control import AccessControl
from .exceptions import InvalidParameterError, MarketNotRegisteredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketInfo:
    """Read-only view of a prediction market."""
    condition_id: str
    resolution_time: int
    is_frozen: bool = False
    is_registered: bool = True
    outcome_count: int = 2

    @classmethod
    def unregistered(cls, condition_id: str) -> "MarketInfo":
        return cls(
            condition_id=condition_id,
            resolution_time=0,
            is_frozen=False,
            is_registered=False,
            outcome_count=0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketInfo":
        return cls(
            condition_id=data["condition_id"],
            resolution_time=int(data.get("resolution_time", 0)),
            is_frozen=bool(data.get("is_frozen", False)),
            is_registered=bool(data.get("is_registered", True)),
            outcome_count=int(data.get("outcome_count", 2)),
        )


class MarketRegistry(ABC):
    """Market metadata lookup consumed by the risk core."""

    @abstractmethod
    def get_market(self, market_id: str) -> MarketInfo:
        """Return market metadata; unknown ids yield MarketInfo.unregistered()."""

    def require_market(self, market_id: str) -> MarketInfo:
        """
        Return a registered market.

        Raises:
            MarketNotRegisteredError: If the market is unknown
        """
        market = self.get_market(market_id)
        if not market.is_registered:
            raise MarketNotRegisteredError(market_id)
        return market


class InMemoryMarketRegistry(MarketRegistry):
    """
    Dict-backed registry.

    Registration is an ADMIN operation, manual freeze a GUARDIAN operation.
    """

    def __init__(self, access: AccessControl):
        self._access = access
        self._markets: Dict[str, MarketInfo] = {}

    def get_market(self, market_id: str) -> MarketInfo:
        return self._markets.get(market_id) or MarketInfo.unregistered(market_id)

    def register_market(
        self,
        caller: str,
        condition_id: str,
        resolution_time: int,
        outcome_count: int = 2,
    ) -> MarketInfo:
        self._access.require(Role.ADMIN, caller)
        if not condition_id:
            raise InvalidParameterError("condition_id", condition_id, "required")
        if resolution_time <= 0:
            raise InvalidParameterError("resolution_time", resolution_time, "must be positive")
        if outcome_count < 2:
            raise InvalidParameterError("outcome_count", outcome_count, "at least two outcomes")

        market = MarketInfo(
            condition_id=condition_id,
            resolution_time=resolution_time,
            outcome_count=outcome_count,
        )
        self._markets[condition_id] = market
        logger.info(f"Registered market {condition_id} resolving at {resolution_time}")
        return market

    def freeze_market(self, caller: str, market_id: str) -> None:
        self._set_frozen(caller, market_id, True)

    def unfreeze_market(self, caller: str, market_id: str) -> None:
        self._set_frozen(caller, market_id, False)

    def _set_frozen(self, caller: str, market_id: str, frozen: bool) -> None:
        self._access.require(Role.GUARDIAN, caller)
        market = self.require_market(market_id)
        self._markets[market_id] = replace(market, is_frozen=frozen)
        logger.warning(f"Market {market_id} {'FROZEN' if frozen else 'unfrozen'} by {caller}")

    def markets(self) -> Dict[str, MarketInfo]:
        return dict(self._markets)

    def load(self, markets: Optional[Dict[str, MarketInfo]]) -> None:
        """Replace registry contents (snapshot restore)."""
        self._markets = dict(markets or {})
