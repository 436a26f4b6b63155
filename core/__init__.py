# =============================================================================
# POLYMARKET LENDING - RISK CORE
# =============================================================================
#
# Risk controls for a lending protocol that accepts prediction-market
# outcome tokens as collateral.
#
# MODULES:
# - price_oracle: TWAP oracle with deviation breaker and staleness check
# - risk_tier_scheduler: LTV schedule by time to resolution
# - freeze_controller: pause, circuit breakers, pre-resolution freeze
# - liquidation_engine: position ledger, health factors, liquidations
#
# SUPPORT:
# - access_control, clock, transaction, market, exceptions
#
# The core does NOT route borrows, hold funds or accrue interest.
#
# =============================================================================

from core.access_control import AccessControl
from core.clock import Clock, ManualClock, SystemClock
from core.market import InMemoryMarketRegistry, MarketInfo, MarketRegistry
from core.price_oracle import PriceOracle, PriceObservation
from core.risk_tier_scheduler import RiskTierConfig, RiskTierScheduler
from core.freeze_controller import FreezeController
from core.liquidation_engine import LiquidationEngine, LiquidationParameters, Position

__all__ = [
    "AccessControl",
    "Clock",
    "ManualClock",
    "SystemClock",
    "InMemoryMarketRegistry",
    "MarketInfo",
    "MarketRegistry",
    "PriceOracle",
    "PriceObservation",
    "RiskTierConfig",
    "RiskTierScheduler",
    "FreezeController",
    "LiquidationEngine",
    "LiquidationParameters",
    "Position",
]
