# =============================================================================
# POLYMARKET LENDING - MARKET DATA COLLECTOR
# Module: collector/__init__.py
# Purpose: Off-core market metadata and price intake
# =============================================================================
#
# STRICT SEPARATION:
# The collector reads from Polymarket and WRITES only through the oracle's
# updater interface. It never touches positions, breakers or parameters.
#
# =============================================================================

from .client import CollectorError, PolymarketHttpClient
from .normalizer import MarketNormalizer
from .market_registry import GammaMarketRegistry
from .price_feed import OracleKeeper, PollRound

__all__ = [
    "CollectorError",
    "PolymarketHttpClient",
    "MarketNormalizer",
    "GammaMarketRegistry",
    "OracleKeeper",
    "PollRound",
]
