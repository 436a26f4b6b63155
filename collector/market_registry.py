# =============================================================================
# POLYMARKET LENDING - GAMMA MARKET REGISTRY
# Module: collector/market_registry.py
# Purpose: Read-only MarketRegistry backed by the Gamma API
# =============================================================================
#
# - Lookups are cached per instance for a TTL (default 5 minutes)
# - Unknown markets read as unregistered (resolution_time = 0)
# - Fetch failures propagate as CollectorError; a stale cache entry is NOT
#   served in their place
#
# =============================================================================

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from core.market import MarketInfo, MarketRegistry

from .client import PolymarketHttpClient
from .normalizer import MarketNormalizer

logger = logging.getLogger(__name__)


class GammaMarketRegistry(MarketRegistry):
    """Market metadata from the Polymarket Gamma API."""

    def __init__(
        self,
        client: PolymarketHttpClient,
        cache_ttl_seconds: int = 300,
        normalizer: Optional[MarketNormalizer] = None,
        time_source: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.cache_ttl_seconds = cache_ttl_seconds
        self._normalizer = normalizer or MarketNormalizer()
        self._time = time_source

        # condition id -> (fetched_at, info)
        self._cache: Dict[str, Tuple[float, MarketInfo]] = {}

    def get_market(self, market_id: str) -> MarketInfo:
        cached = self._cache.get(market_id)
        now = self._time()
        if cached is not None and now - cached[0] < self.cache_ttl_seconds:
            return cached[1]

        raw = self._client.fetch_market(market_id)
        if raw is None:
            logger.info(f"Gamma: market {market_id} not found")
            info = MarketInfo.unregistered(market_id)
        else:
            info = self._normalizer.normalize(raw)

        self._cache[market_id] = (now, info)
        return info

    def invalidate(self, market_id: Optional[str] = None) -> None:
        """Drop one cached market, or the whole cache."""
        if market_id is None:
            self._cache.clear()
        else:
            self._cache.pop(market_id, None)
