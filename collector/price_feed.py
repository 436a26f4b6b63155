# =============================================================================
# POLYMARKET LENDING - ORACLE KEEPER
# Module: collector/price_feed.py
# Purpose: Poll CLOB midpoints and push them into the PriceOracle
# =============================================================================
#
# One round:
#   1. fetch the midpoint for every configured asset
#   2. convert "0.535" -> 535000000000000000 (18 decimals, truncated)
#   3. submit ONE batch_record_observations call
#
# A fetch failure skips that asset for the round. Breaker rejections are
# reported by the oracle itself.
#
# =============================================================================

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from core.price_oracle import PriceOracle
from shared.fixed_point import to_fixed_point

from .client import CollectorError, PolymarketHttpClient

logger = logging.getLogger(__name__)


@dataclass
class PollRound:
    """Summary of one keeper round."""
    submitted: int = 0
    stored: int = 0
    failed: List[str] = field(default_factory=list)


class OracleKeeper:
    """
    Feeds the oracle from the CLOB API.

    Args:
        oracle: PriceOracle to update
        client: HTTP client used for midpoints
        updater: Account authorized as oracle updater
        assets: Mapping of oracle asset id -> CLOB token id
    """

    def __init__(
        self,
        oracle: PriceOracle,
        client: PolymarketHttpClient,
        updater: str,
        assets: Dict[str, str],
    ):
        self._oracle = oracle
        self._client = client
        self.updater = updater
        self.assets = dict(assets)

    def poll_once(self) -> PollRound:
        result = PollRound()
        asset_ids: List[str] = []
        prices: List[int] = []

        for asset, token_id in self.assets.items():
            try:
                mid = self._client.fetch_midpoint(token_id)
            except CollectorError as e:
                logger.warning(f"Keeper: skipping {asset} this round: {e}")
                result.failed.append(asset)
                continue
            asset_ids.append(asset)
            prices.append(to_fixed_point(mid))

        if not asset_ids:
            logger.warning("Keeper: no prices fetched this round")
            return result

        result.submitted = len(asset_ids)
        result.stored = self._oracle.batch_record_observations(self.updater, asset_ids, prices)
        logger.info(
            f"Keeper round: submitted={result.submitted} stored={result.stored} "
            f"failed={len(result.failed)}"
        )
        return result

    def run(
        self,
        rounds: int,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        on_round: Optional[Callable[[int, PollRound], None]] = None,
    ) -> List[PollRound]:
        """Run `rounds` polling rounds, sleeping between them."""
        results = []
        for i in range(rounds):
            round_result = self.poll_once()
            results.append(round_result)
            if on_round is not None:
                on_round(i, round_result)
            if i < rounds - 1:
                sleep(interval_seconds)
        return results
