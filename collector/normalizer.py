# =============================================================================
# POLYMARKET LENDING - MARKET NORMALIZER
# Module: collector/normalizer.py
# Purpose: Convert raw Gamma market payloads into MarketInfo records
# =============================================================================
#
# OUTPUT: core.market.MarketInfo
#   condition_id     <- conditionId | condition_id | id
#   resolution_time  <- endDate | endDateIso | end_date   (unix seconds)
#   is_frozen        <- closed | archived | not active
#   outcome_count    <- len(outcomes)
#
# DESIGN:
# - Deterministic: same input => same output
# - Fail-closed: a missing or unparsable end date yields resolution_time = 0,
#   which every consumer treats as already resolved
#
# =============================================================================

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.market import MarketInfo

logger = logging.getLogger(__name__)


class MarketNormalizer:
    """Normalizes raw Gamma API market data into MarketInfo."""

    END_DATE_FIELDS = ("endDate", "endDateIso", "end_date")

    def normalize(self, market: Dict[str, Any]) -> MarketInfo:
        """
        Normalize a single Gamma market.

        Args:
            market: Raw market dictionary

        Returns:
            MarketInfo (is_registered=True)

        Raises:
            ValueError: If the payload has no market identifier
        """
        condition_id = self._extract_condition_id(market)
        if not condition_id:
            raise ValueError("Market payload has no condition id")

        resolution_time = self._extract_resolution_time(market)
        if resolution_time == 0:
            logger.warning(f"Market {condition_id}: no usable end date, treating as resolved")

        return MarketInfo(
            condition_id=condition_id,
            resolution_time=resolution_time,
            is_frozen=self._is_frozen(market),
            is_registered=True,
            outcome_count=len(self._parse_list(market.get("outcomes"))),
        )

    def extract_token_ids(self, market: Dict[str, Any]) -> List[str]:
        """CLOB token ids of the market's outcomes, in outcome order."""
        return [str(t) for t in self._parse_list(market.get("clobTokenIds"))]

    def _extract_condition_id(self, market: Dict[str, Any]) -> Optional[str]:
        for field_name in ("conditionId", "condition_id", "id"):
            value = market.get(field_name)
            if value:
                return str(value)
        return None

    def _extract_resolution_time(self, market: Dict[str, Any]) -> int:
        for field_name in self.END_DATE_FIELDS:
            value = market.get(field_name)
            if value:
                parsed = self._parse_to_epoch(value)
                if parsed is not None:
                    return parsed
        return 0

    @staticmethod
    def _is_frozen(market: Dict[str, Any]) -> bool:
        if market.get("closed") or market.get("archived"):
            return True
        return market.get("active") is False

    @staticmethod
    def _parse_list(value: Any) -> List[Any]:
        """Gamma encodes arrays either as JSON strings or as lists."""
        if isinstance(value, list):
            return value
        if isinstance(value, str) and value.strip():
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return []
            return parsed if isinstance(parsed, list) else []
        return []

    @staticmethod
    def _parse_to_epoch(value: Any) -> Optional[int]:
        """Parse ISO date/datetime or unix seconds/milliseconds to unix seconds."""
        value_str = str(value).strip()

        if value_str.isdigit():
            ts = int(value_str)
            if ts > 1000000000000:  # Milliseconds
                ts = ts // 1000
            return ts

        try:
            dt = datetime.fromisoformat(value_str.replace("Z", "+00:00"))
        except ValueError:
            return None

        # Date-only and naive values are UTC
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())
