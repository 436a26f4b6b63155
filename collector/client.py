# =============================================================================
# POLYMARKET LENDING - MARKET DATA CLIENT
# Module: collector/client.py
# Purpose: HTTP client for the Polymarket Gamma and CLOB APIs
# =============================================================================
#
# DESIGN:
# - Read-only: market metadata (Gamma) and midpoint prices (CLOB)
# - Exponential backoff for retries; 4xx (except 429) fails immediately
# - Every failure surfaces as CollectorError after retries are exhausted
#
# API REFERENCE:
# Gamma:  https://gamma-api.polymarket.com/markets?condition_ids=<id>
# CLOB:   https://clob.polymarket.com/midpoint?token_id=<id>
#
# =============================================================================

import time
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from core.exceptions import LendingError

logger = logging.getLogger(__name__)


class CollectorError(LendingError):
    """Market data could not be fetched or parsed."""


class PolymarketHttpClient:
    """
    HTTP client for Polymarket market data.

    Features:
    - Shared requests session
    - Configurable timeouts
    - Exponential backoff retry logic
    """

    GAMMA_URL = "https://gamma-api.polymarket.com"
    CLOB_URL = "https://clob.polymarket.com"
    DEFAULT_TIMEOUT = 15  # seconds
    MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0  # seconds
    MAX_BACKOFF = 30.0  # seconds

    def __init__(
        self,
        gamma_url: str = GAMMA_URL,
        clob_url: str = CLOB_URL,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        initial_backoff: float = INITIAL_BACKOFF,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            gamma_url: Gamma API base URL
            clob_url: CLOB API base URL
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            initial_backoff: First retry delay in seconds (doubles each retry)
            session: Optional pre-configured requests session
        """
        self.gamma_url = gamma_url.rstrip("/")
        self.clob_url = clob_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.initial_backoff = initial_backoff

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "PolymarketLendingCore/1.0",
            "Accept": "application/json",
        })

    @classmethod
    def from_settings(cls, settings) -> "PolymarketHttpClient":
        """Build a client from a CollectorSettings section."""
        return cls(
            gamma_url=settings.gamma_url,
            clob_url=settings.clob_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
        )

    def fetch_market(self, condition_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a market by condition id from the Gamma API.

        Returns:
            Raw market dictionary, or None if the API knows no such market

        Raises:
            CollectorError: If all retry attempts fail
        """
        result = self._request(
            self.gamma_url, "/markets", {"condition_ids": condition_id}
        )

        if isinstance(result, dict):
            result = result.get("data") or result.get("markets") or [result]
        if not isinstance(result, list):
            raise CollectorError(f"Unexpected Gamma response type: {type(result).__name__}", condition_id)

        for market in result:
            if isinstance(market, dict) and market.get("conditionId", condition_id) == condition_id:
                return market
        return None

    def fetch_midpoint(self, token_id: str) -> Decimal:
        """
        Fetch the current midpoint price for an outcome token.

        Returns:
            Midpoint as a Decimal in [0, 1]

        Raises:
            CollectorError: On request failure or malformed payload
        """
        result = self._request(self.clob_url, "/midpoint", {"token_id": token_id})
        raw = result.get("mid") if isinstance(result, dict) else None
        if raw is None:
            raise CollectorError("Midpoint missing from CLOB response", token_id)

        try:
            mid = Decimal(str(raw))
        except (InvalidOperation, ValueError) as e:
            raise CollectorError(f"Invalid midpoint {raw!r}: {e}", token_id)

        if not Decimal(0) <= mid <= Decimal(1):
            raise CollectorError(f"Midpoint out of range: {mid}", token_id)
        return mid

    def _request(
        self,
        base_url: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make a GET request with retry logic.

        Returns:
            Parsed JSON response

        Raises:
            CollectorError: If all retry attempts fail
        """
        url = f"{base_url}{endpoint}"
        backoff = self.initial_backoff
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Request attempt {attempt + 1}: {url} {params}")
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except requests.exceptions.HTTPError as e:
                last_error = e
                status = e.response.status_code if e.response is not None else 0
                logger.warning(f"HTTP error {status} on attempt {attempt + 1}: {url}")

                # Don't retry client errors (4xx) except 429 (rate limit)
                if 400 <= status < 500 and status != 429:
                    raise CollectorError(f"Client error {status} for {url}")

            except requests.exceptions.Timeout as e:
                last_error = e
                logger.warning(f"Timeout after {self.timeout}s on attempt {attempt + 1}: {url}")

            except requests.exceptions.RequestException as e:
                last_error = e
                logger.warning(f"Request failed on attempt {attempt + 1}: {e}")

            except ValueError as e:
                last_error = e
                logger.warning(f"JSON decode error on attempt {attempt + 1}: {e}")

            # Exponential backoff before retry
            if attempt < self.max_retries - 1:
                sleep_time = min(backoff, self.MAX_BACKOFF)
                logger.info(f"Retrying in {sleep_time:.1f}s...")
                time.sleep(sleep_time)
                backoff *= 2

        raise CollectorError(
            f"All {self.max_retries} retry attempts failed for {url}. Last error: {last_error}"
        )
