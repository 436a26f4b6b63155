# =============================================================================
# POLYMARKET LENDING - PRICE ORACLE
# =============================================================================
#
# Per-asset ring buffer of price observations with a time-weighted average
# price (TWAP), a deviation circuit breaker and a staleness check.
#
# PRICE DOMAIN:
# Prices are outcome-token probabilities in 18-decimal fixed point, [0, 1e18].
#
# CUMULATIVE PRICE:
# Left-endpoint (rectangle) integration: each new observation adds
# previous.price * (now - previous.timestamp) to the running integral.
#
# CIRCUIT BREAKER:
# With >= 2 stored observations and the breaker not yet tripped, a new price
# deviating more than 8% from the current TWAP trips the breaker and is NOT
# stored. Only an administrator can reset the breaker.
#
# =============================================================================

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from shared.enums import Component, Role
from shared.fixed_point import PRICE_SCALE, deviation_bps
from shared.logging_config import AuditLogger

from .access_control import AccessControl
from .clock import Clock
from .exceptions import (
    ArrayLengthMismatchError,
    InsufficientObservationsError,
    InvalidPriceError,
    NonMonotonicTimestampError,
    ObservationIndexError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ORACLE CONSTANTS
# =============================================================================

MAX_OBSERVATIONS: int = 60
TWAP_WINDOW_SECONDS: int = 30 * 60
STALENESS_THRESHOLD_SECONDS: int = 5 * 60
MAX_DEVIATION_BPS: int = 800

# Minimum stored observations for a TWAP
MIN_TWAP_OBSERVATIONS: int = 2


# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass(frozen=True)
class PriceObservation:
    """A single stored price point."""
    timestamp: int
    price: int
    cumulative_price: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceObservation":
        return cls(
            timestamp=int(data["timestamp"]),
            price=int(data["price"]),
            cumulative_price=int(data["cumulative_price"]),
        )


@dataclass
class OracleAssetState:
    """
    Ring buffer and breaker state for one asset.

    Invariants:
    - stored timestamps are non-decreasing in insertion order
    - cumulative_price is non-decreasing
    - count <= capacity
    """
    observations: List[Optional[PriceObservation]]
    write_index: int = 0
    count: int = 0
    circuit_breaker_tripped: bool = False
    last_twap: int = 0

    @classmethod
    def empty(cls, capacity: int) -> "OracleAssetState":
        return cls(observations=[None] * capacity)

    @property
    def capacity(self) -> int:
        return len(self.observations)

    @property
    def oldest_index(self) -> int:
        """Slot of the oldest stored observation."""
        return 0 if self.count < self.capacity else self.write_index

    def latest(self) -> Optional[PriceObservation]:
        if self.count == 0:
            return None
        return self.observations[(self.write_index - 1) % self.capacity]

    def chronological(self) -> Iterator[PriceObservation]:
        """Iterate stored observations from oldest to newest."""
        start = self.oldest_index
        for offset in range(self.count):
            yield self.observations[(start + offset) % self.capacity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observations": [o.to_dict() if o else None for o in self.observations],
            "write_index": self.write_index,
            "count": self.count,
            "circuit_breaker_tripped": self.circuit_breaker_tripped,
            "last_twap": self.last_twap,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleAssetState":
        return cls(
            observations=[
                PriceObservation.from_dict(o) if o else None
                for o in data["observations"]
            ],
            write_index=int(data.get("write_index", 0)),
            count=int(data.get("count", 0)),
            circuit_breaker_tripped=bool(data.get("circuit_breaker_tripped", False)),
            last_twap=int(data.get("last_twap", 0)),
        )


def is_valid_price(price: Any) -> bool:
    """Integer (not bool) within [0, PRICE_SCALE]."""
    return isinstance(price, int) and not isinstance(price, bool) and 0 <= price <= PRICE_SCALE


# =============================================================================
# PRICE ORACLE
# =============================================================================


class PriceOracle:
    """
    TWAP oracle for outcome-token prices.

    Writes are restricted to authorized updaters.
    Breaker reset and updater management are ADMIN operations.
    """

    def __init__(
        self,
        access: AccessControl,
        clock: Clock,
        max_observations: int = MAX_OBSERVATIONS,
        twap_window_seconds: int = TWAP_WINDOW_SECONDS,
        staleness_threshold_seconds: int = STALENESS_THRESHOLD_SECONDS,
        max_deviation_bps: int = MAX_DEVIATION_BPS,
        audit: Optional[AuditLogger] = None,
    ):
        self._access = access
        self._clock = clock
        self.max_observations = max_observations
        self.twap_window_seconds = twap_window_seconds
        self.staleness_threshold_seconds = staleness_threshold_seconds
        self.max_deviation_bps = max_deviation_bps
        self._audit = audit or AuditLogger(Component.ORACLE)

        # asset id -> state
        self._assets: Dict[str, OracleAssetState] = {}

        logger.info(
            f"PriceOracle initialized | capacity={max_observations} | "
            f"window={twap_window_seconds}s | staleness={staleness_threshold_seconds}s | "
            f"max_deviation={max_deviation_bps}bps"
        )

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    def record_observation(self, caller: str, asset: str, price: int) -> bool:
        """
        Record a price observation for an asset.

        Args:
            caller: Account invoking the update (must be an authorized updater)
            asset: Asset id
            price: Price in 18-decimal fixed point

        Returns:
            True if stored, False if rejected by the circuit breaker

        Raises:
            UnauthorizedCallerError: Caller is not an updater
            InvalidPriceError: Price outside [0, 1e18]
        """
        self._access.require(Role.UPDATER, caller)
        now = self._clock.now()

        if not is_valid_price(price):
            raise InvalidPriceError(price, asset)

        return self._record(asset, price, now)

    def batch_record_observations(
        self,
        caller: str,
        assets: Sequence[str],
        prices: Sequence[int],
    ) -> int:
        """
        Record one observation per (asset, price) pair.

        Pairs with an invalid price are skipped (logged, not raised); each
        remaining pair follows the single-observation logic independently.

        Returns:
            Number of observations actually stored

        Raises:
            ArrayLengthMismatchError: If the sequences differ in length
        """
        self._access.require(Role.UPDATER, caller)
        if len(assets) != len(prices):
            raise ArrayLengthMismatchError(len(assets), len(prices))

        now = self._clock.now()
        stored = 0
        for asset, price in zip(assets, prices):
            if not is_valid_price(price):
                logger.warning(f"Batch: skipping invalid price {price!r} for {asset}")
                continue
            if self._record(asset, price, now):
                stored += 1

        logger.debug(f"Batch: stored {stored}/{len(assets)} observations")
        return stored

    def _record(self, asset: str, price: int, now: int) -> bool:
        state = self._assets.get(asset) or OracleAssetState.empty(self.max_observations)
        previous = state.latest()

        if previous is None:
            cumulative = 0
        else:
            if now < previous.timestamp:
                raise NonMonotonicTimestampError(now, previous.timestamp, asset)
            cumulative = previous.cumulative_price + previous.price * (now - previous.timestamp)

        # Deviation check against the current TWAP
        if state.count >= MIN_TWAP_OBSERVATIONS and not state.circuit_breaker_tripped:
            twap, _ = self._compute_twap(state, now)
            if twap != 0:
                deviation = deviation_bps(price, twap)
                if deviation > self.max_deviation_bps:
                    state.circuit_breaker_tripped = True
                    logger.warning(
                        f"Circuit breaker TRIPPED for {asset}: price={price} "
                        f"twap={twap} deviation={deviation}bps"
                    )
                    self._audit.log_event("OBSERVATION_REJECTED", {
                        "asset": asset,
                        "price": price,
                        "twap": twap,
                        "deviation_bps": deviation,
                        "timestamp": now,
                    })
                    return False

        state.observations[state.write_index] = PriceObservation(
            timestamp=now,
            price=price,
            cumulative_price=cumulative,
        )
        state.write_index = (state.write_index + 1) % state.capacity
        if state.count < state.capacity:
            state.count += 1

        if state.count >= MIN_TWAP_OBSERVATIONS:
            state.last_twap, _ = self._compute_twap(state, now)

        self._assets[asset] = state
        logger.debug(f"Observation stored: {asset} price={price} t={now} count={state.count}")
        return True

    # -------------------------------------------------------------------------
    # TWAP
    # -------------------------------------------------------------------------

    def _compute_twap(self, state: OracleAssetState, now: int) -> Tuple[int, int]:
        """
        Time-weighted average over the trailing window.

        The window starts at the first observation no older than
        latest.timestamp - window. The latest segment is extrapolated to
        `now` at the latest price and the integral is divided by the
        observed span latest.timestamp - oldest.timestamp.
        """
        latest = state.latest()
        target_time = max(0, latest.timestamp - self.twap_window_seconds)

        oldest = None
        for observation in state.chronological():
            if observation.timestamp >= target_time:
                oldest = observation
                break
        if oldest is None:
            oldest = state.observations[state.oldest_index]

        time_delta = latest.timestamp - oldest.timestamp
        if time_delta == 0:
            return latest.price, latest.timestamp

        extrapolated = latest.cumulative_price + latest.price * (now - latest.timestamp)
        return (extrapolated - oldest.cumulative_price) // time_delta, latest.timestamp

    def get_twap(self, asset: str) -> Tuple[int, int]:
        """
        Current TWAP for an asset.

        Returns:
            (twap, timestamp of the latest observation)

        Raises:
            InsufficientObservationsError: Fewer than 2 stored observations
        """
        state = self._assets.get(asset)
        count = state.count if state else 0
        if count < MIN_TWAP_OBSERVATIONS:
            raise InsufficientObservationsError(count, MIN_TWAP_OBSERVATIONS, asset)
        return self._compute_twap(state, self._clock.now())

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    def get_latest_price(self, asset: str) -> Tuple[int, int]:
        """
        Most recent stored price.

        Raises:
            InsufficientObservationsError: No observations recorded
        """
        state = self._assets.get(asset)
        if state is None or state.count == 0:
            raise InsufficientObservationsError(0, 1, asset)
        latest = state.latest()
        return latest.price, latest.timestamp

    def is_price_stale(self, asset: str) -> bool:
        """True if no observations exist or the latest is older than the threshold."""
        state = self._assets.get(asset)
        if state is None or state.count == 0:
            return True
        return self._clock.now() - state.latest().timestamp > self.staleness_threshold_seconds

    def get_price_age(self, asset: str) -> Optional[int]:
        """Seconds since the latest observation, or None without observations."""
        state = self._assets.get(asset)
        if state is None or state.count == 0:
            return None
        return self._clock.now() - state.latest().timestamp

    def is_circuit_breaker_triggered(self, asset: str) -> bool:
        state = self._assets.get(asset)
        return bool(state and state.circuit_breaker_tripped)

    def get_observation(self, asset: str, index: int) -> PriceObservation:
        """
        Raw ring slot `index` for an asset.

        Raises:
            ObservationIndexError: Index outside the filled slots
        """
        state = self._assets.get(asset)
        count = state.count if state else 0
        if not 0 <= index < count:
            raise ObservationIndexError(index, count, asset)
        return state.observations[index]

    def get_observation_count(self, asset: str) -> int:
        state = self._assets.get(asset)
        return state.count if state else 0

    def get_last_twap(self, asset: str) -> int:
        """TWAP cached at the last stored observation (0 if none yet)."""
        state = self._assets.get(asset)
        return state.last_twap if state else 0

    def assets(self) -> List[str]:
        return list(self._assets)

    # -------------------------------------------------------------------------
    # ADMINISTRATION
    # -------------------------------------------------------------------------

    def reset_circuit_breaker(self, caller: str, asset: str) -> None:
        """Clear the tripped flag for an asset (ADMIN only)."""
        self._access.require(Role.ADMIN, caller)
        state = self._assets.get(asset)
        if state is None or not state.circuit_breaker_tripped:
            logger.info(f"Circuit breaker reset for {asset}: not tripped")
            return

        state.circuit_breaker_tripped = False
        logger.warning(f"Circuit breaker RESET for {asset} by {caller}")
        self._audit.log_event("CIRCUIT_BREAKER_RESET", {
            "asset": asset,
            "caller": caller,
            "timestamp": self._clock.now(),
        })

    def authorize_updater(self, caller: str, updater: str) -> None:
        self._access.grant(caller, Role.UPDATER, updater)

    def revoke_updater(self, caller: str, updater: str) -> None:
        self._access.revoke(caller, Role.UPDATER, updater)

    def is_authorized_updater(self, account: str) -> bool:
        return self._access.has_role(Role.UPDATER, account)

    # -------------------------------------------------------------------------
    # STATE EXPORT
    # -------------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        return {asset: state.to_dict() for asset, state in self._assets.items()}

    def parse_state(self, data: Dict[str, Any]) -> Dict[str, OracleAssetState]:
        """Build asset states from exported data without touching the oracle."""
        parsed = {asset: OracleAssetState.from_dict(raw) for asset, raw in data.items()}
        for asset, state in parsed.items():
            if state.capacity != self.max_observations:
                raise ValueError(
                    f"Snapshot capacity {state.capacity} for {asset} "
                    f"does not match oracle capacity {self.max_observations}"
                )
        return parsed

    def apply_state(self, parsed: Dict[str, OracleAssetState]) -> None:
        self._assets = parsed
        logger.info(f"Oracle state restored for {len(parsed)} assets")

    def restore_state(self, data: Dict[str, Any]) -> None:
        self.apply_state(self.parse_state(data))
