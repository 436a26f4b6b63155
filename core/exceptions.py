# =============================================================================
# POLYMARKET LENDING - CORE EXCEPTIONS
# =============================================================================
#
# Every failure in the risk core is fail-fast and non-retryable within the
# same invocation. The operation aborts and its state changes are rolled back.
#
# EXCEPTION HIERARCHY:
#
# LendingError (base)
# ├── ValidationError         - malformed input
# │   ├── ZeroAmountError
# │   ├── InvalidPriceError
# │   ├── ArrayLengthMismatchError
# │   ├── InvalidParameterError
# │   ├── ObservationIndexError
# │   └── NonMonotonicTimestampError
# ├── AuthorizationError      - caller lacks the capability
# │   └── UnauthorizedCallerError
# ├── StateError              - system state forbids the operation
# │   ├── InsufficientObservationsError
# │   ├── StalePriceError
# │   ├── CircuitBreakerTrippedError
# │   ├── MarketNotRegisteredError
# │   ├── ActionBlockedError
# │   │   └── MarketFrozenError
# │   ├── InsufficientCollateralError
# │   ├── InsufficientLiquidityError
# │   ├── ReentrancyError
# │   ├── AlreadyConfiguredError
# │   └── NotConfiguredError
# └── PolicyViolation         - request breaks a risk policy
#     ├── ExceedsMaxLTVError
#     ├── ExceedsCloseFactorError
#     ├── HealthFactorTooLowError
#     └── NotLiquidatableError
#
# =============================================================================

from typing import Optional

from shared.enums import BlockReason, Role


class LendingError(Exception):
    """
    Base class for all risk-core errors.

    Allows catching every core failure in a single except block.
    """

    def __init__(self, message: str, context: Optional[str] = None):
        """
        Initialize lending error.

        Args:
            message: Error description
            context: Optional asset / market / borrower id for context
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            return f"[{self.context}] {self.message}"
        return self.message


# =============================================================================
# CATEGORIES
# =============================================================================


class ValidationError(LendingError):
    """Input is out of domain (zero amount, bad price, mismatched arrays)."""


class AuthorizationError(LendingError):
    """Caller lacks the required capability."""


class StateError(LendingError):
    """Current state forbids the operation (stale oracle, frozen market, ...)."""


class PolicyViolation(LendingError):
    """Request violates a risk policy (LTV, close factor, health factor)."""


# =============================================================================
# VALIDATION
# =============================================================================


class ZeroAmountError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("Amount must be greater than zero", context)


class InvalidPriceError(ValidationError):
    """Price is outside [0, 1e18] or not an integer."""

    def __init__(self, price, context: Optional[str] = None):
        super().__init__(f"Invalid price: {price!r} (must be an integer in [0, 1e18])", context)
        self.price = price


class ArrayLengthMismatchError(ValidationError):
    def __init__(self, left: int, right: int):
        super().__init__(f"Array length mismatch: {left} != {right}")
        self.left = left
        self.right = right


class InvalidParameterError(ValidationError):
    """Administrative parameter update outside its bounds."""

    def __init__(self, name: str, value, reason: str):
        super().__init__(f"Invalid {name}={value!r}: {reason}")
        self.name = name
        self.value = value


class ObservationIndexError(ValidationError):
    def __init__(self, index: int, count: int, context: Optional[str] = None):
        super().__init__(f"Observation index {index} out of range (count={count})", context)
        self.index = index
        self.count = count


class NonMonotonicTimestampError(ValidationError):
    """Host clock went backwards relative to the stored observations."""

    def __init__(self, now: int, last: int, context: Optional[str] = None):
        super().__init__(f"Timestamp {now} precedes latest observation {last}", context)
        self.now = now
        self.last = last


# =============================================================================
# AUTHORIZATION
# =============================================================================


class UnauthorizedCallerError(AuthorizationError):
    """Caller does not hold the role required by the operation."""

    def __init__(self, caller: str, role: Role):
        super().__init__(f"Caller {caller!r} lacks role {role.value}")
        self.caller = caller
        self.role = role


# =============================================================================
# STATE
# =============================================================================


class InsufficientObservationsError(StateError):
    def __init__(self, count: int, required: int, context: Optional[str] = None):
        super().__init__(
            f"Insufficient observations: {count} recorded, {required} required",
            context,
        )
        self.count = count
        self.required = required


class StalePriceError(StateError):
    def __init__(self, age_seconds: Optional[int], context: Optional[str] = None):
        if age_seconds is None:
            message = "No price observations recorded"
        else:
            message = f"Price is stale ({age_seconds}s old)"
        super().__init__(message, context)
        self.age_seconds = age_seconds


class CircuitBreakerTrippedError(StateError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("Oracle circuit breaker is tripped", context)


class MarketNotRegisteredError(StateError):
    def __init__(self, market_id: str):
        super().__init__("Market is not registered", market_id)
        self.market_id = market_id


class ActionBlockedError(StateError):
    """The freeze controller denies the action."""

    def __init__(self, action: str, reason: BlockReason, context: Optional[str] = None):
        super().__init__(f"{action} blocked: {reason.value}", context)
        self.action = action
        self.reason = reason


class MarketFrozenError(ActionBlockedError):
    """Borrow denied by the manual freeze flag."""

    def __init__(self, market_id: str, action: str = "BORROW"):
        super().__init__(action, BlockReason.MARKET_FROZEN, market_id)
        self.market_id = market_id


class InsufficientCollateralError(StateError):
    def __init__(self, available: int, requested: int, context: Optional[str] = None):
        super().__init__(
            f"Insufficient collateral: {available} available, {requested} requested",
            context,
        )
        self.available = available
        self.requested = requested


class InsufficientLiquidityError(StateError):
    def __init__(self, available: int, requested: int, context: Optional[str] = None):
        super().__init__(
            f"Insufficient liquidity: {available} available, {requested} requested",
            context,
        )
        self.available = available
        self.requested = requested


class ReentrancyError(StateError):
    """A guarded operation was entered while another one is in flight."""

    def __init__(self, operation: str):
        super().__init__(f"Reentrant call into {operation}")
        self.operation = operation


class AlreadyConfiguredError(StateError):
    """A set-once capability or reference was assigned twice."""

    def __init__(self, what: str):
        super().__init__(f"{what} is already configured")
        self.what = what


class NotConfiguredError(StateError):
    """A collaborator reference is missing (configure pass not run)."""

    def __init__(self, what: str):
        super().__init__(f"{what} is not configured")
        self.what = what


# =============================================================================
# POLICY
# =============================================================================


class ExceedsMaxLTVError(PolicyViolation):
    def __init__(self, requested_debt: int, max_debt: int, context: Optional[str] = None):
        super().__init__(
            f"Debt {requested_debt} exceeds maximum {max_debt} for current LTV tier",
            context,
        )
        self.requested_debt = requested_debt
        self.max_debt = max_debt


class ExceedsCloseFactorError(PolicyViolation):
    def __init__(self, repay_amount: int, max_repay: int, context: Optional[str] = None):
        super().__init__(
            f"Repay amount {repay_amount} exceeds close factor limit {max_repay}",
            context,
        )
        self.repay_amount = repay_amount
        self.max_repay = max_repay


class HealthFactorTooLowError(PolicyViolation):
    def __init__(self, health_factor: int, context: Optional[str] = None):
        super().__init__(f"Resulting health factor {health_factor} below 1.0", context)
        self.health_factor = health_factor


class NotLiquidatableError(PolicyViolation):
    def __init__(self, context: Optional[str] = None):
        super().__init__("Position is not liquidatable", context)
